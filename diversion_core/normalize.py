"""Raw spreadsheet rows -> `DiversionRow` records.

A row that cannot be mapped is dropped from its batch with a warning; one bad
upstream row never blanks the dashboard.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from pydantic import ValidationError

from diversion_core.coerce import coerce_date_to_instant, coerce_number, coerce_string
from diversion_core.schema import DEFAULT_COLUMN_MAP, DiversionRow, RawDiversionRow


logger = logging.getLogger(__name__)


class RowValidationError(ValueError):
    def __init__(self, index: int, message: str) -> None:
        super().__init__(f"row {index}: {message}")
        self.index = index
        self.message = message


@dataclass(frozen=True)
class NormalizeResult:
    index: int
    record: Optional[DiversionRow] = None
    error: Optional[RowValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def rename_columns(raw_row: Mapping, column_map: Dict[str, str]) -> Dict[str, object]:
    renamed: Dict[str, object] = {}
    for column, field_name in column_map.items():
        if column in raw_row and field_name not in renamed:
            renamed[field_name] = raw_row[column]
    return renamed


def normalize(raw_row: object, index: int, column_map: Optional[Dict[str, str]] = None) -> DiversionRow:
    if not isinstance(raw_row, Mapping):
        raise RowValidationError(index, f"expected a mapping, got {type(raw_row).__name__}")
    try:
        raw = RawDiversionRow.model_validate(rename_columns(raw_row, column_map or DEFAULT_COLUMN_MAP))
    except ValidationError as exc:
        raise RowValidationError(index, str(exc)) from exc

    customer_load_id = coerce_string(raw.customer_load_id)
    date = coerce_string(raw.date)
    return DiversionRow(
        id=customer_load_id or f"row-{index}",
        journey_id=coerce_string(raw.journey_id),
        customer_load_id=customer_load_id,
        load_id=coerce_string(raw.load_id),
        branch_id=coerce_string(raw.branch_id),
        branch_name=coerce_string(raw.branch_name),
        date=date,
        date_iso=coerce_date_to_instant(date),
        created_at=coerce_string(raw.created_at),
        closed_at=coerce_string(raw.closed_at),
        load_status=coerce_string(raw.load_status),
        origin_location=coerce_string(raw.origin_location),
        stop_location=coerce_string(raw.stop_location),
        drop_closest_ping_address=coerce_string(raw.drop_closest_ping_address),
        nearest_consignee=coerce_string(raw.nearest_consignee),
        nearest_consignee_code=coerce_string(raw.nearest_consignee_code),
        erp_transit_distance_km=coerce_number(raw.erp_transit_distance_km),
        a_to_c_distance_km=coerce_number(raw.a_to_c_distance_km),
        diff_in_lead=coerce_number(raw.diff_in_lead),
        total_distance_travelled_km=coerce_number(raw.total_distance_travelled_km),
        total_freight=coerce_number(raw.total_freight),
        nearest_consignee_total_freight=coerce_number(raw.nearest_consignee_total_freight),
        freight_impact=coerce_number(raw.freight_impact),
        vehicle_number=coerce_string(raw.vehicle_number),
        vehicle_type=coerce_string(raw.vehicle_type),
        freight_calculation_remarks=coerce_string(raw.freight_calculation_remarks),
        status_of_tracked_mode=coerce_string(raw.status_of_tracked_mode),
        loading_tat_hrs=coerce_number(raw.loading_tat_hrs),
        actual_transit_time_days=coerce_number(raw.actual_transit_time_days),
    )


def normalize_row(raw_row: object, index: int, column_map: Optional[Dict[str, str]] = None) -> NormalizeResult:
    try:
        return NormalizeResult(index=index, record=normalize(raw_row, index, column_map))
    except RowValidationError as exc:
        return NormalizeResult(index=index, error=exc)


def normalize_batch_results(
    raw_rows: Iterable[object], column_map: Optional[Dict[str, str]] = None
) -> List[NormalizeResult]:
    return [normalize_row(raw_row, i, column_map) for i, raw_row in enumerate(raw_rows)]


def unique_id(record_id: str, index: int, seen_ids: Set[str]) -> str:
    if record_id not in seen_ids:
        return record_id
    candidate = f"{record_id}-{index}"
    n = 1
    while candidate in seen_ids:
        candidate = f"{record_id}-{index}-{n}"
        n += 1
    return candidate


def normalize_batch(raw_rows: Iterable[object], column_map: Optional[Dict[str, str]] = None) -> List[DiversionRow]:
    records: List[DiversionRow] = []
    seen_ids: Set[str] = set()
    for result in normalize_batch_results(raw_rows, column_map):
        if result.error is not None:
            logger.warning("Row %d validation failed: %s", result.index, result.error.message)
            continue
        record = result.record
        # Natural keys can repeat in the sheet; list ids must not.
        record_id = unique_id(record.id, result.index, seen_ids)
        if record_id != record.id:
            record = dataclasses.replace(record, id=record_id)
        seen_ids.add(record_id)
        records.append(record)
    return records
