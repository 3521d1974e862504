"""
tests/test_normalize.py

Raw spreadsheet rows -> DiversionRow, including the skip-and-continue batch
behaviour.
"""

from __future__ import annotations

import dataclasses
import logging
import math

import pytest

from diversion_core.normalize import (
    RowValidationError,
    normalize,
    normalize_batch,
    normalize_batch_results,
    normalize_row,
)
from diversion_core.schema import NUMERIC_FIELDS, DiversionRow


def raw_row(**overrides):
    row = {
        "customer_load_id": "CL-100",
        "journey_id": "JRN-100",
        "load_id": "L-100",
        "branch_id": "B-7",
        "branch_name": "Burdwan Depot",
        "Date": "01/12/2025",
        "created_at": "2025-12-01T10:00:00.000Z",
        "closed_at": "2025-12-02T10:00:00.000Z",
        "load_status": "AFTER_DROP",
        "origin_location": "BURDWAN-T2",
        "stop_location": "MONGALKOT",
        "drop_closest_ping_address": "NH-2, Burdwan",
        "Nearest Consignee": "Consignee A",
        "Nearest Consignee Code": "CA01",
        "erp_transit_distance_km": "50",
        "A to C Distance(vehicle travel)": "37.5",
        "Diff in lead": "-12.5",
        "total_distance_travelled_km": "40",
        "Total Freight": "5,000",
        "Nearest Consignee Total Freight": "3,500",
        "Freight impact as per PTPK/Nearest consignee": "-1,500",
        "vehicle_number": "WB-1234",
        "vehicle_type": "1101",
        "Freight calculation Remarks": "on Nearest Consignee",
        "status_of_tracked_mode": "TRUE",
        "loading_TAT_in_hrs": "2.5",
        "actual_transit_time_in_days": "",
    }
    row.update(overrides)
    return row


class TestNormalize:
    def test_maps_and_coerces_fields(self) -> None:
        record = normalize(raw_row(), 0)
        assert record.id == "CL-100"
        assert record.journey_id == "JRN-100"
        assert record.branch_name == "Burdwan Depot"
        assert record.nearest_consignee == "Consignee A"
        assert record.date == "01/12/2025"
        assert record.date_iso == "2025-12-01T00:00:00"
        assert record.a_to_c_distance_km == 37.5
        assert record.total_freight == 5000.0
        assert record.freight_impact == -1500.0
        assert record.loading_tat_hrs == 2.5
        assert record.actual_transit_time_days is None

    def test_derives_diversion_fields(self) -> None:
        record = normalize(raw_row(), 0)
        assert record.diff_in_lead == -12.5
        assert record.is_potential_diversion is True
        assert record.short_lead_distance_km == 12.5

    @pytest.mark.parametrize("diff, flagged, short", [("5", False, 5.0), ("0", False, 0.0), ("", False, None), ("abc", False, None)])
    def test_non_negative_or_missing_lead_is_not_a_diversion(self, diff, flagged, short) -> None:
        record = normalize(raw_row(**{"Diff in lead": diff}), 0)
        assert record.is_potential_diversion is flagged
        assert record.short_lead_distance_km == short

    def test_positional_id_fallback(self) -> None:
        record = normalize(raw_row(customer_load_id=""), 3)
        assert record.id == "row-3"

    def test_tolerates_missing_and_extra_columns(self) -> None:
        record = normalize({"journey_id": "J-1", "Diff in lead": -3, "unexpected": "x"}, 0)
        assert record.journey_id == "J-1"
        assert record.branch_name == ""
        assert record.freight_impact is None
        assert record.is_potential_diversion is True

    def test_numeric_fields_are_finite_or_none(self) -> None:
        row = raw_row(**{"Diff in lead": "nan", "Total Freight": "inf", "erp_transit_distance_km": float("nan")})
        record = normalize(row, 0)
        for name in NUMERIC_FIELDS:
            value = getattr(record, name)
            assert value is None or math.isfinite(value)
        assert record.diff_in_lead is None
        assert record.short_lead_distance_km is None

    def test_custom_column_map(self) -> None:
        record = normalize({"Journey": "J-9", "Lead delta": "-4"}, 0, {"Journey": "journey_id", "Lead delta": "diff_in_lead"})
        assert record.journey_id == "J-9"
        assert record.short_lead_distance_km == 4.0

    def test_structured_value_is_a_validation_error(self) -> None:
        with pytest.raises(RowValidationError) as exc_info:
            normalize(raw_row(journey_id={"nested": "value"}), 4)
        assert exc_info.value.index == 4

    def test_non_mapping_row_is_a_validation_error(self) -> None:
        with pytest.raises(RowValidationError):
            normalize(["not", "a", "row"], 0)

    def test_record_is_frozen(self) -> None:
        record = normalize(raw_row(), 0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.diff_in_lead = 10.0  # type: ignore[misc]

    def test_derived_fields_cannot_be_passed_in(self) -> None:
        with pytest.raises(TypeError):
            DiversionRow(id="x", diff_in_lead=5.0, is_potential_diversion=True)  # type: ignore[call-arg]


class TestNormalizeResult:
    def test_ok_result(self) -> None:
        result = normalize_row(raw_row(), 0)
        assert result.ok
        assert result.record is not None

    def test_error_result(self) -> None:
        result = normalize_row(raw_row(branch_name=["a", "b"]), 2)
        assert not result.ok
        assert result.record is None
        assert result.error.index == 2


class TestNormalizeBatch:
    def test_skips_malformed_row_and_keeps_order(self, caplog) -> None:
        rows = [
            raw_row(customer_load_id="A", journey_id="J-1"),
            raw_row(customer_load_id="B", journey_id=["broken"]),
            raw_row(customer_load_id="C", journey_id="J-3"),
            raw_row(customer_load_id="D", journey_id="J-4"),
        ]
        with caplog.at_level(logging.WARNING, logger="diversion_core.normalize"):
            records = normalize_batch(rows)
        assert len(records) == len(rows) - 1
        assert [r.journey_id for r in records] == ["J-1", "J-3", "J-4"]
        assert any("Row 1 validation failed" in m for m in caplog.messages)

    def test_results_report_every_row(self) -> None:
        results = normalize_batch_results([raw_row(), None, raw_row()])
        assert [r.ok for r in results] == [True, False, True]

    def test_repeated_natural_key_gets_unique_id(self) -> None:
        records = normalize_batch([raw_row(customer_load_id="CL-1"), raw_row(customer_load_id="CL-1")])
        assert [r.id for r in records] == ["CL-1", "CL-1-1"]
        assert records[1].customer_load_id == "CL-1"

    def test_empty_batch(self) -> None:
        assert normalize_batch([]) == []

    def test_out_of_range_cell_does_not_stop_the_batch(self) -> None:
        rows = [
            raw_row(customer_load_id="A", journey_id="J-1"),
            raw_row(customer_load_id="B", journey_id="J-2", **{"Diff in lead": 10**400}),
            raw_row(customer_load_id="C", journey_id="J-3"),
        ]
        records = normalize_batch(rows)
        assert [r.journey_id for r in records] == ["J-1", "J-2", "J-3"]
        assert records[1].diff_in_lead is None
        assert records[1].is_potential_diversion is False

    def test_suffixed_id_never_clashes_with_real_key(self) -> None:
        records = normalize_batch([raw_row(customer_load_id=cid) for cid in ["A", "A-2", "A"]])
        ids = [r.id for r in records]
        assert ids[:2] == ["A", "A-2"]
        assert len(set(ids)) == 3

    def test_positional_fallback_never_clashes_with_real_key(self) -> None:
        records = normalize_batch([raw_row(customer_load_id="row-1"), raw_row(customer_load_id="")])
        ids = [r.id for r in records]
        assert ids[0] == "row-1"
        assert len(set(ids)) == 2

    def test_ids_unique_across_repeated_keys(self) -> None:
        keys = ["A", "A", "A-1", "A-1", "A", "row-6", ""]
        records = normalize_batch([raw_row(customer_load_id=k) for k in keys])
        assert len({r.id for r in records}) == len(keys)
