from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator


# Spreadsheet header -> canonical field. Earlier columns win when two headers
# map to the same field.
DEFAULT_COLUMN_MAP: Dict[str, str] = {
    "customer_load_id": "customer_load_id",
    "journey_id": "journey_id",
    "load_id": "load_id",
    "branch_id": "branch_id",
    "branch_name": "branch_name",
    "Date": "date",
    "date": "date",
    "created_at": "created_at",
    "closed_at": "closed_at",
    "load_status": "load_status",
    "origin_location": "origin_location",
    "stop_location": "stop_location",
    "drop_closest_ping_address": "drop_closest_ping_address",
    "Nearest Consignee": "nearest_consignee",
    "Nearest Consignee Code": "nearest_consignee_code",
    "erp_transit_distance_km": "erp_transit_distance_km",
    "A to C Distance(vehicle travel)": "a_to_c_distance_km",
    "Diff in lead": "diff_in_lead",
    "total_distance_travelled_km": "total_distance_travelled_km",
    "Total Freight": "total_freight",
    "Nearest Consignee Total Freight": "nearest_consignee_total_freight",
    "Freight impact as per PTPK/Nearest consignee": "freight_impact",
    "vehicle_number": "vehicle_number",
    "vehicle_type": "vehicle_type",
    "Freight calculation Remarks": "freight_calculation_remarks",
    "status_of_tracked_mode": "status_of_tracked_mode",
    "loading_TAT_in_hrs": "loading_tat_hrs",
    "actual_transit_time_in_days": "actual_transit_time_days",
}

NUMERIC_FIELDS: List[str] = [
    "erp_transit_distance_km",
    "a_to_c_distance_km",
    "diff_in_lead",
    "total_distance_travelled_km",
    "short_lead_distance_km",
    "total_freight",
    "nearest_consignee_total_freight",
    "freight_impact",
    "loading_tat_hrs",
    "actual_transit_time_days",
]

RawValue = Union[StrictStr, StrictBool, StrictInt, StrictFloat, None]


class RawDiversionRow(BaseModel):
    """One spreadsheet row after column renaming; values are still untrusted text/numbers."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    customer_load_id: RawValue = None
    journey_id: RawValue = None
    load_id: RawValue = None
    branch_id: RawValue = None
    branch_name: RawValue = None
    date: RawValue = None
    created_at: RawValue = None
    closed_at: RawValue = None
    load_status: RawValue = None
    origin_location: RawValue = None
    stop_location: RawValue = None
    drop_closest_ping_address: RawValue = None
    nearest_consignee: RawValue = None
    nearest_consignee_code: RawValue = None
    erp_transit_distance_km: RawValue = None
    a_to_c_distance_km: RawValue = None
    diff_in_lead: RawValue = None
    total_distance_travelled_km: RawValue = None
    total_freight: RawValue = None
    nearest_consignee_total_freight: RawValue = None
    freight_impact: RawValue = None
    vehicle_number: RawValue = None
    vehicle_type: RawValue = None
    freight_calculation_remarks: RawValue = None
    status_of_tracked_mode: RawValue = None
    loading_tat_hrs: RawValue = None
    actual_transit_time_days: RawValue = None

    @field_validator("*", mode="before")
    @classmethod
    def _unwrap_numpy(cls, value: Any) -> Any:
        if isinstance(value, np.generic):
            return value.item()
        return value


def is_potential_diversion(diff_in_lead: Optional[float]) -> bool:
    return diff_in_lead is not None and diff_in_lead < 0


def short_lead_distance(diff_in_lead: Optional[float]) -> Optional[float]:
    return None if diff_in_lead is None else abs(diff_in_lead)


@dataclass(frozen=True)
class DiversionRow:
    """Canonical, immutable shipment record.

    `is_potential_diversion` and `short_lead_distance_km` are derived from
    `diff_in_lead` on construction and cannot be passed in.
    """

    id: str
    journey_id: str = ""
    customer_load_id: str = ""
    load_id: str = ""
    branch_id: str = ""
    branch_name: str = ""
    date: str = ""
    date_iso: str = ""
    created_at: str = ""
    closed_at: str = ""
    load_status: str = ""
    origin_location: str = ""
    stop_location: str = ""
    drop_closest_ping_address: str = ""
    nearest_consignee: str = ""
    nearest_consignee_code: str = ""
    erp_transit_distance_km: Optional[float] = None
    a_to_c_distance_km: Optional[float] = None
    diff_in_lead: Optional[float] = None
    total_distance_travelled_km: Optional[float] = None
    total_freight: Optional[float] = None
    nearest_consignee_total_freight: Optional[float] = None
    freight_impact: Optional[float] = None
    vehicle_number: str = ""
    vehicle_type: str = ""
    freight_calculation_remarks: str = ""
    status_of_tracked_mode: str = ""
    loading_tat_hrs: Optional[float] = None
    actual_transit_time_days: Optional[float] = None
    is_potential_diversion: bool = field(init=False)
    short_lead_distance_km: Optional[float] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "is_potential_diversion", is_potential_diversion(self.diff_in_lead))
        object.__setattr__(self, "short_lead_distance_km", short_lead_distance(self.diff_in_lead))


RECORD_COLUMNS: List[str] = [f.name for f in fields(DiversionRow)]
