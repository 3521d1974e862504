from __future__ import annotations

from typing import List

import pytest

from diversion_core.schema import DiversionRow


def make_row(**overrides) -> DiversionRow:
    values = dict(
        id="test-1",
        journey_id="JRN-001",
        customer_load_id="CL-001",
        load_id="L-001",
        branch_id="B-001",
        branch_name="Test Branch",
        date="01/12/2025",
        date_iso="2025-12-01T00:00:00",
        created_at="2025-12-01T10:00:00",
        closed_at="2025-12-02T10:00:00",
        load_status="AFTER_DROP",
        origin_location="Origin A",
        stop_location="Stop B",
        drop_closest_ping_address="123 Test Street",
        nearest_consignee="Consignee X",
        nearest_consignee_code="CX001",
        erp_transit_distance_km=50.0,
        a_to_c_distance_km=60.0,
        diff_in_lead=-10.0,
        total_distance_travelled_km=65.0,
        total_freight=5000.0,
        nearest_consignee_total_freight=4500.0,
        freight_impact=-500.0,
        vehicle_number="WB-1234",
        vehicle_type="1101",
        freight_calculation_remarks="on Nearest Consignee",
        status_of_tracked_mode="TRUE",
        loading_tat_hrs=2.5,
        actual_transit_time_days=1.5,
    )
    values.update(overrides)
    return DiversionRow(**values)


@pytest.fixture()
def mock_rows() -> List[DiversionRow]:
    """Four diversions across three branches plus one normal load."""
    return [
        make_row(
            id="1",
            journey_id="JRN-001",
            branch_name="Burdwan Depot",
            nearest_consignee="Consignee A",
            freight_impact=-1000.0,
            diff_in_lead=-15.0,
            origin_location="BURDWAN-T2",
            stop_location="MONGALKOT",
            date="01/12/2025",
            date_iso="2025-12-01T00:00:00",
        ),
        make_row(
            id="2",
            journey_id="JRN-002",
            branch_name="Burdwan Depot",
            nearest_consignee="Consignee B",
            freight_impact=-2000.0,
            diff_in_lead=-20.0,
            origin_location="BURDWAN-T2",
            stop_location="MONGALKOT",
            date="03/12/2025",
            date_iso="2025-12-03T00:00:00",
        ),
        make_row(
            id="3",
            journey_id="JRN-003",
            branch_name="Sainthia Depot",
            nearest_consignee="Consignee A",
            freight_impact=-1500.0,
            diff_in_lead=-25.0,
            origin_location="SAINTHIA-T4",
            stop_location="AYAS",
            date="05/12/2025",
            date_iso="2025-12-05T14:30:00",
        ),
        make_row(
            id="4",
            journey_id="JRN-004",
            branch_name="Kalighat Depot",
            nearest_consignee="Consignee C",
            freight_impact=-500.0,
            diff_in_lead=-5.0,
            origin_location="KALIGHAT-RH",
            stop_location="BUDGEBUDGE",
            date="07/12/2025",
            date_iso="2025-12-07T00:00:00",
        ),
        make_row(
            id="5",
            journey_id="JRN-005",
            branch_name="Kalighat Depot",
            nearest_consignee="Consignee D",
            freight_impact=0.0,
            diff_in_lead=5.0,
            origin_location="KALIGHAT-RH",
            stop_location="METIABRUZ",
            date="10/12/2025",
            date_iso="2025-12-10T00:00:00",
        ),
    ]


@pytest.fixture()
def row_factory():
    return make_row
