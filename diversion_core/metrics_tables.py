"""Ranked tables over diversion rows: by branch, by consignee, by corridor.

All three only look at rows flagged as potential diversions, whatever the
`only_diversions` filter says. Branch and consignee tables rank by total
recovery; the corridor table ranks by how often the route shows up. Ties keep
the order in which groups first appear in the input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import pandas as pd

from diversion_core.data import anomaly_frame
from diversion_core.schema import DiversionRow


UNKNOWN_LOCATION = "Unknown"
CORRIDOR_SEPARATOR = " → "


@dataclass(frozen=True)
class BranchTableRow:
    branch_name: str
    diverted_journeys: int
    total_recovery: float
    avg_short_lead: float
    max_short_lead: float


@dataclass(frozen=True)
class ConsigneeTableRow:
    consignee: str
    diverted_journeys: int
    total_recovery: float
    repeat_rate: float


@dataclass(frozen=True)
class CorridorTableRow:
    origin: str
    destination: str
    corridor: str
    count: int
    total_recovery: float
    avg_short_lead: float


def _rank(df: pd.DataFrame, by: str) -> List[dict]:
    return df.sort_values(by, ascending=False, kind="mergesort").to_dict(orient="records")


def compute_branch_table(rows: Iterable[DiversionRow]) -> List[BranchTableRow]:
    df = anomaly_frame(rows)
    df = df[df["branch_name"] != ""]
    if df.empty:
        return []
    grouped = (
        df.groupby("branch_name", sort=False)
        .agg(
            diverted_journeys=("journey_key", "nunique"),
            total_recovery=("recovery", "sum"),
            avg_short_lead=("short_lead_distance_km", "mean"),
            max_short_lead=("short_lead_distance_km", "max"),
        )
        .reset_index()
    )
    grouped[["avg_short_lead", "max_short_lead"]] = grouped[["avg_short_lead", "max_short_lead"]].fillna(0.0)
    return [
        BranchTableRow(
            branch_name=str(r["branch_name"]),
            diverted_journeys=int(r["diverted_journeys"]),
            total_recovery=float(r["total_recovery"]),
            avg_short_lead=float(r["avg_short_lead"]),
            max_short_lead=float(r["max_short_lead"]),
        )
        for r in _rank(grouped, "total_recovery")
    ]


def compute_consignee_table(rows: Iterable[DiversionRow]) -> List[ConsigneeTableRow]:
    """Repeat rate is the consignee's share of distinct diverted journeys in
    `rows`, in percent. The denominator follows the filtered set, so narrowing
    by branch or date changes every consignee's rate."""
    df = anomaly_frame(rows)
    total_journeys = int(df["journey_key"].nunique())
    df = df[df["nearest_consignee"] != ""]
    if df.empty:
        return []
    grouped = (
        df.groupby("nearest_consignee", sort=False)
        .agg(diverted_journeys=("journey_key", "nunique"), total_recovery=("recovery", "sum"))
        .reset_index()
    )
    out: List[ConsigneeTableRow] = []
    for r in _rank(grouped, "total_recovery"):
        journeys = int(r["diverted_journeys"])
        out.append(
            ConsigneeTableRow(
                consignee=str(r["nearest_consignee"]),
                diverted_journeys=journeys,
                total_recovery=float(r["total_recovery"]),
                repeat_rate=(journeys / total_journeys * 100) if total_journeys else 0.0,
            )
        )
    return out


def compute_corridor_table(rows: Iterable[DiversionRow]) -> List[CorridorTableRow]:
    df = anomaly_frame(rows)
    if df.empty:
        return []
    df["origin"] = df["origin_location"].where(df["origin_location"] != "", UNKNOWN_LOCATION)
    df["destination"] = df["stop_location"].where(df["stop_location"] != "", UNKNOWN_LOCATION)
    grouped = (
        df.groupby(["origin", "destination"], sort=False)
        .agg(
            count=("id", "size"),
            total_recovery=("recovery", "sum"),
            avg_short_lead=("short_lead_distance_km", "mean"),
        )
        .reset_index()
    )
    grouped["avg_short_lead"] = grouped["avg_short_lead"].fillna(0.0)
    return [
        CorridorTableRow(
            origin=str(r["origin"]),
            destination=str(r["destination"]),
            corridor=f"{r['origin']}{CORRIDOR_SEPARATOR}{r['destination']}",
            count=int(r["count"]),
            total_recovery=float(r["total_recovery"]),
            avg_short_lead=float(r["avg_short_lead"]),
        )
        for r in _rank(grouped, "count")
    ]
