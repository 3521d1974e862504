from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import pandas as pd

from diversion_core.data import anomaly_frame, distinct_count
from diversion_core.schema import DiversionRow


@dataclass(frozen=True)
class Scorecards:
    total_potential_recovery: float = 0.0
    avg_short_lead_distance: float = 0.0
    max_diverted_distance: float = 0.0
    total_diverted_journeys: int = 0
    total_consignees_involved: int = 0
    total_branches_with_diversions: int = 0


@dataclass(frozen=True)
class ChartPoint:
    name: str
    recovery: float
    count: int


def compute_scorecards(rows: Iterable[DiversionRow]) -> Scorecards:
    df = anomaly_frame(rows)
    if df.empty:
        return Scorecards()
    short_leads = df["short_lead_distance_km"].dropna()
    return Scorecards(
        total_potential_recovery=float(df["recovery"].sum()),
        avg_short_lead_distance=float(short_leads.mean()) if not short_leads.empty else 0.0,
        max_diverted_distance=float(short_leads.max()) if not short_leads.empty else 0.0,
        total_diverted_journeys=distinct_count(df["journey_id"]),
        total_consignees_involved=distinct_count(df["nearest_consignee"]),
        total_branches_with_diversions=distinct_count(df["branch_name"]),
    )


def _recovery_series(df: pd.DataFrame, key: str, limit: int) -> List[ChartPoint]:
    df = df[df[key] != ""]
    if df.empty:
        return []
    grouped = (
        df.groupby(key, sort=False)
        .agg(recovery=("recovery", "sum"), count=("id", "size"))
        .reset_index()
        .sort_values("recovery", ascending=False, kind="mergesort")
        .head(max(0, int(limit)))
    )
    return [
        ChartPoint(name=str(r[key]), recovery=float(r["recovery"]), count=int(r["count"]))
        for r in grouped.to_dict(orient="records")
    ]


def compute_branch_chart(rows: Iterable[DiversionRow], limit: int = 10) -> List[ChartPoint]:
    return _recovery_series(anomaly_frame(rows), "branch_name", limit)


def compute_consignee_chart(rows: Iterable[DiversionRow], limit: int = 10) -> List[ChartPoint]:
    return _recovery_series(anomaly_frame(rows), "nearest_consignee", limit)


def compute_diversion_rate(rows: Iterable[DiversionRow]) -> float:
    """Share of rows flagged as diversions, in percent."""
    rows = list(rows)
    if not rows:
        return 0.0
    return sum(1 for r in rows if r.is_potential_diversion) / len(rows) * 100
