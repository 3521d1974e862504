from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from diversion_core.data import anomaly_frame
from diversion_core.schema import DiversionRow


@dataclass(frozen=True)
class PenaltyCandidateRow:
    journey_id: str
    branch_name: str
    consignee: str
    diff_in_lead: Optional[float]
    freight_impact: Optional[float]
    recovery_amount: Optional[float]
    short_lead_distance: Optional[float]
    origin_location: str
    stop_location: str
    drop_closest_ping_address: str
    date: str


def to_candidate(r: DiversionRow) -> PenaltyCandidateRow:
    return PenaltyCandidateRow(
        journey_id=r.journey_id,
        branch_name=r.branch_name,
        consignee=r.nearest_consignee,
        diff_in_lead=r.diff_in_lead,
        freight_impact=r.freight_impact,
        recovery_amount=abs(r.freight_impact) if r.freight_impact is not None else None,
        short_lead_distance=r.short_lead_distance_km,
        origin_location=r.origin_location,
        stop_location=r.stop_location,
        drop_closest_ping_address=r.drop_closest_ping_address,
        date=r.date,
    )


def compute_penalty_candidates(rows: Iterable[DiversionRow], limit: int = 20) -> List[PenaltyCandidateRow]:
    """Diversions with a known freight impact, largest |impact| first."""
    rows = list(rows)
    df = anomaly_frame(rows)
    df = df[df["freight_impact"].notna()]
    top = df.sort_values("recovery", ascending=False, kind="mergesort").head(max(0, int(limit)))
    # Frame index is the position in `rows`.
    return [to_candidate(rows[i]) for i in top.index]
