"""Compact, aggregate-only view of a `DashboardModel` for a text assistant.

No raw rows leave this module: only scorecards, the top of each ranked table
and dataset statistics, with numbers rounded for a short payload.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from diversion_core.filters import DashboardFilters
from diversion_core.metrics_summary import compute_diversion_rate
from diversion_core.model import DashboardModel


TOP_GROUPS = 10
TOP_CANDIDATES = 20


def round_half_up(value: Optional[float], ndigits: int = 0) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def build_filter_summary(filters: DashboardFilters, model: DashboardModel) -> str:
    parts: List[str] = []
    if filters.date_from and filters.date_to:
        parts.append(f"Date: {filters.date_from} to {filters.date_to}")
    elif filters.date_from:
        parts.append(f"From: {filters.date_from}")
    elif filters.date_to:
        parts.append(f"Until: {filters.date_to}")
    if filters.branch:
        parts.append(f"Branch: {filters.branch}")
    if filters.consignee:
        parts.append(f"Consignee: {filters.consignee}")
    if filters.min_freight_impact:
        parts.append(f"Min Impact: ₹{abs(filters.min_freight_impact):,.0f}")
    parts.append("Diversions only" if filters.only_diversions else "All loads")
    return f"{' | '.join(parts)} → {model.filtered_count} of {model.total_rows} records"


def build_context_summary(
    model: DashboardModel, filters: DashboardFilters, last_updated: Optional[str] = None
) -> Dict[str, Any]:
    sc = model.scorecards
    return {
        "filter_summary": build_filter_summary(filters, model),
        "scorecards": {
            "total_potential_recovery": round_half_up(sc.total_potential_recovery),
            "avg_short_lead_distance_km": round_half_up(sc.avg_short_lead_distance, 1),
            "max_diverted_distance_km": round_half_up(sc.max_diverted_distance, 1),
            "total_diverted_journeys": sc.total_diverted_journeys,
            "total_consignees_involved": sc.total_consignees_involved,
            "total_branches_with_diversions": sc.total_branches_with_diversions,
        },
        "top_branches": [
            {
                "name": b.branch_name,
                "journeys": b.diverted_journeys,
                "recovery": round_half_up(b.total_recovery),
                "avg_lead_km": round_half_up(b.avg_short_lead, 1),
            }
            for b in model.branch_table[:TOP_GROUPS]
        ],
        "top_consignees": [
            {
                "name": c.consignee,
                "journeys": c.diverted_journeys,
                "recovery": round_half_up(c.total_recovery),
                "repeat_pct": round_half_up(c.repeat_rate, 1),
            }
            for c in model.consignee_table[:TOP_GROUPS]
        ],
        "top_corridors": [
            {
                "corridor": c.corridor,
                "count": c.count,
                "recovery": round_half_up(c.total_recovery),
                "avg_lead_km": round_half_up(c.avg_short_lead, 1),
            }
            for c in model.corridor_table[:TOP_GROUPS]
        ],
        "top_penalty_candidates": [
            {
                "journey_id": p.journey_id,
                "branch": p.branch_name,
                "consignee": p.consignee,
                "recovery": round_half_up(p.recovery_amount),
                "lead_km": round_half_up(p.short_lead_distance, 1),
                "date": p.date,
            }
            for p in model.penalty_candidates[:TOP_CANDIDATES]
        ],
        "dataset_stats": {
            "total_rows": model.total_rows,
            "filtered_rows": model.filtered_count,
            "diversion_rate_pct": round_half_up(compute_diversion_rate(model.filtered_rows), 1),
            "date_range_min": model.filter_options.date_range.min,
            "date_range_max": model.filter_options.date_range.max,
            "last_updated": last_updated or datetime.now(timezone.utc).isoformat(),
        },
    }


def estimate_token_count(context: Dict[str, Any]) -> int:
    """Rough size estimate, ~4 characters per token."""
    return math.ceil(len(json.dumps(context, ensure_ascii=False)) / 4)
