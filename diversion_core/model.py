from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Union

from diversion_core.config import LARGE_DATASET_THRESHOLD
from diversion_core.filters import DashboardFilters, FilterOptions, apply_filters, extract_filter_options, normalize_filters
from diversion_core.metrics_penalty import PenaltyCandidateRow, compute_penalty_candidates
from diversion_core.metrics_summary import ChartPoint, Scorecards, compute_branch_chart, compute_consignee_chart, compute_scorecards
from diversion_core.metrics_tables import (
    BranchTableRow,
    ConsigneeTableRow,
    CorridorTableRow,
    compute_branch_table,
    compute_consignee_table,
    compute_corridor_table,
)
from diversion_core.schema import DiversionRow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardModel:
    """Snapshot consumed by presentation layers. Treat as read-only."""

    filtered_rows: List[DiversionRow] = field(default_factory=list)
    total_rows: int = 0
    filtered_count: int = 0
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    scorecards: Scorecards = field(default_factory=Scorecards)
    branch_chart: List[ChartPoint] = field(default_factory=list)
    consignee_chart: List[ChartPoint] = field(default_factory=list)
    branch_table: List[BranchTableRow] = field(default_factory=list)
    consignee_table: List[ConsigneeTableRow] = field(default_factory=list)
    corridor_table: List[CorridorTableRow] = field(default_factory=list)
    penalty_candidates: List[PenaltyCandidateRow] = field(default_factory=list)
    large_dataset: bool = False

    def to_dict(self, *, include_rows: bool = True) -> Dict[str, Any]:
        payload = asdict(self)
        if not include_rows:
            payload.pop("filtered_rows")
        return payload


def _as_filters(filters: Union[DashboardFilters, Mapping]) -> DashboardFilters:
    if isinstance(filters, DashboardFilters):
        return filters
    if isinstance(filters, Mapping):
        return normalize_filters(dict(filters))
    raise TypeError(f"filters must be DashboardFilters or a mapping, got {type(filters).__name__}")


def build_dashboard_model(
    all_records: Iterable[DiversionRow],
    filters: Union[DashboardFilters, Mapping],
    *,
    large_dataset_threshold: int = LARGE_DATASET_THRESHOLD,
) -> DashboardModel:
    filt = _as_filters(filters)
    all_records = list(all_records)

    # Options always span the unfiltered records.
    filter_options = extract_filter_options(all_records)
    filtered = apply_filters(all_records, filt)

    large_dataset = len(all_records) >= large_dataset_threshold
    if large_dataset:
        logger.warning("Large dataset: %d rows (threshold %d)", len(all_records), large_dataset_threshold)

    return DashboardModel(
        filtered_rows=filtered,
        total_rows=len(all_records),
        filtered_count=len(filtered),
        filter_options=filter_options,
        scorecards=compute_scorecards(filtered),
        branch_chart=compute_branch_chart(filtered),
        consignee_chart=compute_consignee_chart(filtered),
        branch_table=compute_branch_table(filtered),
        consignee_table=compute_consignee_table(filtered),
        corridor_table=compute_corridor_table(filtered),
        penalty_candidates=compute_penalty_candidates(filtered),
        large_dataset=large_dataset,
    )
