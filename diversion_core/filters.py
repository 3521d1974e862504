from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional

import pandas as pd

from diversion_core.coerce import coerce_number, coerce_string, parse_instant
from diversion_core.schema import DiversionRow


logger = logging.getLogger(__name__)

REJECT_NOT_DIVERSION = "not_diversion"
REJECT_BRANCH = "branch"
REJECT_CONSIGNEE = "consignee"
REJECT_FREIGHT_IMPACT = "freight_impact"
REJECT_UNPARSED_DATE = "unparsed_date"
REJECT_DATE_RANGE = "date_range"

END_OF_DAY = pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)


@dataclass(frozen=True)
class DashboardFilters:
    date_from: str = ""
    date_to: str = ""
    branch: str = ""
    consignee: str = ""
    min_freight_impact: Optional[float] = None
    only_diversions: bool = True


DEFAULT_FILTERS = DashboardFilters()


@dataclass(frozen=True)
class DateRange:
    min: str = ""
    max: str = ""


@dataclass(frozen=True)
class FilterOptions:
    branches: List[str] = field(default_factory=list)
    consignees: List[str] = field(default_factory=list)
    date_range: DateRange = field(default_factory=DateRange)


class DateBounds(NamedTuple):
    active: bool
    start: Optional[pd.Timestamp]
    end: Optional[pd.Timestamp]


def _as_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        s = value.strip().lower()
        if s in {"true", "1", "yes", "on"}:
            return True
        if s in {"false", "0", "no", "off"}:
            return False
        return default
    return bool(value)


def normalize_filters(raw: dict) -> DashboardFilters:
    return DashboardFilters(
        date_from=coerce_string(raw.get("date_from")),
        date_to=coerce_string(raw.get("date_to")),
        branch=coerce_string(raw.get("branch")),
        consignee=coerce_string(raw.get("consignee")),
        min_freight_impact=coerce_number(raw.get("min_freight_impact")),
        only_diversions=_as_bool(raw.get("only_diversions"), True),
    )


def has_active_filters(filters: DashboardFilters) -> bool:
    return filters != DEFAULT_FILTERS


def _parse_bound(value: str, name: str) -> Optional[pd.Timestamp]:
    if not value:
        return None
    ts = parse_instant(value)
    if ts is None:
        logger.warning("Ignoring unparseable %s filter %r", name, value)
    return ts


def date_bounds(filters: DashboardFilters) -> DateBounds:
    start = _parse_bound(filters.date_from, "date_from")
    end = _parse_bound(filters.date_to, "date_to")
    if end is not None:
        # A same-day upper bound covers that whole day.
        end = end.normalize() + END_OF_DAY
    return DateBounds(active=bool(filters.date_from or filters.date_to), start=start, end=end)


def record_instant(record: DiversionRow) -> Optional[pd.Timestamp]:
    return parse_instant(record.date_iso or record.date)


def rejection_reason(record: DiversionRow, filters: DashboardFilters, bounds: DateBounds) -> Optional[str]:
    """First failing check for `record`, cheapest first; None when it passes."""
    if filters.only_diversions and not record.is_potential_diversion:
        return REJECT_NOT_DIVERSION
    if filters.branch and record.branch_name != filters.branch:
        return REJECT_BRANCH
    if filters.consignee and record.nearest_consignee != filters.consignee:
        return REJECT_CONSIGNEE
    if filters.min_freight_impact:
        impact = record.freight_impact
        if impact is None or abs(impact) < abs(filters.min_freight_impact):
            return REJECT_FREIGHT_IMPACT
    if bounds.active:
        instant = record_instant(record)
        if instant is None:
            return REJECT_UNPARSED_DATE
        if bounds.start is not None and instant < bounds.start:
            return REJECT_DATE_RANGE
        if bounds.end is not None and instant > bounds.end:
            return REJECT_DATE_RANGE
    return None


def matches(record: DiversionRow, filters: DashboardFilters) -> bool:
    return rejection_reason(record, filters, date_bounds(filters)) is None


def apply_filters(records: Iterable[DiversionRow], filters: DashboardFilters) -> List[DiversionRow]:
    bounds = date_bounds(filters)
    kept: List[DiversionRow] = []
    undated = 0
    for record in records:
        reason = rejection_reason(record, filters, bounds)
        if reason is None:
            kept.append(record)
        elif reason == REJECT_UNPARSED_DATE:
            undated += 1
    if undated:
        logger.warning("Excluded %d rows with unparseable dates from the date filter", undated)
    return kept


def extract_filter_options(records: Iterable[DiversionRow]) -> FilterOptions:
    branches = set()
    consignees = set()
    min_date: Optional[pd.Timestamp] = None
    max_date: Optional[pd.Timestamp] = None
    for r in records:
        if r.branch_name:
            branches.add(r.branch_name)
        if r.nearest_consignee:
            consignees.add(r.nearest_consignee)
        instant = record_instant(r)
        if instant is not None:
            if min_date is None or instant < min_date:
                min_date = instant
            if max_date is None or instant > max_date:
                max_date = instant
    return FilterOptions(
        branches=sorted(branches),
        consignees=sorted(consignees),
        date_range=DateRange(
            min=min_date.strftime("%Y-%m-%d") if min_date is not None else "",
            max=max_date.strftime("%Y-%m-%d") if max_date is not None else "",
        ),
    )
