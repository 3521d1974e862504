from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    date_from: str = ""
    date_to: str = ""
    branch: str = ""
    consignee: str = ""
    min_freight_impact: Optional[float] = None
    only_diversions: bool = True


class DateRangeModel(BaseModel):
    min: str = ""
    max: str = ""


class FilterOptionsResponse(BaseModel):
    branches: List[str] = Field(default_factory=list)
    consignees: List[str] = Field(default_factory=list)
    date_range: DateRangeModel = Field(default_factory=DateRangeModel)
    total_rows: int = 0
    fetched_at: str = ""
