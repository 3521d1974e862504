from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import DashboardFiltersModel, DateRangeModel, FilterOptionsResponse
from diversion_core.charts import dashboard_charts
from diversion_core.config import get_settings
from diversion_core.context import build_context_summary, estimate_token_count
from diversion_core.data import SheetData, load_dashboard_data, records_frame
from diversion_core.filters import DashboardFilters, extract_filter_options, normalize_filters
from diversion_core.model import DashboardModel, build_dashboard_model


app = FastAPI(title="Diversion Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _load() -> SheetData:
    data = load_dashboard_data()
    if data.error:
        raise RuntimeError(data.error)
    return data


def _model(filters: DashboardFiltersModel) -> tuple[SheetData, DashboardFilters, DashboardModel]:
    data = _load()
    f = _filters_from_model(filters)
    model = build_dashboard_model(
        data.records, f, large_dataset_threshold=get_settings().large_dataset_threshold
    )
    return data, f, model


@app.get("/meta/filters")
def meta_filters():
    try:
        data = _load()
        options = extract_filter_options(data.records)
        payload = FilterOptionsResponse(
            branches=options.branches,
            consignees=options.consignees,
            date_range=DateRangeModel(**asdict(options.date_range)),
            total_rows=len(data.records),
            fetched_at=data.fetched_at,
        )
        return _json(payload.model_dump())
    except Exception as exc:
        logger.exception("meta_filters failed")
        return _error(exc)


@app.post("/dashboard")
def dashboard(filters: DashboardFiltersModel):
    try:
        data, _, model = _model(filters)
        payload = model.to_dict(include_rows=False)
        payload["fetched_at"] = data.fetched_at
        return _json(payload)
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/rows")
def rows(
    filters: DashboardFiltersModel,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=500, ge=1, le=5000),
):
    try:
        _, _, model = _model(filters)
        page = model.filtered_rows[offset : offset + limit]
        return _json({"total": model.filtered_count, "offset": offset, "rows": [asdict(r) for r in page]})
    except Exception as exc:
        logger.exception("rows failed")
        return _error(exc)


@app.post("/charts")
def charts(filters: DashboardFiltersModel):
    try:
        _, _, model = _model(filters)
        return _json(dashboard_charts(model.branch_chart, model.consignee_chart))
    except Exception as exc:
        logger.exception("charts failed")
        return _error(exc)


@app.post("/context")
def context(filters: DashboardFiltersModel, last_updated: Optional[str] = Query(default=None)):
    try:
        data, f, model = _model(filters)
        summary = build_context_summary(model, f, last_updated or data.fetched_at)
        return _json({"context": summary, "estimated_tokens": estimate_token_count(summary)})
    except Exception as exc:
        logger.exception("context failed")
        return _error(exc)


@app.post("/export/{view}")
def export_view(view: str, filters: DashboardFiltersModel):
    try:
        _, _, model = _model(filters)
    except Exception as exc:
        logger.exception("export failed")
        return _error(exc)

    filename = f"{view}.csv"
    if view == "rows":
        export_df = records_frame(model.filtered_rows)
    elif view == "branches":
        export_df = pd.DataFrame([asdict(r) for r in model.branch_table])
    elif view == "consignees":
        export_df = pd.DataFrame([asdict(r) for r in model.consignee_table])
    elif view == "corridors":
        export_df = pd.DataFrame([asdict(r) for r in model.corridor_table])
    elif view in {"penalty", "penalty-candidates"}:
        export_df = pd.DataFrame([asdict(r) for r in model.penalty_candidates])
        filename = "penalty_candidates.csv"
    else:
        export_df = pd.DataFrame()

    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
