from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import quote

import pandas as pd

from diversion_core.config import Settings, get_settings
from diversion_core.normalize import normalize_batch
from diversion_core.schema import NUMERIC_FIELDS, RECORD_COLUMNS, DiversionRow


logger = logging.getLogger(__name__)

SHEET_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv&sheet={tab}"


# ---------------- Frames over normalized records ----------------
def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
    return df


def records_frame(records: Iterable[DiversionRow]) -> pd.DataFrame:
    """One row per record, positional index aligned with the input order."""
    df = pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
    df = numericize(df, NUMERIC_FIELDS)
    df["is_potential_diversion"] = df["is_potential_diversion"].astype(bool)
    return df


def anomaly_frame(records: Iterable[DiversionRow]) -> pd.DataFrame:
    """Diversion rows only, plus `recovery` (|freight impact|, 0 when missing) and
    `journey_key` (journey id, NaN when blank so distinct counts skip it)."""
    df = records_frame(records)
    df = df[df["is_potential_diversion"]].copy()
    df["recovery"] = df["freight_impact"].abs().fillna(0.0)
    df["journey_key"] = df["journey_id"].where(df["journey_id"] != "")
    return df


def distinct_count(series: pd.Series) -> int:
    return int(series[series != ""].dropna().nunique())


# ---------------- Source loading ----------------
@dataclass(frozen=True)
class SheetData:
    records: List[DiversionRow] = field(default_factory=list)
    fetched_at: str = ""
    error: Optional[str] = None


def sheet_csv_url(sheet_id: str, tab: str) -> str:
    return SHEET_URL_TEMPLATE.format(sheet_id=sheet_id, tab=quote(tab))


def read_raw_rows(source: Union[str, Path, object]) -> List[Dict[str, object]]:
    """Read a CSV export into generic rows; every cell stays text."""
    df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
    df.columns = [str(c).strip() for c in df.columns]
    df = drop_duplicate_columns(df)
    return df.to_dict(orient="records")


def file_signature(path: Path) -> Tuple[str, float]:
    return str(path), path.stat().st_mtime


@lru_cache(maxsize=4)
def _load_file_cached(file_sig: Tuple[str, float]) -> Tuple[DiversionRow, ...]:
    path, _ = file_sig
    return tuple(normalize_batch(read_raw_rows(path)))


def load_records(settings: Settings) -> List[DiversionRow]:
    if settings.source_path is not None:
        return list(_load_file_cached(file_signature(settings.source_path)))
    if settings.sheet_id:
        return normalize_batch(read_raw_rows(sheet_csv_url(settings.sheet_id, settings.sheet_tab)))
    raise FileNotFoundError("No data source configured: set DIVERSION_SOURCE_PATH or DIVERSION_SHEET_ID")


def load_dashboard_data(settings: Optional[Settings] = None) -> SheetData:
    settings = settings or get_settings()
    fetched_at = datetime.now(timezone.utc).isoformat()
    try:
        records = load_records(settings)
    except Exception as exc:
        logger.exception("Loading diversion data failed")
        return SheetData(records=[], fetched_at=fetched_at, error=str(exc))
    logger.info("Loaded %d diversion records", len(records))
    return SheetData(records=records, fetched_at=fetched_at)
