from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)

DEFAULT_SHEET_TAB = "Sheet1"
LARGE_DATASET_THRESHOLD = 50_000
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass(frozen=True)
class Settings:
    sheet_id: str = ""
    sheet_tab: str = DEFAULT_SHEET_TAB
    source_path: Optional[Path] = None
    large_dataset_threshold: int = LARGE_DATASET_THRESHOLD
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %d", name, raw, default)
        return default


def settings_from_env() -> Settings:
    source_path = (os.getenv("DIVERSION_SOURCE_PATH") or "").strip()
    origins = [o.strip() for o in (os.getenv("DIVERSION_CORS_ORIGINS") or "").split(",") if o.strip()]
    return Settings(
        sheet_id=(os.getenv("DIVERSION_SHEET_ID") or "").strip(),
        sheet_tab=(os.getenv("DIVERSION_SHEET_TAB") or "").strip() or DEFAULT_SHEET_TAB,
        source_path=Path(source_path) if source_path else None,
        large_dataset_threshold=_env_int("DIVERSION_LARGE_DATASET_ROWS", LARGE_DATASET_THRESHOLD),
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return settings_from_env()
