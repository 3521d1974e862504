from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

# Tried in order before falling back to pandas' own parser. ISO first, since
# every record's `date_iso` is already in that form.
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"
DATE_FORMATS = (ISO_FORMAT, "%d/%m/%Y", "%Y-%m-%d %H:%M:%S")
# pandas resolves these against the wall clock.
RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def is_missing(value: object) -> bool:
    if value is None:
        return True
    if not pd.api.types.is_scalar(value):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def coerce_string(value: object) -> str:
    """None/NaN -> "", otherwise the trimmed text form.

    Integral floats render without the trailing ".0" so numeric spreadsheet ids
    (12345.0) keep their natural form.
    """
    if is_missing(value):
        return ""
    if isinstance(value, (float, np.floating)) and math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value).strip()


def coerce_number(value: object) -> Optional[float]:
    if is_missing(value) or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        try:
            out = float(value)
        except (OverflowError, ValueError):
            logger.warning("Numeric value out of range, treating as missing")
            return None
        return out if math.isfinite(out) else None
    s = str(value).strip().replace(",", "")
    if not s:
        return None
    try:
        out = float(s)
    except (OverflowError, ValueError):
        logger.warning("Could not parse numeric value %r", value)
        return None
    if not math.isfinite(out):
        return None
    return out


def parse_instant(value: object) -> Optional[pd.Timestamp]:
    """Parse free-text dates into a naive (UTC for zoned inputs) Timestamp, or None.

    Relative words such as "today" are unparseable: the same text must always
    give the same instant.
    """
    text = coerce_string(value)
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            return pd.Timestamp(datetime.strptime(text, fmt))
        except ValueError:
            continue
    if text.lower() in RELATIVE_DATE_WORDS:
        return None
    try:
        ts = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def coerce_date_to_instant(value: object) -> str:
    """ISO-8601 instant for parseable dates; the trimmed original text otherwise.

    Callers must not assume the result is ISO: run it through `parse_instant`
    before comparing.
    """
    text = coerce_string(value)
    if not text:
        return ""
    ts = parse_instant(text)
    if ts is None:
        logger.warning("Could not parse date %r, keeping original text", text)
        return text
    return ts.strftime(ISO_FORMAT)
