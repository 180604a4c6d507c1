"""Coercion of loosely typed values at the ingestion boundary.

Session payloads, UniProt records and parsed tables hand us strings, numbers,
booleans, numpy scalars, lists and dicts interchangeably.  Everything that
enters the typed models goes through one of these helpers so the rest of the
package only ever sees ``str``, ``float``, ``int``, ``bool``, ``list`` or
``dict``.
"""
import math
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd


def to_scalar(value: Any) -> Any:
    """Unwrap numpy scalars and turn missing markers (NaN, NA, NaT) into ``None``."""
    if isinstance(value, (list, dict, tuple, set)):
        return value
    if isinstance(value, np.generic):
        value = value.item()
    if value is None:
        return None
    try:
        if pd.isnull(value):
            return None
    except (TypeError, ValueError):
        return value
    return value


def to_float(value: Any) -> float:
    """Numeric value or NaN.  Booleans are not numbers here."""
    value = to_scalar(value)
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def to_int(value: Any) -> Optional[int]:
    """Integer from an int, a float or a numeric string; ``None`` otherwise."""
    value = to_scalar(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    number = to_float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


def to_text(value: Any) -> str:
    value = to_scalar(value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_bool(value: Any, default: bool = False) -> bool:
    value = to_scalar(value)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
    return default


def to_optional_float(value: Any) -> Optional[float]:
    number = to_float(value)
    return None if math.isnan(number) else number


def to_str_list(value: Any) -> List[str]:
    """A list of strings; a bare string becomes a one-element list."""
    value = to_scalar(value)
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [to_text(v) for v in value if to_scalar(v) is not None]
    return []


def to_dict(value: Any) -> Dict:
    return dict(value) if isinstance(value, dict) else {}


def is_finite(number: float) -> bool:
    return not (math.isnan(number) or math.isinf(number))
