"""JSON serialization of decoded values.

Decoded trees may contain ``bytes`` (IDL ``bytes`` fields) which JSON cannot
represent; they are emitted as arrays of integers. Key order is preserved,
never sorted: field order is the declaration order of the IDL.
"""

import json
import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


def to_jsonable(obj: Any) -> Any:
    """Convert a decoded tree into JSON-compatible Python values.

    Rules:
    - bytes/bytearray -> list of ints
    - NaN/Infinity floats -> "NaN", "Infinity", "-Infinity"
    - tuples -> lists
    - pydantic models -> ``model_dump(mode="json")``
    - str Enums -> their value
    - dicts keep insertion order; keys become strings
    """
    if isinstance(obj, (bytes, bytearray)):
        return list(obj)
    if isinstance(obj, float) and not math.isfinite(obj):
        return "NaN" if math.isnan(obj) else ("Infinity" if obj > 0 else "-Infinity")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def dumps_decoded(obj: Any, indent: Optional[int] = 2) -> str:
    """Serialize a decoded tree; byte-stable for identical input.

    Args:
        obj: Decoded value, list of decoded instructions, or account JSON
        indent: Pretty-print indent, or None for compact separators

    Returns:
        JSON string (UTF-8, non-ASCII preserved)
    """
    separators = (",", ":") if indent is None else (",", ": ")
    return json.dumps(
        to_jsonable(obj),
        indent=indent,
        separators=separators,
        ensure_ascii=False,
        allow_nan=False,
    )
