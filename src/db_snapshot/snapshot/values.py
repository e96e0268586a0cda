"""Value normalization (export) and denormalization (import).

Export side: driver values are turned into JSON-safe ``NormalizedValue``s --
bytes become base64 text, temporal, decimal and UUID values become strings,
non-finite floats become ``"NaN"`` / ``"Infinity"`` / ``"-Infinity"``, and
oversize strings are truncated with a sentinel suffix.  json/jsonb values
are already decoded by the driver and are carried as-is.

Import side: artifact values are turned back into values the target column
accepts.  Column kinds recorded in the artifact (``columnTypes``) are
authoritative.  Artifacts written without them fall back to target column
metadata plus the legacy base64 heuristic, which can misclassify a long
alphanumeric string as binary.

Usage:
    from db_snapshot.snapshot.values import normalize_row, denormalize_value

    row, truncated = normalize_row(raw_row)
    bound = denormalize_value(row["logo"], target_column, kind="binary")
"""

import base64
import binascii
import json
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from db_snapshot.artifact.models import ColumnKind
from db_snapshot.schema.models import ColumnSchema

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10 * 1024 * 1024
TRUNCATION_SENTINEL = "...[TRUNCATED]"

# Legacy detection: strings longer than this whose first chars are base64
LEGACY_BINARY_MIN_LENGTH = 100
_BASE64_PREFIX = re.compile(r"^[A-Za-z0-9+/]+=*$")

# Single-element PostgreSQL array literal wrapping JSON text: {"{\"a\":1}"}
_PG_ARRAY_OF_JSON = re.compile(r'^\{"(?P<body>[\[{].*[\]}])"\}$', re.DOTALL)

TEXT_TYPES = frozenset({"text", "varchar", "char", "citext", "name"})


# ============================================================================
# Column kinds
# ============================================================================


def column_kind(column: ColumnSchema) -> ColumnKind:
    """Classify a source column by its declared type."""
    if column.is_binary:
        return "binary"
    if column.is_json:
        return "json"
    if column.data_type in TEXT_TYPES:
        return "text"
    return "scalar"


def infer_kind(value: Any) -> ColumnKind | None:
    """Classify a raw driver value when no column metadata is available."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "binary"
    if isinstance(value, (dict, list)):
        return "json"
    if isinstance(value, str):
        return "text"
    return "scalar"


# ============================================================================
# Export: normalization
# ============================================================================


def truncate_text(value: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Cut ``value`` to ``max_length`` characters and append the sentinel."""
    return value[:max_length] + TRUNCATION_SENTINEL


def _non_finite_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def normalize_value(
    value: Any,
    max_text_length: int = MAX_TEXT_LENGTH,
) -> Any:
    """Convert a raw driver value into its transport-safe form.

    json/jsonb values arrive already decoded by the driver and are never
    parsed again: a jsonb string stays a string.  Only top-level strings
    are truncated.
    """
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, str):
        if len(value) > max_text_length:
            return truncate_text(value, max_text_length)
        return value
    if isinstance(value, float) and not math.isfinite(value):
        # NaN / Infinity have no JSON literal
        return _non_finite_text(value)
    if isinstance(value, bool | int | float):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _normalize_nested(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_nested(v) for v in value]
    return str(value)


def _normalize_nested(value: Any) -> Any:
    if isinstance(value, str):
        return value
    return normalize_value(value)


def normalize_row(
    row: dict[str, Any],
    max_text_length: int = MAX_TEXT_LENGTH,
) -> tuple[dict[str, Any], list[str]]:
    """Normalize every value in a row.

    Returns:
        Tuple of (normalized row, names of columns that were truncated).
    """
    normalized: dict[str, Any] = {}
    truncated: list[str] = []
    for col, value in row.items():
        out = normalize_value(value, max_text_length)
        if isinstance(value, str) and len(value) > max_text_length:
            truncated.append(col)
        normalized[col] = out
    return normalized, truncated


# ============================================================================
# Import: denormalization
# ============================================================================


def looks_like_base64(value: Any) -> bool:
    """Legacy heuristic: long string whose first 100 chars are base64."""
    return (
        isinstance(value, str)
        and len(value) > LEGACY_BINARY_MIN_LENGTH
        and _BASE64_PREFIX.match(value[:LEGACY_BINARY_MIN_LENGTH]) is not None
    )


def _looks_like_json_text(value: str) -> bool:
    stripped = value.strip()
    return (stripped.startswith("{") and stripped.endswith("}")) or (
        stripped.startswith("[") and stripped.endswith("]")
    )


def repair_double_encoded(value: Any) -> Any:
    """Unwrap one level of a known double-encoding defect.

    Two shapes are repaired:

    - an object whose single key is itself JSON text, e.g.
      ``{'{"url":"http://x"}': ""}`` -> ``{"url": "http://x"}``
    - a single-element PostgreSQL array literal wrapping JSON text, e.g.
      ``'{"{\\"url\\":\\"http://x\\"}"}'`` -> ``{"url": "http://x"}``

    Any other value is returned unchanged.
    """
    if isinstance(value, dict) and len(value) == 1:
        (key,) = value
        if isinstance(key, str) and _looks_like_json_text(key):
            try:
                return json.loads(key)
            except ValueError:
                return value
        return value

    if isinstance(value, str):
        match = _PG_ARRAY_OF_JSON.match(value.strip())
        if match:
            body = match.group("body").replace('\\"', '"').replace("\\\\", "\\")
            try:
                return json.loads(body)
            except ValueError:
                return value
    return value


def _is_binary(
    value: Any, column: ColumnSchema, kind: ColumnKind | None, typed: bool
) -> bool:
    if not isinstance(value, str):
        return False
    if typed:
        return kind == "binary"
    if column.is_binary:
        return True
    if column.data_type in TEXT_TYPES or column.is_json:
        return False
    return looks_like_base64(value)


def _coerce_scalar(value: Any, data_type: str) -> Any:
    """Turn a transported scalar back into the driver type for ``data_type``."""
    if data_type in ("timestamp", "timestamptz") and isinstance(value, str):
        return datetime.fromisoformat(value)
    if data_type == "date" and isinstance(value, str):
        return date.fromisoformat(value)
    if data_type.startswith("time") and isinstance(value, str):
        return time.fromisoformat(value)
    if data_type == "interval" and isinstance(value, int | float):
        return timedelta(seconds=value)
    if data_type == "numeric" and isinstance(value, str | int | float):
        return Decimal(str(value))
    if data_type == "uuid" and isinstance(value, str):
        return UUID(value)
    if data_type in ("int", "bigint", "smallint") and isinstance(value, str):
        return int(value)
    if data_type in ("real", "double precision") and isinstance(value, str):
        return float(value)
    return value


def denormalize_value(
    value: Any,
    column: ColumnSchema,
    kind: ColumnKind | None = None,
    typed: bool = False,
) -> Any:
    """Convert an artifact value into a bind value for ``column``.

    Args:
        value: Value read from the artifact.
        column: Target column metadata.
        kind: Column kind recorded in the artifact, if any.
        typed: ``True`` when the artifact carries ``columnTypes``; the
            recorded kind is then authoritative and no shape sniffing
            is done.

    Returns:
        The value to bind.  JSON-typed target columns always receive JSON
        text (or ``None``) so the value is cast exactly once.
    """
    if value is None:
        return None

    if column.is_json:
        if isinstance(value, str) and not typed:
            # Legacy artifacts may carry JSON as text
            try:
                value = json.loads(value)
            except ValueError:
                pass
        return json.dumps(repair_double_encoded(value))

    if _is_binary(value, column, kind, typed):
        try:
            return base64.b64decode(value)
        except binascii.Error:
            if typed:
                raise
            # Heuristic match on text that is not actually base64
            logger.debug("Keeping %s value as text: not valid base64", column.name)

    if isinstance(value, (dict, list)):
        if column.data_type == "array" and isinstance(value, list):
            return value
        return json.dumps(repair_double_encoded(value))

    return _coerce_scalar(value, column.data_type)
