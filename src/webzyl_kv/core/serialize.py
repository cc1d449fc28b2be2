"""Canonical JSON serialization helpers."""

from __future__ import annotations

import json
import math
import re
from typing import Any

_LONE_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def dumps_json(payload: Any, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(payload, indent=2, sort_keys=True)
    return json.dumps(payload, sort_keys=True)


def _finite(value: Any) -> Any:
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite(v) for v in value]
    return value


def canonical_json(value: Any) -> str:
    """Compact JSON with keys in input order, the way ``JSON.stringify`` writes it.

    Non-finite floats become ``null`` and lone surrogates are written as
    ``\\uXXXX`` escapes, so the result is always encodable as UTF-8.
    Raises ``ValueError`` when ``value`` is nested too deeply to serialize.
    """
    try:
        text = json.dumps(_finite(value), separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except RecursionError as exc:
        raise ValueError("value is nested too deeply to serialize") from exc
    return _LONE_SURROGATE_RE.sub(lambda m: f"\\u{ord(m.group()):04x}", text)
