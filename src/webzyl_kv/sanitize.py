"""JSON validation and cleanup for values read from the KV namespace.

Values written by hand through the dashboard or by older tooling sometimes
carry a UTF-8 byte-order mark or stray C0 control characters. Both make
``JSON.parse`` in the worker fail. Cleanup removes a single leading BOM and
the control characters other than TAB, LF and CR; a value that is broken in
any other way stays broken and is reported for manual repair.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Union

from .core.serialize import canonical_json
from .errors import KVJsonError
from .store.base import KVStore

BOM = "\ufeff"
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def sanitize_text(text: str) -> str:
    if text.startswith(BOM):
        text = text[1:]
    return _CONTROL_RE.sub("", text)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name} in JSON")


def _parse_int(literal: str) -> int | float:
    # Integers past the interpreter digit limit are read as doubles.
    try:
        return int(literal)
    except ValueError:
        return float(literal)


def strict_loads(text: str) -> Any:
    """Parse ``text`` as strict RFC 8259 JSON.

    ``json.loads`` already refuses a leading BOM and raw control characters
    inside strings; ``NaN`` and ``Infinity`` are refused here as well.
    Input nested too deeply for the decoder raises ``ValueError``.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant, parse_int=_parse_int)
    except RecursionError as exc:
        raise ValueError("JSON nesting is too deep to parse") from exc


@dataclass(frozen=True)
class AlreadyValid:
    value: Any


@dataclass(frozen=True)
class Fixable:
    sanitized: str
    value: Any
    canonical: str


@dataclass(frozen=True)
class Invalid:
    reason: str
    detail: str = ""

    @property
    def message(self) -> str:
        if self.reason == "unchanged":
            return "JSON parse failed and sanitization made no changes."
        if self.reason == "unserializable":
            return f"parses after sanitization but cannot be rewritten: {self.detail}"
        return f"still fails after sanitization: {self.detail}"


Classification = Union[AlreadyValid, Fixable, Invalid]


def classify(text: str) -> Classification:
    try:
        return AlreadyValid(strict_loads(text))
    except ValueError:
        pass

    sanitized = sanitize_text(text)
    if sanitized == text:
        return Invalid("unchanged")

    try:
        value = strict_loads(sanitized)
    except ValueError as exc:
        return Invalid("unparseable", str(exc))
    try:
        canonical = canonical_json(value)
    except ValueError as exc:
        return Invalid("unserializable", str(exc))
    return Fixable(sanitized, value, canonical)


def read_json_safe(store: KVStore, key: str) -> Any:
    """Return the parsed JSON stored under ``key``, or ``None`` when it is empty.

    Applies the sanitize-and-retry fallback but never writes back.
    Raises ``KVStoreError`` when the read fails and ``KVJsonError`` when the
    value cannot be parsed even after cleanup.
    """
    text = store.get_text(key)
    if not text:
        return None
    try:
        return strict_loads(text)
    except ValueError as exc:
        original_error = str(exc)
    sanitized = sanitize_text(text)
    if sanitized != text:
        try:
            return strict_loads(sanitized)
        except ValueError:
            pass
    raise KVJsonError(key, original_error)


__all__ = [
    "AlreadyValid",
    "BOM",
    "Classification",
    "Fixable",
    "Invalid",
    "classify",
    "read_json_safe",
    "sanitize_text",
    "strict_loads",
]
