from __future__ import annotations

import json
from typing import Protocol


class KVStore(Protocol):
    """Narrow key-value access used by the repair job. Failures raise ``KVStoreError``."""

    def list_keys(self, prefix: str) -> str:
        """Return the raw listing output for keys under ``prefix``."""

    def get_text(self, key: str) -> str:
        """Return the stored value of ``key`` as text, exactly as stored."""

    def put_text(self, key: str, text: str) -> None:
        """Replace the value of ``key`` with ``text``."""


def parse_key_listing(raw: str) -> list[str]:
    """Extract key names from a listing shaped as ``[{"name": ...}, ...]``.

    Raises ``ValueError`` when ``raw`` is not a JSON array. Entries without a
    non-empty string name are dropped.
    """
    rows = json.loads(raw)
    if not isinstance(rows, list):
        raise ValueError(f"expected a JSON array of keys, got {type(rows).__name__}")
    names: list[str] = []
    for row in rows:
        name = row.get("name") if isinstance(row, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
    return names
