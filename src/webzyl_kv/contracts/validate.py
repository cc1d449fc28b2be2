from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import jsonschema

from ..errors import ScriptError
from ..exit_codes import ERR_VALIDATION
from .schema import schemas_root


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    version: int
    file: str


def load_catalog() -> dict[str, CatalogEntry]:
    raw = json.loads((schemas_root() / "catalog.json").read_text(encoding="utf-8"))
    entries: dict[str, CatalogEntry] = {}
    for row in raw.get("schemas", []):
        entry = CatalogEntry(name=row["name"], version=int(row["version"]), file=row["file"])
        entries[entry.name] = entry
    return entries


def load_schema(schema_name: str) -> dict[str, Any]:
    entry = load_catalog().get(schema_name)
    if entry is None:
        raise ScriptError(f"unknown schema: {schema_name}", ERR_VALIDATION)
    return json.loads((schemas_root() / entry.file).read_text(encoding="utf-8"))


def validate(schema_name: str, payload: Any, code: int = ERR_VALIDATION) -> None:
    try:
        jsonschema.validate(payload, load_schema(schema_name))
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        raise ScriptError(
            f"schema validation failed for {schema_name} at {loc}: {exc.message}",
            code,
            kind="schema_validation",
        ) from exc
