from __future__ import annotations

import argparse

from ..cli.output import emit
from ..contracts import validate
from ..core.context import RunContext
from ..core.serialize import canonical_json
from ..errors import KVJsonError, KVStoreError, ScriptError
from ..exit_codes import ERR_STORE, ERR_VALIDATION, OK
from ..sanitize import read_json_safe, strict_loads
from ._shared import add_store_arguments, build_store, config_from_namespace


def configure_get_parser(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("get", help="read one key as JSON, tolerating a BOM or control characters")
    p.add_argument("key")
    add_store_arguments(p)


def run_get_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    store = build_store(ctx, config_from_namespace(ns))
    try:
        value = read_json_safe(store, ns.key)
    except KVStoreError as exc:
        raise ScriptError(str(exc), ERR_STORE, kind="store_failed") from exc
    except KVJsonError as exc:
        raise ScriptError(str(exc), ERR_VALIDATION, kind="invalid_json") from exc
    canonical = canonical_json(value)
    if ctx.as_json:
        payload = {
            "schema_name": "webzyl_kv.value.v1",
            "schema_version": 1,
            "tool": "webzyl-kv",
            "status": "ok",
            "run_id": ctx.run_id,
            "key": ns.key,
            "found": value is not None,
            "value": strict_loads(canonical),
        }
        validate("webzyl_kv.value.v1", payload)
        emit(payload, as_json=True)
    else:
        print(canonical)
    return OK
