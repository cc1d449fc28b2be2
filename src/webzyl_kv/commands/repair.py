from __future__ import annotations

import argparse
import sys

from ..contracts import validate
from ..core.context import RunContext
from ..exit_codes import OK
from ..repair import KVRepairJob
from ..cli.output import emit
from ._shared import add_store_arguments, build_store, config_from_namespace


def configure_repair_parser(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("repair", help="rewrite KV JSON values broken by a BOM or control characters")
    add_store_arguments(p)
    p.add_argument("--prefix", help="key prefix to scan (default: config:)")
    p.add_argument("--dry-run", action="store_true", help="classify and report without writing")
    p.add_argument("--max-value-bytes", type=int, help="skip values larger than this")
    p.add_argument("--backup-dir", help="save original values here before rewriting them")


def run_repair_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    config = config_from_namespace(ns, ("prefix", "max_value_bytes", "backup_dir"))
    store = build_store(ctx, config)
    job = KVRepairJob(
        ctx,
        store,
        namespace_id=store.namespace_id,
        prefix=config.prefix,
        dry_run=ns.dry_run,
        max_value_bytes=config.max_value_bytes,
        backup_dir=config.backup_dir,
        out=sys.stderr if ctx.as_json else None,
    )
    report = job.run()
    if ctx.as_json:
        payload = report.to_payload(ctx.run_id)
        validate("webzyl_kv.repair_report.v1", payload)
        emit(payload, as_json=True)
    return OK
