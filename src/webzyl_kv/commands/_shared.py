from __future__ import annotations

import argparse

from ..config import RepairConfig, load_config
from ..core.context import RunContext
from ..store.wrangler import WranglerStore

_STORE_FIELDS = ("namespace_id", "wrangler_bin", "remote", "timeout_seconds")


def add_store_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--namespace-id", dest="namespace_id", help="KV namespace id")
    parser.add_argument("--wrangler", dest="wrangler_bin", help="wrangler executable (default: wrangler)")
    parser.add_argument(
        "--local",
        dest="remote",
        action="store_false",
        default=None,
        help="target the local dev namespace instead of --remote",
    )
    parser.add_argument("--timeout-seconds", type=float, help="timeout for each wrangler call")
    parser.add_argument("--json", action="store_true", default=argparse.SUPPRESS, help="emit JSON output")


def config_from_namespace(ns: argparse.Namespace, extra_fields: tuple[str, ...] = ()) -> RepairConfig:
    overrides = {name: getattr(ns, name, None) for name in (*_STORE_FIELDS, *extra_fields)}
    return load_config(overrides, getattr(ns, "config", None), require_namespace=True)


def build_store(ctx: RunContext, config: RepairConfig) -> WranglerStore:
    return WranglerStore(
        namespace_id=config.require_namespace(),
        wrangler_bin=config.wrangler_bin,
        remote=config.remote,
        timeout_seconds=config.timeout_seconds,
        ctx=ctx,
    )
