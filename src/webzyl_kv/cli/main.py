from __future__ import annotations

import argparse
import platform
import sys

from .. import __version__
from ..commands.get import configure_get_parser, run_get_command
from ..commands.repair import configure_repair_parser, run_repair_command
from ..core.context import RunContext
from ..core.logging import log_event
from ..errors import ScriptError
from ..exit_codes import ERR_INTERNAL, ERR_USAGE, OK
from .output import emit, render_error


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="webzyl-kv", description="Webzyl KV maintenance tools")
    p.add_argument("--version", action="version", version=f"webzyl-kv {__version__}")
    p.add_argument("--json", action="store_true", help="emit JSON output")
    p.add_argument("--run-id", help="run identifier for logs and backups")
    p.add_argument("--config", help="YAML config file (default: $WEBZYL_KV_CONFIG)")
    p.add_argument("--log-json", action="store_true", help="emit structured logs as JSON lines")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable verbose diagnostics")
    vg.add_argument("--quiet", action="store_true", help="only emit errors")
    sub = p.add_subparsers(dest="cmd", required=True)

    configure_repair_parser(sub)
    configure_get_parser(sub)
    version_p = sub.add_parser("version", help="print version information")
    version_p.add_argument("--json", action="store_true", default=argparse.SUPPRESS, help="emit JSON output")
    return p


def main(argv: list[str] | None = None) -> int:
    ns = build_parser().parse_args(argv)
    ctx = RunContext.from_args(
        ns.run_id,
        "json" if ns.json else "text",
        ns.verbose,
        ns.quiet,
        ns.log_json,
    )
    try:
        log_event(ctx, "debug", "cli", "start", cmd=ns.cmd, fmt=ctx.output_format)
        if ns.cmd == "version":
            emit(
                {
                    "schema_version": 1,
                    "tool": "webzyl-kv",
                    "version": __version__,
                    "python": platform.python_version(),
                },
                ctx.as_json,
            )
            return OK
        if ns.cmd == "repair":
            return run_repair_command(ctx, ns)
        if ns.cmd == "get":
            return run_get_command(ctx, ns)
        return ERR_USAGE
    except ScriptError as exc:
        print(render_error(as_json=ctx.as_json, message=str(exc), code=exc.code, kind=exc.kind), file=sys.stderr)
        return exc.code
    except Exception as exc:  # pragma: no cover
        print(
            render_error(as_json=ctx.as_json, message=f"internal error: {exc}", code=ERR_INTERNAL),
            file=sys.stderr,
        )
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
