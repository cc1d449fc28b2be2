from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .logging import log_event

if TYPE_CHECKING:
    from .context import RunContext

TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    code: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def combined_output(self) -> str:
        return (self.stdout + self.stderr).strip()


def _decode(raw: bytes | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def run_command(
    cmd: list[str],
    cwd: Path | None = None,
    timeout_seconds: float = 0,
    ctx: RunContext | None = None,
) -> CommandResult:
    """Run ``cmd`` once and capture its output as UTF-8 text.

    Output is decoded without newline translation so values round-trip
    byte for byte. A timeout maps to exit code 124 and a missing executable
    to 127, mirroring shell conventions.
    """
    started = time.monotonic()
    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            check=False,
            timeout=(timeout_seconds if timeout_seconds > 0 else None),
        )
        result = CommandResult(
            code=proc.returncode,
            stdout=_decode(proc.stdout),
            stderr=_decode(proc.stderr),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    except subprocess.TimeoutExpired as exc:
        result = CommandResult(
            code=TIMEOUT_EXIT_CODE,
            stdout=_decode(exc.stdout),
            stderr=(_decode(exc.stderr) + f"\ncommand timed out after {timeout_seconds}s").strip(),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    except FileNotFoundError as exc:
        result = CommandResult(
            code=NOT_FOUND_EXIT_CODE,
            stdout="",
            stderr=f"command not found: {exc.filename or cmd[0]}",
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    if ctx is not None:
        log_event(
            ctx,
            "debug",
            "process",
            "run-command",
            command=" ".join(cmd[:5]),
            code=result.code,
            duration_ms=result.duration_ms,
        )
    return result
