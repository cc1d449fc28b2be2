from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from .clock import utc_now

OutputFormat = Literal["text", "json"]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    output_format: OutputFormat
    verbose: bool
    quiet: bool
    log_json: bool

    @property
    def as_json(self) -> bool:
        return self.output_format == "json"

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        output_format: OutputFormat = "text",
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool = False,
    ) -> "RunContext":
        default_run = f"webzyl-kv-{utc_now().strftime('%Y%m%d-%H%M%S')}"
        resolved_run_id = run_id or os.environ.get("RUN_ID", default_run)
        return cls(
            run_id=resolved_run_id,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            log_json=log_json,
        )
