from __future__ import annotations

from dataclasses import dataclass

from ..core.context import RunContext
from ..core.process import CommandResult, run_command
from ..errors import KVStoreError


@dataclass
class WranglerStore:
    """``KVStore`` backed by ``wrangler kv key list|get|put``.

    Uses whatever account wrangler is currently authenticated against.
    """

    namespace_id: str
    wrangler_bin: str = "wrangler"
    remote: bool = True
    timeout_seconds: float = 60
    ctx: RunContext | None = None

    def _target_args(self) -> list[str]:
        return ["--remote" if self.remote else "--local", "--namespace-id", self.namespace_id]

    def _run(self, args: list[str], what: str) -> CommandResult:
        result = run_command(
            [self.wrangler_bin, "kv", "key", *args],
            timeout_seconds=self.timeout_seconds,
            ctx=self.ctx,
        )
        if result.code != 0:
            detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.code}"
            raise KVStoreError(f"wrangler {what} failed: {detail}", result.code)
        return result

    def list_keys(self, prefix: str) -> str:
        return self._run(["list", *self._target_args(), "--prefix", prefix], "list").stdout

    def get_text(self, key: str) -> str:
        return self._run(["get", key, *self._target_args(), "--text"], "get").stdout

    def put_text(self, key: str, text: str) -> None:
        self._run(["put", key, text, *self._target_args()], "put")
