from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_INTERNAL


@dataclass
class ScriptError(Exception):
    message: str
    code: int = ERR_INTERNAL
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


@dataclass
class KVStoreError(Exception):
    """A key-value command failed (non-zero exit, timeout or missing tool)."""

    message: str
    code: int = 1

    def __str__(self) -> str:
        return self.message


@dataclass
class KVJsonError(Exception):
    key: str
    detail: str

    def __str__(self) -> str:
        return f"KV JSON parse failed for {self.key}: {self.detail}"
