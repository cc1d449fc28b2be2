"""Scan a KV prefix and rewrite JSON values broken by a BOM or control characters."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO
from urllib.parse import quote

from .config import DEFAULT_MAX_VALUE_BYTES, DEFAULT_PREFIX
from .core.context import RunContext
from .core.logging import log_event
from .errors import KVStoreError, ScriptError
from .exit_codes import ERR_LISTING
from .sanitize import AlreadyValid, Classification, Invalid, classify
from .store.base import KVStore, parse_key_listing

FIXED = "fixed"
INVALID = "invalid"
SKIPPED = "skipped"


@dataclass(frozen=True)
class KeyOutcome:
    key: str
    outcome: str
    detail: str
    original_length: int | None = None
    rewritten_length: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "outcome": self.outcome,
            "detail": self.detail,
            "original_length": self.original_length,
            "rewritten_length": self.rewritten_length,
        }


@dataclass
class RunReport:
    namespace_id: str
    prefix: str
    dry_run: bool
    total_keys: int = 0
    fixed: int = 0
    invalid: int = 0
    skipped: int = 0
    written: int = 0
    outcomes: list[KeyOutcome] = field(default_factory=list)

    def record(self, outcome: KeyOutcome) -> None:
        if outcome.outcome == FIXED:
            self.fixed += 1
        elif outcome.outcome == INVALID:
            self.invalid += 1
        elif outcome.outcome == SKIPPED:
            self.skipped += 1
        else:
            raise ValueError(f"unknown outcome: {outcome.outcome}")
        self.outcomes.append(outcome)

    @property
    def status(self) -> str:
        return "ok" if not (self.invalid or self.skipped) else "partial"

    def summary_lines(self) -> list[str]:
        return [
            "---",
            f"Fixed: {self.fixed}",
            f"Invalid (needs manual fix): {self.invalid}",
            f"Skipped (get/put errors): {self.skipped}",
        ]

    def to_payload(self, run_id: str) -> dict[str, Any]:
        return {
            "schema_name": "webzyl_kv.repair_report.v1",
            "schema_version": 1,
            "tool": "webzyl-kv",
            "status": self.status,
            "run_id": run_id,
            "namespace_id": self.namespace_id,
            "prefix": self.prefix,
            "dry_run": self.dry_run,
            "total_keys": self.total_keys,
            "counts": {
                "fixed": self.fixed,
                "invalid": self.invalid,
                "skipped": self.skipped,
                "written": self.written,
            },
            "outcomes": [o.to_payload() for o in self.outcomes],
        }


class KVRepairJob:
    """Process every key under ``prefix`` once, in listing order.

    Only a failed or unparseable listing aborts the run. Fetch and write
    failures are counted as skipped and the next key is processed; there are
    no retries. ``dry_run`` suppresses the backup and the write, nothing else.
    """

    def __init__(
        self,
        ctx: RunContext,
        store: KVStore,
        namespace_id: str,
        prefix: str = DEFAULT_PREFIX,
        dry_run: bool = False,
        max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES,
        backup_dir: Path | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.ctx = ctx
        self.store = store
        self.prefix = prefix
        self.dry_run = dry_run
        self.max_value_bytes = max_value_bytes
        self.backup_dir = backup_dir
        self._out = out
        self._err = err
        self.report = RunReport(namespace_id=namespace_id, prefix=prefix, dry_run=dry_run)

    def _print(self, line: str) -> None:
        print(line, file=self._out or sys.stdout)

    def _warn(self, line: str) -> None:
        print(line, file=self._err or sys.stderr)

    def enumerate_keys(self) -> list[str]:
        try:
            raw = self.store.list_keys(self.prefix)
        except KVStoreError as exc:
            raise ScriptError(
                f"Failed to list keys with prefix '{self.prefix}': {exc}", ERR_LISTING, kind="listing_failed"
            ) from exc
        try:
            keys = parse_key_listing(raw)
        except ValueError as exc:
            raise ScriptError(
                f"Failed to parse key list JSON. Output was:\n{raw}", ERR_LISTING, kind="listing_unparseable"
            ) from exc
        log_event(self.ctx, "info", "repair", "list-keys", prefix=self.prefix, count=len(keys))
        return keys

    def fetch_value(self, key: str) -> str | None:
        try:
            return self.store.get_text(key)
        except KVStoreError as exc:
            self._warn(f"[WARN] Failed to get {key}: {exc}")
            self.report.record(KeyOutcome(key, SKIPPED, f"get failed: {exc}"))
            return None

    def classify(self, key: str, text: str) -> Classification:
        result = classify(text)
        if isinstance(result, Invalid):
            self._warn(f"[INVALID] {key} {result.message}")
        return result

    def _backup(self, backup_dir: Path, key: str, text: str) -> Path:
        path = backup_dir / self.ctx.run_id / f"{quote(key, safe='')}.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8", newline="")
        return path

    def write_back(self, key: str, canonical_text: str, original: str) -> bool:
        if self.backup_dir is not None:
            try:
                backup = self._backup(self.backup_dir, key, original)
            except OSError as exc:
                self._warn(f"[WARN] Failed to back up {key}: {exc}")
                return False
            log_event(self.ctx, "debug", "repair", "backup", key=key, path=str(backup))
        try:
            self.store.put_text(key, canonical_text)
        except KVStoreError as exc:
            self._warn(f"[WARN] Failed to put {key}: {exc}")
            return False
        log_event(self.ctx, "info", "repair", "write-back", key=key, length=len(canonical_text))
        return True

    def process_key(self, key: str) -> None:
        text = self.fetch_value(key)
        if text is None:
            return

        size = len(text.encode("utf-8"))
        if size > self.max_value_bytes:
            self._warn(f"[WARN] Skipping {key}: value is {size} bytes (limit {self.max_value_bytes})")
            self.report.record(KeyOutcome(key, SKIPPED, "value too large", len(text)))
            return

        result = self.classify(key, text)
        if isinstance(result, AlreadyValid):
            return
        if isinstance(result, Invalid):
            self.report.record(KeyOutcome(key, INVALID, result.message, len(text)))
            return

        rewritten = result.canonical
        suffix = " [dry-run]" if self.dry_run else ""
        self._print(f"[FIX] {key} (len {len(text)} -> {len(rewritten)}){suffix}")
        if self.dry_run:
            self.report.record(KeyOutcome(key, FIXED, "dry-run", len(text), len(rewritten)))
            return
        if self.write_back(key, rewritten, text):
            self.report.written += 1
            self.report.record(KeyOutcome(key, FIXED, "rewritten", len(text), len(rewritten)))
        else:
            self.report.record(KeyOutcome(key, SKIPPED, "put failed", len(text), len(rewritten)))

    def summarize(self) -> RunReport:
        for line in self.report.summary_lines():
            self._print(line)
        log_event(
            self.ctx,
            "info",
            "repair",
            "summary",
            fixed=self.report.fixed,
            invalid=self.report.invalid,
            skipped=self.report.skipped,
            written=self.report.written,
            dry_run=self.dry_run,
        )
        return self.report

    def run(self) -> RunReport:
        keys = self.enumerate_keys()
        self.report.total_keys = len(keys)
        self._print(f"Found {len(keys)} keys with prefix '{self.prefix}'.")
        for key in keys:
            self.process_key(key)
        return self.summarize()
