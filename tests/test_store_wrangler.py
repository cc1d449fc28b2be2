from __future__ import annotations

from pathlib import Path

import pytest

from webzyl_kv.core.process import CommandResult
from webzyl_kv.errors import KVStoreError
from webzyl_kv.store import wrangler as wrangler_module
from webzyl_kv.store.base import parse_key_listing
from webzyl_kv.store.wrangler import WranglerStore


class _Recorder:
    def __init__(self, result: CommandResult) -> None:
        self.result = result
        self.calls: list[dict[str, object]] = []

    def __call__(self, cmd: list[str], cwd: Path | None = None, timeout_seconds: float = 0, ctx: object = None) -> CommandResult:
        self.calls.append({"cmd": cmd, "timeout_seconds": timeout_seconds})
        return self.result


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> _Recorder:
    rec = _Recorder(CommandResult(0, '[{"name":"config:a"}]', "", 3))
    monkeypatch.setattr(wrangler_module, "run_command", rec)
    return rec


def test_list_uses_remote_namespace_and_prefix(recorder: _Recorder) -> None:
    store = WranglerStore("ns-1", timeout_seconds=15)
    assert store.list_keys("config:") == '[{"name":"config:a"}]'
    assert recorder.calls == [
        {
            "cmd": ["wrangler", "kv", "key", "list", "--remote", "--namespace-id", "ns-1", "--prefix", "config:"],
            "timeout_seconds": 15,
        }
    ]


def test_get_requests_text_and_returns_raw_stdout(recorder: _Recorder) -> None:
    recorder.result = CommandResult(0, '\ufeff{"a":1}\n', "", 1)
    store = WranglerStore("ns-1", wrangler_bin="/opt/bin/wrangler")
    assert store.get_text("config:a") == '\ufeff{"a":1}\n'
    assert recorder.calls[0]["cmd"] == [
        "/opt/bin/wrangler", "kv", "key", "get", "config:a", "--remote", "--namespace-id", "ns-1", "--text",
    ]


def test_put_passes_value_as_argument(recorder: _Recorder) -> None:
    WranglerStore("ns-1", remote=False).put_text("config:a", '{"a":1}')
    assert recorder.calls[0]["cmd"] == [
        "wrangler", "kv", "key", "put", "config:a", '{"a":1}', "--local", "--namespace-id", "ns-1",
    ]


def test_non_zero_exit_raises_store_error_with_stderr(recorder: _Recorder) -> None:
    recorder.result = CommandResult(1, "", "Authentication error [code: 10000]\n", 2)
    with pytest.raises(KVStoreError) as exc_info:
        WranglerStore("ns-1").get_text("config:a")
    assert str(exc_info.value) == "wrangler get failed: Authentication error [code: 10000]"
    assert exc_info.value.code == 1


def test_timeout_surfaces_as_store_error(recorder: _Recorder) -> None:
    recorder.result = CommandResult(124, "", "command timed out after 5s", 5000)
    with pytest.raises(KVStoreError) as exc_info:
        WranglerStore("ns-1").put_text("config:a", "{}")
    assert exc_info.value.code == 124
    assert "timed out" in str(exc_info.value)


def test_parse_key_listing_keeps_named_entries_in_order() -> None:
    raw = '[{"name":"config:b"},{"name":"config:a","expiration":1},{"name":null},"x",{}]'
    assert parse_key_listing(raw) == ["config:b", "config:a"]


@pytest.mark.parametrize("raw", ["", "Not logged in", '{"keys":[]}', "null"])
def test_parse_key_listing_rejects_non_arrays(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_key_listing(raw)
