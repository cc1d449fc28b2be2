from __future__ import annotations

import socket

import pytest
from hypothesis import settings

from webzyl_kv.core.context import RunContext

_ALLOWED_MARKERS = {"unit", "integration", "slow"}

settings.register_profile("webzyl", deadline=None, max_examples=75)
settings.load_profile("webzyl")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in unit tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


@pytest.fixture(autouse=True)
def clean_webzyl_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "WEBZYL_KV_CONFIG",
        "WEBZYL_KV_NAMESPACE_ID",
        "WEBZYL_KV_PREFIX",
        "WEBZYL_KV_TIMEOUT_SECONDS",
        "WEBZYL_KV_MAX_VALUE_BYTES",
        "WEBZYL_KV_WRANGLER",
        "WEBZYL_KV_REMOTE",
        "WEBZYL_KV_BACKUP_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def ctx() -> RunContext:
    return RunContext.from_args("pytest-run", quiet=True)
