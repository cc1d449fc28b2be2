"""Configuration for the repair job.

Each field resolves from, in order: a command-line flag, a ``WEBZYL_KV_*``
environment variable, a YAML config file, and finally the defaults below.
The merged mapping is checked against ``webzyl_kv.config.v1``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .contracts import validate
from .errors import ScriptError
from .exit_codes import ERR_CONFIG, ERR_USAGE

DEFAULT_PREFIX = "config:"
DEFAULT_TIMEOUT_SECONDS = 60
# Workers KV rejects values above 25 MiB.
DEFAULT_MAX_VALUE_BYTES = 25 * 1024 * 1024
CONFIG_PATH_ENV = "WEBZYL_KV_CONFIG"


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_number(raw: str) -> float | int:
    value = float(raw)
    return int(value) if value.is_integer() else value


ENV_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "namespace_id": ("WEBZYL_KV_NAMESPACE_ID", str),
    "prefix": ("WEBZYL_KV_PREFIX", str),
    "timeout_seconds": ("WEBZYL_KV_TIMEOUT_SECONDS", _parse_number),
    "max_value_bytes": ("WEBZYL_KV_MAX_VALUE_BYTES", int),
    "wrangler_bin": ("WEBZYL_KV_WRANGLER", str),
    "remote": ("WEBZYL_KV_REMOTE", _parse_bool),
    "backup_dir": ("WEBZYL_KV_BACKUP_DIR", str),
}


@dataclass(frozen=True)
class RepairConfig:
    namespace_id: str | None = None
    prefix: str = DEFAULT_PREFIX
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES
    wrangler_bin: str = "wrangler"
    remote: bool = True
    backup_dir: Path | None = None

    def require_namespace(self) -> str:
        if not self.namespace_id:
            raise _missing_namespace()
        return self.namespace_id


def _missing_namespace() -> ScriptError:
    return ScriptError("Missing --namespace-id", ERR_USAGE, kind="missing_namespace")


def load_config_file(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptError(f"cannot read config file {p}: {exc}", ERR_CONFIG, kind="config_unreadable") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ScriptError(f"invalid yaml in {p}: {exc}", ERR_CONFIG, kind="config_invalid") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ScriptError(f"config file {p} must contain a mapping", ERR_CONFIG, kind="config_invalid")
    return data


def config_from_env(env: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field, (name, parse) in ENV_FIELDS.items():
        raw = env.get(name)
        if raw is None or raw == "":
            continue
        try:
            out[field] = parse(raw)
        except ValueError as exc:
            raise ScriptError(f"invalid {name}: {exc}", ERR_CONFIG, kind="config_invalid") from exc
    return out


def load_config(
    overrides: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    require_namespace: bool = False,
) -> RepairConfig:
    """Merge every configuration source into a validated ``RepairConfig``.

    With ``require_namespace`` a namespace missing from every source is
    reported as a usage error before any other configuration problem.
    """
    environ = os.environ if env is None else env
    cli = {k: v for k, v in (overrides or {}).items() if v is not None}
    path = config_path or environ.get(CONFIG_PATH_ENV)
    from_file: dict[str, Any] = {}
    file_error: ScriptError | None = None
    if path:
        try:
            from_file = load_config_file(path)
        except ScriptError as exc:
            file_error = exc

    if require_namespace:
        env_name = ENV_FIELDS["namespace_id"][0]
        namespace = cli.get("namespace_id") or environ.get(env_name) or from_file.get("namespace_id")
        if not namespace:
            raise _missing_namespace()
    if file_error is not None:
        raise file_error

    merged = dict(from_file)
    merged.update(config_from_env(environ))
    merged.update(cli)
    validate("webzyl_kv.config.v1", merged, code=ERR_CONFIG)
    backup_dir = merged.pop("backup_dir", None)
    return RepairConfig(**merged, backup_dir=Path(backup_dir) if backup_dir else None)
