from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

from webzyl_kv.errors import KVStoreError

ROOT = Path(__file__).resolve().parents[1]
BOM = "\ufeff"


class FakeStore:
    """In-memory ``KVStore`` that records every call."""

    def __init__(
        self,
        values: dict[str, str] | None = None,
        fail_get: set[str] | None = None,
        fail_put: set[str] | None = None,
        listing: str | None = None,
        fail_list: bool = False,
    ) -> None:
        self.values = dict(values or {})
        self.fail_get = set(fail_get or ())
        self.fail_put = set(fail_put or ())
        self.listing = listing
        self.fail_list = fail_list
        self.gets: list[str] = []
        self.puts: list[tuple[str, str]] = []

    def list_keys(self, prefix: str) -> str:
        if self.fail_list:
            raise KVStoreError("wrangler list failed: not authenticated", 1)
        if self.listing is not None:
            return self.listing
        return json.dumps([{"name": k} for k in self.values if k.startswith(prefix)])

    def get_text(self, key: str) -> str:
        self.gets.append(key)
        if key in self.fail_get:
            raise KVStoreError(f"wrangler get failed: timeout reading {key}", 124)
        return self.values[key]

    def put_text(self, key: str, text: str) -> None:
        if key in self.fail_put:
            raise KVStoreError(f"wrangler put failed: 403 writing {key}", 1)
        self.puts.append((key, text))
        self.values[key] = text


_FAKE_WRANGLER = '''\
import json
import os
import sys
from pathlib import Path

store_path = Path(os.environ["FAKE_WRANGLER_STORE"])
log_path = Path(os.environ["FAKE_WRANGLER_LOG"])
args = sys.argv[1:]
with log_path.open("a", encoding="utf-8") as handle:
    handle.write(" ".join(args[:4]) + "\\n")
values = json.loads(store_path.read_text(encoding="utf-8"))
op = args[2]
if op == "list":
    raw = os.environ.get("FAKE_WRANGLER_LIST_RAW")
    if raw is not None:
        sys.stdout.write(raw)
        sys.exit(0)
    prefix = args[args.index("--prefix") + 1]
    sys.stdout.write(json.dumps([{"name": k} for k in values if k.startswith(prefix)]))
elif op == "get":
    key = args[3]
    if key in os.environ.get("FAKE_WRANGLER_FAIL_GET", "").split(","):
        sys.stderr.write("Authentication error [code: 10000]\\n")
        sys.exit(1)
    sys.stdout.buffer.write(values[key].encode("utf-8"))
elif op == "put":
    values[args[3]] = args[4]
    store_path.write_text(json.dumps(values), encoding="utf-8")
else:
    sys.exit(2)
'''


def install_fake_wrangler(tmp_path: Path, values: dict[str, str]) -> dict[str, str]:
    """Write a ``wrangler`` stand-in backed by a JSON file and return env vars pointing at it."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    script = bin_dir / "wrangler"
    script.write_text(f"#!{sys.executable}\n{_FAKE_WRANGLER}", encoding="utf-8")
    script.chmod(0o755)
    store_path = tmp_path / "kv.json"
    store_path.write_text(json.dumps(values), encoding="utf-8")
    log_path = tmp_path / "wrangler.log"
    log_path.write_text("", encoding="utf-8")
    return {
        "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}",
        "FAKE_WRANGLER_STORE": str(store_path),
        "FAKE_WRANGLER_LOG": str(log_path),
    }


def read_fake_store(env: dict[str, str]) -> dict[str, str]:
    return json.loads(Path(env["FAKE_WRANGLER_STORE"]).read_text(encoding="utf-8"))


def read_fake_calls(env: dict[str, str]) -> list[str]:
    return Path(env["FAKE_WRANGLER_LOG"]).read_text(encoding="utf-8").splitlines()


def run_webzyl_kv(*args: str, env: dict[str, str] | None = None, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    full_env = {k: v for k, v in os.environ.items() if not k.startswith("WEBZYL_KV_")}
    full_env["PYTHONPATH"] = str(ROOT / "src")
    full_env.update(env or {})
    return subprocess.run(
        [sys.executable, "-m", "webzyl_kv", *args],
        cwd=(cwd or ROOT),
        env=full_env,
        text=True,
        encoding="utf-8",
        capture_output=True,
        check=False,
    )
