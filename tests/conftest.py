import json
import os
import socket
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


_ENV_VARS = (
    "ATTOM_API_KEY",
    "TRULIA_REDFIN_ATTOM_API_KEY",
    "ATTOM_API_BASE_URL",
    "MELISSA_PERSONATOR_API_KEY",
    "MELISSA_KEY",
    "OWNER_LOOKUP_DB",
    "OWNER_LOOKUP_FALLBACK_CSV",
    "OWNER_LOOKUP_ANCHOR_CITIES",
    "OWNER_LOOKUP_DEFAULT_LOCALITY",
    "OWNER_LOOKUP_PROVIDER_TIMEOUT",
    "OWNER_LOOKUP_PROVIDER_RETRIES",
    "OWNER_LOOKUP_PAGE_SIZE",
    "OWNER_LOOKUP_MAX_CANDIDATES",
    "OWNER_LOOKUP_WRITE_BACK",
    "OWNER_LOOKUP_HISTORY",
)


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    from owner_lookup.config import reset_settings_cache
    from owner_lookup.fallback import reset_fallback_index
    from owner_lookup.resolver import reset_provider_cache

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OWNER_LOOKUP_DB", str(tmp_path / "owner_lookup.sqlite"))
    monkeypatch.chdir(tmp_path)
    reset_settings_cache()
    reset_fallback_index()
    reset_provider_cache()
    yield
    reset_settings_cache()
    reset_fallback_index()
    reset_provider_cache()


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None):
        self.status_code = status_code
        if isinstance(body, (dict, list)):
            self.text = json.dumps(body)
            default_type = "application/json"
        else:
            self.text = body or ""
            default_type = "text/plain"
        self.headers = {"Content-Type": default_type}
        self.headers.update(headers or {})

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, params=None, headers=None, timeout=None):
        self.calls.append(
            {"method": method, "url": url, "params": params, "headers": headers, "timeout": timeout}
        )
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture()
def fake_session():
    def build(*responses):
        return FakeSession(responses)

    return build


@pytest.fixture()
def fake_response():
    return FakeResponse


@pytest.fixture()
def store(tmp_path):
    from owner_lookup.storage import SQLiteListingStore

    s = SQLiteListingStore(str(tmp_path / "owner_lookup.sqlite"))
    s.init_schema()
    try:
        yield s
    finally:
        s.close()
