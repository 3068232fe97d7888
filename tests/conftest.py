"""
Shared test fixtures for the credential lease engine.

Tests use real implementations throughout: in-memory and sqlite storage, and a
fake remote API-key service plugged into httpx through MockTransport. No test
touches the network.
"""

import json
import threading
import uuid
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from credential_lease_core.backend import CredentialBackend
from credential_lease_core.config import (
    AppConfig,
    FeatureFlags,
    RemoteAPISettings,
    RoleDefaults,
    reset_config,
    set_config,
)
from credential_lease_core.db.db_config import DatabaseConfig
from credential_lease_core.exceptions import clear_correlation_id
from credential_lease_core.storage.memory import InMemoryStorage
from credential_lease_core.storage.sql_storage import SQLStorage

ADMIN_KEY = "K"
ORGANISATION = "acme"
REMOTE_URL = "http://x/"

Scripted = Union[httpx.Response, Exception]


class FakeRemoteService:
    """
    In-process stand-in for the remote API-key service.

    Handles `POST orgs/{org}/api-keys` and `DELETE orgs/{org}/api-keys/{name}`,
    checks the bearer admin key, and can be scripted to return canned responses
    (or raise transport errors) before falling back to normal handling.
    """

    def __init__(self, admin_key: str = ADMIN_KEY):
        self.admin_key = admin_key
        self.keys: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self.scripted: List[Scripted] = []
        self._lock = threading.Lock()
        self._next_id = 1

    def script(self, *responses: Scripted) -> None:
        with self._lock:
            self.scripted.extend(responses)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_for(self, method: str) -> List[httpx.Request]:
        with self._lock:
            return [r for r in self.requests if r.method == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            scripted: Optional[Scripted] = self.scripted.pop(0) if self.scripted else None

        if isinstance(scripted, Exception):
            raise scripted
        if scripted is not None:
            return scripted

        if request.headers.get("Authorization") != f"Bearer {self.admin_key}":
            return httpx.Response(401, json={"message": "Unauthorized"})

        parts = request.url.path.strip("/").split("/")
        if len(parts) < 3 or parts[0] != "orgs" or parts[2] != "api-keys":
            return httpx.Response(404, json={"message": "Not found"})

        org = parts[1]
        if request.method == "POST" and len(parts) == 3:
            body = json.loads(request.content)
            with self._lock:
                key = {
                    "id": self._next_id,
                    "name": body["name"],
                    "role": body["role"],
                    "token": f"glc_{uuid.uuid4().hex}",
                    "expiration": None,
                }
                self._next_id += 1
                self.keys[(org, body["name"])] = key
            return httpx.Response(200, json=key)

        if request.method == "DELETE" and len(parts) == 4:
            with self._lock:
                removed = self.keys.pop((org, parts[3]), None)
            if removed is None:
                return httpx.Response(404, json={"message": "API key not found"})
            return httpx.Response(200)

        return httpx.Response(405, json={"message": "Method not allowed"})


@pytest.fixture(autouse=True)
def app_config():
    """Deterministic global config: no retry wait, no queue logging."""
    config = AppConfig(
        remote_api=RemoteAPISettings(
            timeout_seconds=5.0,
            retry_wait_seconds=0.0,
            max_attempts=6,
            user_agent=None,
            http_debug=False,
        ),
        roles=RoleDefaults(default_ttl=0, default_max_ttl=0),
        features=FeatureFlags(enable_logs_queue=False, treat_missing_key_as_revoked=False),
    )
    set_config(config)
    yield config
    reset_config()
    clear_correlation_id()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def sql_storage():
    """SQLStorage on a private in-memory sqlite database."""
    storage = SQLStorage(config=DatabaseConfig(connection_string="sqlite://"))
    yield storage
    storage.close()


@pytest.fixture
def fake_remote() -> FakeRemoteService:
    return FakeRemoteService()


@pytest.fixture
def backend(memory_storage, fake_remote, app_config) -> CredentialBackend:
    return CredentialBackend(storage=memory_storage, config=app_config, transport=fake_remote.transport)


@pytest.fixture
def configured_backend(backend) -> CredentialBackend:
    """Backend with the acme configuration already written."""
    backend.write_config({"organisation": ORGANISATION, "key": ADMIN_KEY, "url": REMOTE_URL})
    return backend
