"""
End-to-end credential lifecycle against the fake remote service.

Drives the backend the way a host would: configure, define a role, issue,
renew and revoke, and reconfigure while the engine is running.
"""

import httpx
import pytest

from credential_lease_core import CredentialBackend, LeaseBounds
from credential_lease_core.db.db_config import DatabaseConfig
from credential_lease_core.exceptions import CredentialIssueError, NotFoundError
from credential_lease_core.storage.sql_storage import SQLStorage

pytestmark = pytest.mark.integration


@pytest.fixture
def sql_backend(fake_remote, app_config, tmp_path):
    storage = SQLStorage(config=DatabaseConfig(connection_string=f"sqlite:///{tmp_path / 'lease.db'}"))
    backend = CredentialBackend(storage=storage, config=app_config, transport=fake_remote.transport)
    yield backend
    storage.close()


class TestCredentialLifecycle:
    def test_issue_renew_revoke(self, sql_backend, fake_remote):
        backend = sql_backend
        backend.write_config({"organisation": "acme", "key": "K", "url": "http://x/"})
        backend.write_role("viewer-role", {"gc_role": "Viewer", "ttl": 120, "max_ttl": 3600})

        secret = backend.issue_credential("viewer-role")

        assert secret.token
        assert secret.lease == LeaseBounds(ttl=120, max_ttl=3600)
        assert ("acme", secret.remote_key_name) in fake_remote.keys

        # Lease metadata is all the host hands back on callbacks
        metadata = dict(secret.internal_data)

        backend.write_role("viewer-role", {"ttl": 600})
        assert backend.handle_lease_request({"operation": "renew", "lease_metadata": metadata}) == LeaseBounds(
            ttl=600, max_ttl=3600
        )

        backend.handle_lease_request({"operation": "revoke", "lease_metadata": metadata})
        assert fake_remote.keys == {}

    def test_engine_restart_keeps_configuration(self, fake_remote, app_config, tmp_path):
        config = DatabaseConfig(connection_string=f"sqlite:///{tmp_path / 'lease.db'}")

        first_storage = SQLStorage(config=config)
        first = CredentialBackend(storage=first_storage, config=app_config, transport=fake_remote.transport)
        first.write_config({"organisation": "acme", "key": "K", "url": "http://x/"})
        first.write_role("viewer-role", {"gc_role": "Viewer", "ttl": 120, "max_ttl": 3600})
        secret = first.issue_credential("viewer-role")
        first_storage.close()

        second_storage = SQLStorage(config=config)
        second = CredentialBackend(storage=second_storage, config=app_config, transport=fake_remote.transport)

        assert second.renew_lease(secret.internal_data) == LeaseBounds(ttl=120, max_ttl=3600)
        second.revoke_lease(secret.internal_data)
        assert fake_remote.keys == {}
        second_storage.close()

    def test_reconfigure_rotates_admin_key(self, configured_backend, fake_remote):
        backend = configured_backend
        backend.write_role("viewer-role", {"gc_role": "Viewer"})
        backend.issue_credential("viewer-role")

        fake_remote.admin_key = "K2"
        with pytest.raises(CredentialIssueError) as exc_info:
            backend.issue_credential("viewer-role")
        assert exc_info.value.cause.remote_status_code == 401

        backend.write_config({"key": "K2"})

        secret = backend.issue_credential("viewer-role")
        assert fake_remote.requests[-1].headers["Authorization"] == "Bearer K2"
        assert secret.token

    def test_deleted_config_falls_back_to_empty_client(self, configured_backend, fake_remote):
        backend = configured_backend
        backend.write_role("viewer-role", {"gc_role": "Viewer"})
        backend.issue_credential("viewer-role")
        requests_before = len(fake_remote.requests)

        backend.delete_config()

        client = backend.config_service.get_or_build_client()
        assert client.has_base_url is False
        with pytest.raises(NotFoundError, match="configuration not found"):
            backend.issue_credential("viewer-role")
        assert len(fake_remote.requests) == requests_before

    def test_starting_instance_recovers(self, configured_backend, fake_remote):
        configured_backend.write_role("viewer-role", {"gc_role": "Viewer"})
        starting = {"message": "Your instance is starting. Please try again later."}
        fake_remote.script(httpx.Response(503, json=starting), httpx.Response(503, json=starting))

        secret = configured_backend.issue_credential("viewer-role")

        assert secret.token
        assert len(fake_remote.requests_for("POST")) == 3
