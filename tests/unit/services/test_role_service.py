"""Tests for RoleService."""

import json

import pytest

from credential_lease_core.config import RoleDefaults
from credential_lease_core.enums import RemoteRole
from credential_lease_core.exceptions import ErrorCode, ValidationError
from credential_lease_core.schemas.role_schema import RoleEntry
from credential_lease_core.services.role_service import RoleService, parse_remote_role


@pytest.fixture
def role_service(memory_storage, app_config):
    return RoleService(memory_storage, defaults=app_config.roles)


class TestParseRemoteRole:
    @pytest.mark.parametrize("value", RemoteRole.values())
    def test_valid(self, value):
        assert parse_remote_role(value).value == value

    @pytest.mark.parametrize("value", ["viewer", "Owner", "", "Admin "])
    def test_invalid(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_remote_role(value)

        assert exc_info.value.message == f"provided gc_role {value} is not valid"
        assert exc_info.value.context["valid_roles"] == RemoteRole.values()


class TestRoleCreate:
    def test_create_and_read(self, role_service, memory_storage):
        role = role_service.upsert(
            "viewer-role", {"gc_role": "Viewer", "ttl": 120, "max_ttl": 3600}, is_create=True
        )

        assert role == RoleEntry(gc_role=RemoteRole.VIEWER, ttl=120, max_ttl=3600)
        assert role_service.get("viewer-role") == role
        assert json.loads(memory_storage.get("roles/viewer-role")) == {
            "gc_role": "Viewer",
            "ttl": 120,
            "max_ttl": 3600,
        }

    def test_duration_strings(self, role_service):
        role = role_service.upsert("r", {"gc_role": "Admin", "ttl": "2m", "max_ttl": "1h"}, is_create=True)
        assert (role.ttl, role.max_ttl) == (120, 3600)

    def test_ttls_default_on_create(self, memory_storage):
        service = RoleService(memory_storage, defaults=RoleDefaults(default_ttl=60, default_max_ttl=600))

        role = service.upsert("r", {"gc_role": "Editor"}, is_create=True)

        assert (role.ttl, role.max_ttl) == (60, 600)

    def test_missing_gc_role(self, role_service):
        with pytest.raises(ValidationError, match="missing gc_role value"):
            role_service.upsert("r", {"ttl": 10}, is_create=True)
        assert role_service.get("r") is None

    def test_invalid_gc_role(self, role_service):
        with pytest.raises(ValidationError, match="provided gc_role Owner is not valid"):
            role_service.upsert("r", {"gc_role": "Owner"}, is_create=True)
        assert role_service.get("r") is None

    def test_ttl_above_max_ttl(self, role_service):
        with pytest.raises(ValidationError, match="ttl cannot be greater than max_ttl") as exc_info:
            role_service.upsert("r", {"gc_role": "Viewer", "ttl": 100, "max_ttl": 10}, is_create=True)

        assert exc_info.value.error_code == ErrorCode.CONSTRAINT_VIOLATION
        assert role_service.get("r") is None

    def test_zero_max_ttl_allows_any_ttl(self, role_service):
        role = role_service.upsert("r", {"gc_role": "Viewer", "ttl": 100, "max_ttl": 0}, is_create=True)
        assert role.ttl == 100

    def test_bad_duration(self, role_service):
        with pytest.raises(ValidationError) as exc_info:
            role_service.upsert("r", {"gc_role": "Viewer", "ttl": "soon"}, is_create=True)
        assert exc_info.value.context["field"] == "ttl"

    def test_unknown_field(self, role_service):
        with pytest.raises(ValidationError, match="unknown role fields: scope"):
            role_service.upsert("r", {"gc_role": "Viewer", "scope": "all"}, is_create=True)

    @pytest.mark.parametrize("name", ["viewer", "viewer-role", "a", "metrics.publisher_1", "a9"])
    def test_valid_names(self, role_service, name):
        role_service.upsert(name, {"gc_role": "Viewer"}, is_create=True)
        assert role_service.get(name) is not None

    @pytest.mark.parametrize("name", ["-viewer", "viewer.", "a/b", "with space", "viewer\n", "\nviewer"])
    def test_invalid_names(self, role_service, name):
        with pytest.raises(ValidationError) as exc_info:
            role_service.upsert(name, {"gc_role": "Viewer"}, is_create=True)
        assert exc_info.value.error_code == ErrorCode.INVALID_FORMAT

    def test_trailing_newline_not_stored(self, role_service):
        with pytest.raises(ValidationError):
            role_service.upsert("viewer\n", {"gc_role": "Viewer"}, is_create=True)
        assert role_service.list() == []

    @pytest.mark.parametrize("name", ["Viewer", "viewer-Role", "ADMIN"])
    def test_upper_case_names_rejected(self, role_service, name):
        """Names must be lower case, the form issuance resolves them by."""
        with pytest.raises(ValidationError, match="must be lower case") as exc_info:
            role_service.upsert(name, {"gc_role": "Viewer"}, is_create=True)

        assert exc_info.value.error_code == ErrorCode.INVALID_FORMAT
        assert role_service.list() == []

    def test_empty_name(self, role_service):
        with pytest.raises(ValidationError, match="missing role name"):
            role_service.upsert("", {"gc_role": "Viewer"}, is_create=True)


class TestRoleUpdate:
    def test_update_merges(self, role_service):
        role_service.upsert("r", {"gc_role": "Viewer", "ttl": 120, "max_ttl": 3600}, is_create=True)

        role = role_service.upsert("r", {"gc_role": "Editor", "ttl": None}, is_create=False)

        assert role == RoleEntry(gc_role=RemoteRole.EDITOR, ttl=120, max_ttl=3600)

    def test_update_keeps_ttls_without_defaults(self, memory_storage):
        service = RoleService(memory_storage, defaults=RoleDefaults(default_ttl=60, default_max_ttl=600))
        service.upsert("r", {"gc_role": "Viewer", "ttl": 5, "max_ttl": 50}, is_create=True)

        role = service.upsert("r", {"gc_role": "Admin"}, is_create=False)

        assert (role.ttl, role.max_ttl) == (5, 50)

    def test_cross_field_check_after_merge(self, role_service):
        """Lowering max_ttl below the stored ttl is rejected and storage is unchanged."""
        role_service.upsert("r", {"gc_role": "Viewer", "ttl": 120, "max_ttl": 3600}, is_create=True)

        with pytest.raises(ValidationError, match="ttl cannot be greater than max_ttl"):
            role_service.upsert("r", {"max_ttl": 60}, is_create=False)

        assert role_service.get("r").max_ttl == 3600

    def test_update_of_missing_role_needs_gc_role(self, role_service):
        with pytest.raises(ValidationError, match="missing gc_role value"):
            role_service.upsert("ghost", {"ttl": 10}, is_create=False)


class TestRoleReadDeleteList:
    def test_get_missing(self, role_service):
        assert role_service.get("nope") is None

    def test_get_empty_name(self, role_service):
        with pytest.raises(ValidationError):
            role_service.get("")

    def test_delete(self, role_service):
        role_service.upsert("r", {"gc_role": "Viewer"}, is_create=True)
        role_service.delete("r")
        role_service.delete("r")
        assert role_service.get("r") is None

    def test_list_sorted(self, role_service):
        for name in ["zeta", "alpha", "mid"]:
            role_service.upsert(name, {"gc_role": "Viewer"}, is_create=True)

        assert role_service.list() == ["alpha", "mid", "zeta"]

    def test_list_empty(self, role_service):
        assert role_service.list() == []

    def test_list_ignores_config(self, role_service, memory_storage):
        memory_storage.put("config", b"{}")
        role_service.upsert("r", {"gc_role": "Viewer"}, is_create=True)
        assert role_service.list() == ["r"]
