"""
Service for named roles: remote authorization level plus lease TTL bounds.

Roles live under `roles/{name}`. Writes merge into the existing record and are
fully validated before anything is persisted, so a rejected write never
changes storage.
"""

import re
from typing import Any, Dict, List, Mapping, Optional

from ..config import RoleDefaults, get_config
from ..constants import StorageKey
from ..context.operation_context import operation
from ..enums import RemoteRole
from ..exceptions import ErrorCode, ValidationError
from ..schemas.role_schema import RoleEntry
from ..storage.base import Storage
from ..utils.duration_utils import parse_duration_seconds
from .base_service import BaseService

ROLE_FIELDS = ("gc_role", "ttl", "max_ttl")

# Word characters, with dashes and dots allowed inside the name
ROLE_NAME_PATTERN = re.compile(r"\w(([\w\-.]+)?\w)?")


def parse_remote_role(value: Any) -> RemoteRole:
    """
    Resolve a remote role from its exact name.

    Raises:
        ValidationError: If the value is not one of the RemoteRole names
    """
    if isinstance(value, RemoteRole):
        return value
    try:
        return RemoteRole(value)
    except ValueError:
        raise ValidationError(
            f"provided gc_role {value} is not valid",
            field="gc_role",
            error_code=ErrorCode.VALIDATION_FAILED,
            value=str(value),
            valid_roles=RemoteRole.values(),
        )


class RoleService(BaseService):
    """CRUD on role records with gc_role membership and TTL bound checks."""

    def __init__(self, storage: Storage, defaults: Optional[RoleDefaults] = None):
        super().__init__(storage)
        self.defaults = defaults or get_config().roles

    @staticmethod
    def _key(name: str) -> str:
        return f"{StorageKey.ROLES_PREFIX.value}{name}"

    @staticmethod
    def _check_name(name: str) -> None:
        if not name:
            raise ValidationError(
                "missing role name", field="name", error_code=ErrorCode.MISSING_REQUIRED
            )
        if not ROLE_NAME_PATTERN.fullmatch(name):
            raise ValidationError(
                f"invalid role name '{name}'",
                field="name",
                error_code=ErrorCode.INVALID_FORMAT,
                value=name,
            )
        # Credentials are issued by lower-cased role name
        if name != name.lower():
            raise ValidationError(
                f"role name '{name}' must be lower case",
                field="name",
                error_code=ErrorCode.INVALID_FORMAT,
                value=name,
            )

    @operation()
    def get(self, name: str) -> Optional[RoleEntry]:
        """
        Load a role by name.

        Raises:
            ValidationError: If name is empty
            StorageError: On read or decode failure
        """
        if not name:
            raise ValidationError(
                "missing role name", field="name", error_code=ErrorCode.MISSING_REQUIRED
            )
        return self._read_record(self._key(name), RoleEntry)

    @operation()
    def upsert(self, name: str, fields: Mapping[str, Any], is_create: bool) -> RoleEntry:
        """
        Create or update a role, merging the provided fields into the stored record.

        Args:
            name: Role name
            fields: Any of gc_role, ttl, max_ttl. None values count as absent.
                TTLs take int seconds or duration strings ("90", "1m", "5h").
            is_create: Create semantics (gc_role required, TTL defaults applied)

        Returns:
            The role as persisted

        Raises:
            ValidationError: Bad name, unknown field, invalid gc_role, bad duration,
                or ttl greater than a nonzero max_ttl after the merge
            StorageError: On read or write failure
        """
        self._check_name(name)

        provided = {k: v for k, v in fields.items() if v is not None}
        unknown = sorted(set(provided) - set(ROLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"unknown role fields: {', '.join(unknown)}",
                field=unknown[0],
                error_code=ErrorCode.INVALID_FORMAT,
            )

        existing = self.get(name)
        data: Dict[str, Any] = (
            existing.model_dump() if existing is not None else {"gc_role": None, "ttl": 0, "max_ttl": 0}
        )

        if "gc_role" in provided:
            data["gc_role"] = parse_remote_role(provided["gc_role"])
        elif is_create:
            raise ValidationError(
                "missing gc_role value", field="gc_role", error_code=ErrorCode.MISSING_REQUIRED
            )

        if data["gc_role"] is None:
            # Update of a role that was never created
            raise ValidationError(
                "missing gc_role value", field="gc_role", error_code=ErrorCode.MISSING_REQUIRED
            )

        if "ttl" in provided:
            data["ttl"] = parse_duration_seconds(provided["ttl"], field="ttl")
        elif is_create:
            data["ttl"] = self.defaults.default_ttl

        if "max_ttl" in provided:
            data["max_ttl"] = parse_duration_seconds(provided["max_ttl"], field="max_ttl")
        elif is_create:
            data["max_ttl"] = self.defaults.default_max_ttl

        if data["max_ttl"] != 0 and data["ttl"] > data["max_ttl"]:
            raise ValidationError(
                "ttl cannot be greater than max_ttl",
                field="ttl",
                error_code=ErrorCode.CONSTRAINT_VIOLATION,
                ttl=data["ttl"],
                max_ttl=data["max_ttl"],
            )

        role = RoleEntry(**data)
        self._write_record(self._key(name), role)

        self.logger.info(
            "Role written",
            extra={"role_name": name, "gc_role": role.gc_role.value, "is_create": is_create},
        )
        return role

    @operation()
    def delete(self, name: str) -> None:
        """Remove a role. Credentials already issued under it are unaffected."""
        if not name:
            raise ValidationError(
                "missing role name", field="name", error_code=ErrorCode.MISSING_REQUIRED
            )
        self._delete_record(self._key(name))

        self.logger.info("Role deleted", extra={"role_name": name})

    @operation()
    def list(self) -> List[str]:
        return sorted(self._list_keys(StorageKey.ROLES_PREFIX.value))
