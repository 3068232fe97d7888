"""
Pydantic schemas for issued credentials and the lease contract with the host.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import SECRET_TYPE, LeaseMetadataKey, LeaseOperation
from .role_schema import RoleEntry


class RemoteAPIKey(BaseModel):
    """API key as returned by the remote service on creation."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: str
    role: Optional[str] = None
    token: str = Field(..., repr=False)
    expiration: Optional[str] = None


class IssuedCredential(BaseModel):
    """A freshly minted remote key; never persisted by the engine."""

    remote_key_name: str
    token: str = Field(..., repr=False)
    bound_user: str = ""
    source_role_name: str


class LeaseBounds(BaseModel):
    """TTL bounds handed to the host lease subsystem. 0 defers to the host default."""

    ttl: int = Field(default=0, ge=0)
    max_ttl: int = Field(default=0, ge=0)

    @classmethod
    def from_role(cls, role: RoleEntry) -> "LeaseBounds":
        return cls(
            ttl=role.ttl if role.ttl > 0 else 0,
            max_ttl=role.max_ttl if role.max_ttl > 0 else 0,
        )


class LeasedSecret(BaseModel):
    """Credential packaged for the host: public data, lease-internal metadata and bounds."""

    secret_type: str = SECRET_TYPE
    data: Dict[str, str] = Field(default_factory=dict, repr=False)
    internal_data: Dict[str, str] = Field(default_factory=dict)
    lease: LeaseBounds = Field(default_factory=LeaseBounds)

    @classmethod
    def from_credential(cls, credential: IssuedCredential, role: RoleEntry) -> "LeasedSecret":
        data = {"token": credential.token}
        if credential.bound_user:
            data["user"] = credential.bound_user

        return cls(
            data=data,
            internal_data={
                LeaseMetadataKey.REMOTE_KEY_NAME.value: credential.remote_key_name,
                LeaseMetadataKey.ROLE_NAME.value: credential.source_role_name,
            },
            lease=LeaseBounds.from_role(role),
        )

    @property
    def remote_key_name(self) -> str:
        return self.internal_data[LeaseMetadataKey.REMOTE_KEY_NAME.value]

    @property
    def token(self) -> str:
        return self.data["token"]


class LeaseRequest(BaseModel):
    """Host callback on an issued secret: which operation, with the stored metadata."""

    operation: LeaseOperation
    lease_metadata: Dict[str, str] = Field(default_factory=dict)
