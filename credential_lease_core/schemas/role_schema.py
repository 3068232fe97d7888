"""
Pydantic schema for role records.

A role maps a local name to a remote authorization level plus the lease bounds
applied to credentials issued under it. Durations are whole seconds.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums import RemoteRole


class RoleEntry(BaseModel):
    """Stored under `roles/{name}` as `{gc_role, ttl, max_ttl}`."""

    model_config = ConfigDict(extra="ignore")

    gc_role: RemoteRole = Field(..., description="Remote authorization level of issued keys")
    ttl: int = Field(default=0, ge=0, description="Default lease TTL in seconds, 0 = host default")
    max_ttl: int = Field(default=0, ge=0, description="Maximum lease TTL in seconds, 0 = host default")

    @model_validator(mode="after")
    def check_ttl_bounds(self) -> "RoleEntry":
        if self.max_ttl != 0 and self.ttl > self.max_ttl:
            raise ValueError("ttl cannot be greater than max_ttl")
        return self

    def to_response_data(self) -> Dict[str, Any]:
        return {
            "gc_role": self.gc_role.value,
            "ttl": self.ttl,
            "max_ttl": self.max_ttl,
        }
