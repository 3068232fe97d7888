"""
Pydantic schema for the engine's durable configuration record.
"""

from typing import Any, Dict
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

MASKED_VALUE = "***"


def is_absolute_url(value: str) -> bool:
    """True when the value parses as an absolute URI with scheme and host."""
    if not value or not isinstance(value, str):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


class RemoteConfig(BaseModel):
    """
    Endpoint and admin credential used to reach the remote API-key service.

    Field names match the persisted JSON layout of the `config` record.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    organisation: str = Field(default="", description="Organisation slug on the remote service")
    key: str = Field(default="", repr=False, description="Admin API key used to create keys")
    url: str = Field(default="", description="Base URL of the remote API")
    user: str = Field(
        default="", description="User returned alongside every issued credential, if set"
    )

    def to_response_data(self, include_secret: bool = False) -> Dict[str, Any]:
        """Host-facing view of the config; the admin key is masked unless requested."""
        return {
            "organisation": self.organisation,
            "key": self.key if include_secret else (MASKED_VALUE if self.key else ""),
            "url": self.url,
            "user": self.user,
        }
