"""
Enums used across the credential_lease_core package.

Kept in their own module so schemas and services can share them without
circular imports.
"""

import enum


class RemoteRole(str, enum.Enum):
    """Authorization levels the remote service can grant to an API key."""

    VIEWER = "Viewer"
    ADMIN = "Admin"
    EDITOR = "Editor"
    METRICS_PUBLISHER = "MetricsPublisher"
    PLUGIN_PUBLISHER = "PluginPublisher"

    @classmethod
    def values(cls) -> list:
        return [member.value for member in cls]
