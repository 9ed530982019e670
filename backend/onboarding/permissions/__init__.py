# Overview: Permission system package.
# Re-exports the definitions and lookup helpers.

from .definitions import (
    PermissionCategory,
    PERMISSION_DEFINITIONS,
    ONBOARDING_PERMISSIONS,
    DOCUMENT_PERMISSIONS,
    DEVICE_PERMISSIONS,
    ACTIVATION_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, VALID_ROLES


def get_role_permissions(role: str) -> set[str]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "ONBOARDING_PERMISSIONS",
    "DOCUMENT_PERMISSIONS",
    "DEVICE_PERMISSIONS",
    "ACTIVATION_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "VALID_ROLES",
    "get_role_permissions",
]
