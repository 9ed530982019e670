# Overview: Default permission sets per operator role.

from .definitions import PERMISSION_DEFINITIONS

_ALL = [perm[0] for perm in PERMISSION_DEFINITIONS]

DEFAULT_ROLE_PERMISSIONS = {
    "admin": list(_ALL),
    "agent": [code for code in _ALL if code not in {"FORCE_ACTIVATION", "APPROVE_ONBOARDING"}],
    "viewer": ["VIEW_ONBOARDING"],
}

VALID_ROLES = tuple(DEFAULT_ROLE_PERMISSIONS.keys())
