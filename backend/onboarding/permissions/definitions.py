# Overview: Permission definitions for the onboarding console.
# Each permission is defined as: (code, name, description, category)


class PermissionCategory:
    """Permission categories for grouping in operator screens."""
    ONBOARDING = "ONBOARDING"
    DOCUMENTS = "DOCUMENTS"
    DEVICES = "DEVICES"
    ACTIVATION = "ACTIVATION"


ONBOARDING_PERMISSIONS = [
    (
        "VIEW_ONBOARDING",
        "View Onboarding",
        "View onboarding requests, checklists and timelines",
        PermissionCategory.ONBOARDING,
    ),
    (
        "MANAGE_ONBOARDING",
        "Manage Onboarding",
        "Submit and claim requests, add locations, add timeline notes",
        PermissionCategory.ONBOARDING,
    ),
    (
        "APPROVE_ONBOARDING",
        "Approve Onboarding",
        "Approve or reject onboarding requests",
        PermissionCategory.ONBOARDING,
    ),
]

DOCUMENT_PERMISSIONS = [
    (
        "VERIFY_DOCUMENTS",
        "Verify Documents",
        "Request, upload and verify compliance documents",
        PermissionCategory.DOCUMENTS,
    ),
]

DEVICE_PERMISSIONS = [
    (
        "MANAGE_DEVICES",
        "Manage Devices",
        "Assign and remove terminals for a request",
        PermissionCategory.DEVICES,
    ),
    (
        "MANAGE_SHIPMENTS",
        "Manage Shipments",
        "Create shipments and record carrier progress",
        PermissionCategory.DEVICES,
    ),
]

ACTIVATION_PERMISSIONS = [
    (
        "ACTIVATE_ACCOUNTS",
        "Activate Accounts",
        "Create accounts and locations and activate eligible requests",
        PermissionCategory.ACTIVATION,
    ),
    (
        "FORCE_ACTIVATION",
        "Force Activation",
        "Activate a request while activation guards are still unmet",
        PermissionCategory.ACTIVATION,
    ),
]

PERMISSION_DEFINITIONS = (
    ONBOARDING_PERMISSIONS
    + DOCUMENT_PERMISSIONS
    + DEVICE_PERMISSIONS
    + ACTIVATION_PERMISSIONS
)
