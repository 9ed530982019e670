# Overview: Domain error taxonomy for the onboarding workflow.

"""
Onboarding Errors

Services raise these; routes translate them into JSON responses.
Every error carries a stable machine-readable ``code`` and the HTTP status
the route layer should answer with.
"""

from __future__ import annotations


class OnboardingError(Exception):
    """Base class for onboarding domain errors."""

    code = "ONBOARDING_ERROR"
    http_status = 400

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class NotFound(OnboardingError):
    """A request, document, device, or shipment identity does not exist."""

    code = "NOT_FOUND"
    http_status = 404


class InvalidArgument(OnboardingError):
    """Malformed enum value or payload shape. Raised before any write."""

    code = "INVALID_ARGUMENT"
    http_status = 400


class RequestFrozen(OnboardingError):
    """
    Mutation attempted on a request in a terminal state (ACTIVE or REJECTED).

    Operator surfaces redirect to the read-only view of the request.
    """

    code = "REQUEST_FROZEN"
    http_status = 409

    def __init__(self, request_id: int, status_name: str):
        super().__init__(
            f"Onboarding request {request_id} is {status_name} and can no longer be modified"
        )
        self.request_id = request_id
        self.status_name = status_name

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["read_only"] = True
        data["status"] = self.status_name
        return data


class PrerequisiteMissing(OnboardingError):
    """An operation needs a record that has not been created yet."""

    code = "PREREQUISITE_MISSING"
    http_status = 400


class ActivationBlocked(OnboardingError):
    """
    Activation guards failed.

    Carries the complete ordered list of unmet conditions so the operator
    gets the whole remediation checklist in one round trip.
    """

    code = "ACTIVATION_BLOCKED"
    http_status = 422

    def __init__(self, request_id: int, issues: list[dict]):
        super().__init__(
            f"Onboarding request {request_id} cannot be activated: "
            f"{len(issues)} unmet condition(s)"
        )
        self.request_id = request_id
        self.issues = issues

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["issues"] = self.issues
        return data


class Conflict(OnboardingError):
    """A concurrent status write won the race; this one was not applied."""

    code = "CONFLICT"
    http_status = 409


class InvalidTransition(InvalidArgument):
    """The requested status edge does not exist from the current state."""

    code = "INVALID_TRANSITION"
    http_status = 409
