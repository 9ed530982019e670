# Overview: Delivery of document-request notices through an external notifier.

"""
Document Request Notifications

Email/SMS senders live outside this service. The app holds one notifier in
app.extensions["onboarding_notifier"]; anything with a
send(channel, recipient, subject, body) method qualifies. Without one, notices
are written to the application log.

Delivery is never allowed to undo the document placeholders: every failure
comes back as a warning string attached to an otherwise successful response.
"""

from __future__ import annotations

from typing import Protocol

from flask import current_app

from ..models import DeliveryChannel, OnboardingRequest, RequestDocument


class Notifier(Protocol):
    def send(self, channel: DeliveryChannel, recipient: str, subject: str, body: str) -> None:
        ...


class NotificationError(Exception):
    """Raised by notifiers when a message could not be handed to the carrier."""
    pass


class LogNotifier:
    """Default notifier: records the notice in the application log."""

    def send(self, channel: DeliveryChannel, recipient: str, subject: str, body: str) -> None:
        current_app.logger.info(
            "Onboarding notice via %s to %s: %s", channel.value, recipient, subject
        )


def get_notifier() -> Notifier:
    return current_app.extensions.get("onboarding_notifier") or LogNotifier()


def set_notifier(app, notifier: Notifier | None) -> None:
    if notifier is None:
        app.extensions.pop("onboarding_notifier", None)
    else:
        app.extensions["onboarding_notifier"] = notifier


def _recipient_for(req: OnboardingRequest, channel: DeliveryChannel) -> str | None:
    if channel is DeliveryChannel.EMAIL:
        return req.owner_email
    return req.owner_phone


def _compose(req: OnboardingRequest, documents: list[RequestDocument]) -> tuple[str, str]:
    subject = f"Documents needed to finish onboarding {req.business_name}"
    lines = [f"- {doc.doc_type.label}" for doc in documents]
    body = "Please upload the following documents:\n" + "\n".join(lines)
    return subject, body


def deliver_document_request(
    req: OnboardingRequest,
    documents: list[RequestDocument],
    channels: list[DeliveryChannel],
) -> list[str]:
    """
    Send the document-request notice on every channel.

    Returns warnings for channels that could not be used. Never raises for
    delivery problems.
    """
    warnings: list[str] = []
    if not documents:
        return warnings

    notifier = get_notifier()
    subject, body = _compose(req, documents)

    for channel in channels:
        recipient = _recipient_for(req, channel)
        if not recipient:
            warnings.append(f"{channel.value}: no recipient on file for request {req.id}")
            continue
        try:
            notifier.send(channel, recipient, subject, body)
        except Exception as exc:  # external collaborator; failure is non-fatal
            current_app.logger.warning(
                "Document request notice for request %s via %s failed: %s",
                req.id, channel.value, exc,
            )
            warnings.append(f"{channel.value}: delivery failed ({exc})")

    return warnings
