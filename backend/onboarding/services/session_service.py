# Overview: Bearer session tokens for operators.

"""
Operator sessions

A login yields a 64-char hex token; only its SHA-256 digest is stored.
Lifetimes come from config:

    SESSION_ABSOLUTE_TIMEOUT_HOURS   hard expiry from creation (default 24)
    SESSION_IDLE_TIMEOUT_MINUTES     revoked when unused this long (default 120)

The operator's organization and role-derived permissions are resolved once
per request into a SessionContext.
"""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Organization, SessionToken, User
from ..permissions import get_role_permissions
from ..time_utils import utcnow


@dataclass
class SessionContext:
    user: User
    session: SessionToken
    org_id: int
    permissions: frozenset[str] = field(default_factory=frozenset)


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES", 120))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for an operator. Returns (row, plaintext_token).

    Raises ValueError for an unknown operator or an inactive organization.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")

    org = db.session.get(Organization, user.org_id)
    if org is None or not org.is_active:
        raise ValueError("Organization is not active")

    token = secrets.token_hex(32)
    now = utcnow()
    row = SessionToken(
        user_id=user.id,
        org_id=user.org_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(row)
    db.session.commit()
    return row, token


def _revoke(row: SessionToken, reason: str) -> None:
    row.is_revoked = True
    row.revoked_at = utcnow()
    row.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token, or None when it is unknown, expired or revoked.

    Idle sessions and sessions of deactivated operators or organizations
    are revoked here. A hit refreshes last_used_at.
    """
    row = _find_live(token)
    if row is None:
        return None

    now = utcnow()
    if row.expires_at < now:
        return None

    if now - row.last_used_at > _idle_timeout():
        _revoke(row, "Idle timeout")
        return None

    if row.user is None or not row.user.is_active:
        _revoke(row, "User account deactivated")
        return None

    if row.organization is None or not row.organization.is_active:
        _revoke(row, "Organization deactivated")
        return None

    row.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=row.user,
        session=row,
        org_id=row.org_id,
        permissions=frozenset(get_role_permissions(row.user.role)),
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    row = _find_live(token)
    if row is None:
        return False
    _revoke(row, reason)
    return True
