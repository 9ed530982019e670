# Overview: Operator account creation and password checks.

"""
Operator Authentication Service

Passwords hashed with bcrypt (cost factor 12). Strength rules apply at
creation time. Session tokens live in session_service.py.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, Organization
from ..permissions import VALID_ROLES
from ..time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with upper, lower, digit and special character.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")
    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")
    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")
    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def create_operator(
    username: str,
    email: str,
    password: str,
    org_id: int,
    *,
    role: str = "agent",
    display_name: str | None = None,
) -> User:
    """
    Create an operator account.

    Raises:
        ValueError: unknown org, inactive org, duplicate username, bad role
        PasswordValidationError: weak password
    """
    if role not in VALID_ROLES:
        raise ValueError(f"role must be one of: {', '.join(VALID_ROLES)}")

    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        raise ValueError("Organization not found")
    if not org.is_active:
        raise ValueError("Organization is not active")

    existing = db.session.query(User).filter_by(org_id=org_id, username=username).first()
    if existing:
        raise ValueError("Username already exists in this organization")

    user = User(
        org_id=org_id,
        username=username,
        email=email,
        display_name=display_name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str, *, org_id: int | None = None) -> User | None:
    """
    Return the active user matching the credentials, or None.

    Usernames are unique per organization; without org_id the first
    matching active account is used.
    """
    q = db.session.query(User).filter_by(username=username, is_active=True)
    if org_id is not None:
        q = q.filter_by(org_id=org_id)

    for user in q.order_by(User.id.asc()).all():
        if verify_password(password, user.password_hash):
            user.last_login_at = utcnow()
            db.session.commit()
            return user
    return None
