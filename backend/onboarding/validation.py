# Overview: Input coercion for route payloads. Everything here raises
# InvalidArgument so bad input is rejected before any write.

from __future__ import annotations

from typing import Any

from .errors import InvalidArgument


def require_text(payload: dict, field: str, *, max_length: int = 255) -> str:
    value = optional_text(payload, field, max_length=max_length)
    if not value:
        raise InvalidArgument(f"{field} is required")
    return value


def optional_text(payload: dict, field: str, *, max_length: int = 255) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a string")
    value = str(value).strip()
    if len(value) > max_length:
        raise InvalidArgument(f"{field} must be at most {max_length} characters")
    return value or None


def optional_int(payload: dict, field: str, *, minimum: int | None = None) -> int | None:
    value = payload.get(field)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidArgument(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise InvalidArgument(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise InvalidArgument(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise InvalidArgument(f"{field} must be >= {minimum}")
    return value


def parse_bool(value: Any, *, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"0", "false", "no", "off", ""}:
        return False
    if isinstance(value, int):
        return bool(value)
    raise InvalidArgument(f"{field} must be a boolean")


def parse_enum_list(enum_cls, values: Any, *, field: str) -> list:
    """
    Parse a list of enum inputs, preserving order and dropping repeats.
    """
    if values is None:
        return []
    if isinstance(values, (str, int)):
        values = [values]
    if not isinstance(values, (list, tuple)):
        raise InvalidArgument(f"{field} must be a list")
    parsed = []
    for value in values:
        member = enum_cls.parse(value, field=field)
        if member not in parsed:
            parsed.append(member)
    return parsed
