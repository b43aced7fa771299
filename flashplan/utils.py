"""Utility functions for the application."""

from __future__ import annotations

import datetime
import secrets

from .constants import (
    DATE_FORMAT,
    DEFAULT_APP_BASE_URL,
    INVITE_CODE_ALPHABET,
    INVITE_CODE_LENGTH,
    SESSION_DISPLAY_NAME,
)
from .errors import ValidationError


def canonical_date(value: str | datetime.date) -> str:
    """Return ``value`` as a ``YYYY-MM-DD`` calendar day string.

    Datetimes are truncated to their own calendar day without any timezone
    conversion; callers pass local dates.

    Raises:
        ValidationError: If ``value`` is not a date or an ISO date string.
    """
    if isinstance(value, datetime.datetime):
        return value.date().strftime(DATE_FORMAT)
    if isinstance(value, datetime.date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, str):
        try:
            parsed = datetime.datetime.strptime(value.strip(), DATE_FORMAT)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}.") from e
        return parsed.date().strftime(DATE_FORMAT)
    raise ValidationError(f"Invalid date: {value!r}.")


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    """Draw a random uppercase alphanumeric invite code."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str | None) -> str:
    """Trim and uppercase a user-entered invite code."""
    return (code or "").strip().upper()


def display_name_from_email(email: str | None) -> str:
    """Use the local part of an email address as a display name."""
    if email:
        local_part = email.split("@")[0]
        if local_part:
            return local_part
    return SESSION_DISPLAY_NAME


def _join_url(base_url: str | None, *parts: str) -> str:
    base = (base_url or DEFAULT_APP_BASE_URL).rstrip("/")
    return "/".join([base, *parts])


def group_url(group_id: str, base_url: str | None = None) -> str:
    """Shareable address for a group."""
    return _join_url(base_url, "g", group_id)


def plan_url(plan_id: str, base_url: str | None = None) -> str:
    """Shareable address for a plan."""
    return _join_url(base_url, "p", plan_id)
