"""The identity of the user behind the current request."""

from __future__ import annotations

from typing import Any

from flask import g

from flashplan.constants import SESSION_DISPLAY_NAME
from flashplan.utils import display_name_from_email


class IdentitySession:
    """Exposes the signed-in user as an opaque id and a display name."""

    def __init__(self, user: dict[str, Any] | None) -> None:
        self.user = user

    @classmethod
    def current(cls) -> IdentitySession:
        """The session for the request being handled."""
        return cls(g.get("user"))

    def current_user_id(self) -> str | None:
        if not self.user:
            return None
        return self.user.get("uid")

    def current_display_name(self) -> str:
        if not self.user:
            return SESSION_DISPLAY_NAME
        return self.user.get("displayName") or display_name_from_email(
            self.user.get("email")
        )
