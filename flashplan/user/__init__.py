"""User profile documents and their group links."""

from .services import UsersService

__all__ = ["UsersService"]
