"""Data models for the group blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from flashplan.constants import (
    DEFAULT_DISPLAY_NAME,
    DEFAULT_THEME_KEY,
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLE_OWNER,
    ROLE_PENDING,
)
from flashplan.core.types import as_datetime

ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER, ROLE_PENDING)


class Consensus(str, Enum):
    """How much of a group is free on a given date."""

    UNANIMOUS = "unanimous"
    MAJORITY = "majority"
    MINORITY = "minority"


@dataclass
class Group:
    """A group with its membership lists."""

    id: str
    name: str = ""
    created_by: str = ""
    created_at: datetime.datetime | None = None
    member_ids: list[str] = field(default_factory=list)
    admins: list[str] = field(default_factory=list)
    join_requests: list[str] = field(default_factory=list)
    invites: list[str] = field(default_factory=list)
    invite_code: str | None = None
    theme_key: str = DEFAULT_THEME_KEY

    @classmethod
    def from_dict(cls, group_id: str, data: dict[str, Any]) -> Group:
        """Build a group from raw Firestore fields."""
        return cls(
            id=group_id,
            name=data.get("name") or "",
            created_by=data.get("createdBy") or "",
            created_at=as_datetime(data.get("createdAt")),
            member_ids=list(data.get("memberIds") or []),
            admins=list(data.get("admins") or []),
            join_requests=list(data.get("joinRequests") or []),
            invites=list(data.get("invites") or []),
            invite_code=data.get("inviteCode"),
            theme_key=data.get("themeKey") or DEFAULT_THEME_KEY,
        )

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> Group:
        """Build a group from a document snapshot."""
        return cls.from_dict(snapshot.id, snapshot.to_dict() or {})

    def is_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admins

    def is_pending(self, user_id: str) -> bool:
        return user_id in self.join_requests

    def to_json(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "memberIds": self.member_ids,
            "admins": self.admins,
            "joinRequests": self.join_requests,
            "invites": self.invites,
            "inviteCode": self.invite_code,
            "themeKey": self.theme_key,
        }


@dataclass
class Member:
    """A member record in a group's ``members`` subcollection."""

    id: str
    name: str = DEFAULT_DISPLAY_NAME
    joined_at: datetime.datetime | None = None
    role: str = ROLE_MEMBER

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> Member:
        data = snapshot.to_dict() or {}
        role = data.get("role")
        return cls(
            id=snapshot.id,
            name=data.get("name") or DEFAULT_DISPLAY_NAME,
            joined_at=as_datetime(data.get("joinedAt")),
            role=role if role in ROLES else ROLE_MEMBER,
        )

    @property
    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER

    @property
    def is_pending(self) -> bool:
        return self.role == ROLE_PENDING

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "joinedAt": self.joined_at.isoformat() if self.joined_at else None,
            "role": self.role,
        }


@dataclass(frozen=True)
class Availability:
    """One member's free calendar days within a group."""

    id: str
    name: str = DEFAULT_DISPLAY_NAME
    free_dates: frozenset[str] = frozenset()

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> Availability:
        data = snapshot.to_dict() or {}
        return cls(
            id=snapshot.id,
            name=data.get("name") or DEFAULT_DISPLAY_NAME,
            free_dates=frozenset(data.get("freeDates") or []),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "freeDates": sorted(self.free_dates),
        }
