"""Data models for the plan blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

from flashplan.constants import DEFAULT_DISPLAY_NAME
from flashplan.core.types import as_datetime


class Vote(str, Enum):
    """A member's answer to a plan."""

    YES = "yes"
    MAYBE = "maybe"
    NO = "no"

    @classmethod
    def parse(cls, value: Any) -> Vote | None:
        try:
            return cls(value)
        except ValueError:
            return None


class VoteTally(NamedTuple):
    yes: int
    maybe: int
    no: int


@dataclass
class Plan:
    """A proposed event."""

    id: str
    title: str = ""
    when: datetime.datetime | None = None
    location: str = ""
    notes: str = ""
    created_by: str = ""
    created_at: datetime.datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> Plan:
        data = snapshot.to_dict() or {}
        return cls(
            id=snapshot.id,
            title=data.get("title") or "",
            when=as_datetime(data.get("when")),
            location=data.get("location") or "",
            notes=data.get("notes") or "",
            created_by=data.get("createdBy") or "",
            created_at=as_datetime(data.get("createdAt")),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "when": self.when.isoformat() if self.when else None,
            "location": self.location,
            "notes": self.notes,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class PlanVote:
    """One user's vote on a plan. Unknown stored values read as maybe."""

    id: str
    name: str = DEFAULT_DISPLAY_NAME
    vote: Vote = Vote.MAYBE
    updated_at: datetime.datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> PlanVote:
        data = snapshot.to_dict() or {}
        return cls(
            id=snapshot.id,
            name=data.get("name") or DEFAULT_DISPLAY_NAME,
            vote=Vote.parse(data.get("vote")) or Vote.MAYBE,
            updated_at=as_datetime(data.get("updatedAt")),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "vote": self.vote.value,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
