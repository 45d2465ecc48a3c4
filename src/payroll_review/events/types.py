"""Domain events for review pipeline mutations.

Events are emitted after the payroll service has accepted a mutation. They
let observers (audit logging, cache invalidation, live dashboards) react
without coupling to the services that perform the change.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    ROSTER = "roster"
    REVIEW = "review"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every event."""

    event_id: UUID
    timestamp: datetime
    company_id: str
    actor_id: str | None = None

    @classmethod
    def create(cls, company_id: str, actor_id: str | None = None) -> EventMetadata:
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            company_id=company_id,
            actor_id=actor_id,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all pipeline events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Roster Events
# =============================================================================


@dataclass(frozen=True)
class ReviewerAdded(DomainEvent):
    company_user_id: str
    level: int

    @property
    def category(self) -> EventCategory:
        return EventCategory.ROSTER


@dataclass(frozen=True)
class ReviewerRemoved(DomainEvent):
    reviewer_id: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.ROSTER


@dataclass(frozen=True)
class ReviewerLevelChanged(DomainEvent):
    reviewer_id: str
    from_level: int
    to_level: int

    @property
    def category(self) -> EventCategory:
        return EventCategory.ROSTER


@dataclass(frozen=True)
class ReviewersReordered(DomainEvent):
    """Two reviewers exchanged levels in one atomic request."""

    assignments: tuple[tuple[str, int], ...] = field(default_factory=tuple)

    @property
    def category(self) -> EventCategory:
        return EventCategory.ROSTER


# =============================================================================
# Review Events
# =============================================================================


@dataclass(frozen=True)
class ReviewStatusChanged(DomainEvent):
    payroll_run_id: str
    review_id: str
    from_status: str
    to_status: str
    reviewer_level: int | None = None
    reopened: bool = False

    @property
    def category(self) -> EventCategory:
        return EventCategory.REVIEW
