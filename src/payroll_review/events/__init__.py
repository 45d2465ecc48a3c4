"""Review pipeline domain events."""

from payroll_review.events.emitter import EventEmitter, log_event
from payroll_review.events.types import (
    DomainEvent,
    EventCategory,
    EventMetadata,
    ReviewerAdded,
    ReviewerLevelChanged,
    ReviewerRemoved,
    ReviewersReordered,
    ReviewStatusChanged,
)

__all__ = [
    "EventEmitter",
    "log_event",
    "DomainEvent",
    "EventCategory",
    "EventMetadata",
    "ReviewerAdded",
    "ReviewerLevelChanged",
    "ReviewerRemoved",
    "ReviewersReordered",
    "ReviewStatusChanged",
]
