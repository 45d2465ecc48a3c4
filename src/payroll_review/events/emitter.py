"""Synchronous event emitter for pipeline events.

Handlers are isolated: a failing handler is logged and does not stop the
others, nor does it fail the mutation that emitted the event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from payroll_review.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], None]


@dataclass
class HandlerRegistration:
    """Registration of an event handler."""

    handler: EventHandler
    event_types: set[str] | None  # None = all events
    categories: set[EventCategory] | None  # None = all categories


class EventEmitter:
    """Publishes events to registered handlers.

    Usage:
        emitter = EventEmitter()
        emitter.on(ReviewStatusChanged, audit_log)
        emitter.on_category(EventCategory.ROSTER, invalidate_roster_cache)
        emitter.emit(event)
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []

    def on(self, event_type: type[T] | list[type[T]], handler: EventHandler) -> None:
        """Register handler for specific event type(s)."""
        if isinstance(event_type, list):
            types = {t.__name__ for t in event_type}
        else:
            types = {event_type.__name__}
        self._handlers.append(HandlerRegistration(handler, types, None))

    def on_category(
        self,
        category: EventCategory | list[EventCategory],
        handler: EventHandler,
    ) -> None:
        """Register handler for event category(ies)."""
        cats = set(category) if isinstance(category, list) else {category}
        self._handlers.append(HandlerRegistration(handler, None, cats))

    def on_all(self, handler: EventHandler) -> None:
        self._handlers.append(HandlerRegistration(handler, None, None))

    def off(self, handler: EventHandler) -> None:
        self._handlers = [reg for reg in self._handlers if reg.handler is not handler]

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Emit an event to all matching handlers.

        Returns list of any exceptions raised by handlers.
        """
        errors: list[Exception] = []
        for reg in self._handlers:
            if reg.event_types and event.event_type not in reg.event_types:
                continue
            if reg.categories and event.category not in reg.categories:
                continue
            try:
                reg.handler(event)
            except Exception as e:
                logger.exception(
                    "Handler %s failed for event %s",
                    reg.handler,
                    event.event_type,
                )
                errors.append(e)
        return errors


def log_event(event: DomainEvent) -> None:
    """Catch-all handler writing each event to the pipeline log."""
    logger.info("%s %s", event.event_type, event.to_json())
