# File: app/core/events.py
"""
In-process domain events for the import/export pipeline.

Services publish events synchronously; subscribers are plain callables
registered per event class. A failing subscriber is logged and never
reaches the publisher, so auditing can never break an import.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Type, Union

from fastapi import FastAPI

logger = logging.getLogger(__name__)

EventKey = Union[str, Type["DomainEvent"]]


@dataclass(eq=False)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = type(self).__name__
        return {k: v.isoformat() if isinstance(v, (datetime, date)) else v for k, v in data.items()}


@dataclass(eq=False)
class DataImportedEvent(DomainEvent):
    entity_type: str = ""
    mode: str = "import"
    total_rows: int = 0
    imported: int = 0
    updated: int = 0
    skipped_duplicates: int = 0
    failed: int = 0


@dataclass(eq=False)
class DataImportAbortedEvent(DomainEvent):
    entity_type: str = ""
    reason: str = ""
    processed_rows: int = 0


@dataclass(eq=False)
class DataExportedEvent(DomainEvent):
    entity_type: str = ""
    row_count: int = 0
    filename: Optional[str] = None


def _event_name(event_type: EventKey) -> str:
    return event_type.__name__ if isinstance(event_type, type) else str(event_type)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventBus:
    """
    Synchronous event bus.

    Usage:
        bus.subscribe(DataImportedEvent, on_import)
        bus.publish(DataImportedEvent(entity_type="clienti", imported=3))
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = defaultdict(list)

    def publish(self, event: DomainEvent) -> int:
        """
        Deliver an event to every subscriber of its class.

        Returns:
            Number of subscribers that handled the event without error
        """
        name = type(event).__name__
        delivered = 0
        for handler in list(self.subscribers.get(name, [])):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(f"Subscriber {_handler_name(handler)} failed on {name} {event.event_id}")
        logger.debug(f"Published {name} {event.event_id} to {delivered} subscriber(s)")
        return delivered

    def subscribe(self, event_type: EventKey, handler: Callable) -> None:
        self.subscribers[_event_name(event_type)].append(handler)
        logger.debug(f"{_handler_name(handler)} subscribed to {_event_name(event_type)}")

    def unsubscribe(self, event_type: EventKey, handler: Callable) -> bool:
        """Remove a subscriber; returns False when it was not registered."""
        handlers = self.subscribers.get(_event_name(event_type), [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True


global_event_bus = EventBus()


def _log_import_summary(event: DataImportedEvent) -> None:
    logger.info(
        f"Import {event.mode} on {event.entity_type}: {event.total_rows} rows, "
        f"{event.imported} new, {event.updated} updated, "
        f"{event.skipped_duplicates} duplicates, {event.failed} failed"
    )


def _log_import_abort(event: DataImportAbortedEvent) -> None:
    logger.warning(f"Import on {event.entity_type} aborted after {event.processed_rows} rows: {event.reason}")


def _log_export(event: DataExportedEvent) -> None:
    logger.info(f"Exported {event.row_count} rows from {event.entity_type} as {event.filename}")


AUDIT_SUBSCRIBERS = (
    (DataImportedEvent, _log_import_summary),
    (DataImportAbortedEvent, _log_import_abort),
    (DataExportedEvent, _log_export),
)


def setup_event_handlers(app: FastAPI) -> None:
    """
    Register the audit subscribers and the application lifecycle hooks.
    """
    for event_type, handler in AUDIT_SUBSCRIBERS:
        global_event_bus.subscribe(event_type, handler)

    @app.on_event("startup")
    async def announce_startup():
        logger.info(f"{app.title} started")

    @app.on_event("shutdown")
    async def release_subscribers():
        for event_type, handler in AUDIT_SUBSCRIBERS:
            global_event_bus.unsubscribe(event_type, handler)
        logger.info(f"{app.title} stopped")
