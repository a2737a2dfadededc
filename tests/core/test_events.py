# tests/core/test_events.py

import logging

from app.core.events import (
    AUDIT_SUBSCRIBERS,
    DataExportedEvent,
    DataImportedEvent,
    EventBus,
)


def _audited_bus():
    bus = EventBus()
    for event_type, handler in AUDIT_SUBSCRIBERS:
        bus.subscribe(event_type, handler)
    return bus


def test_export_event_is_audited(caplog):
    bus = _audited_bus()

    with caplog.at_level(logging.INFO, logger="app.core.events"):
        delivered = bus.publish(DataExportedEvent(entity_type="clienti", row_count=3, filename="clienti_export.xlsx"))

    assert delivered == 1
    assert "Exported 3 rows from clienti as clienti_export.xlsx" in caplog.text


def test_import_event_is_audited(caplog):
    bus = _audited_bus()

    with caplog.at_level(logging.INFO, logger="app.core.events"):
        bus.publish(DataImportedEvent(entity_type="fornitori", total_rows=2, imported=1, failed=1))

    assert "Import import on fornitori: 2 rows" in caplog.text


def test_failing_subscriber_does_not_reach_publisher():
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(DataExportedEvent, broken)
    bus.subscribe(DataExportedEvent, received.append)

    assert bus.publish(DataExportedEvent(entity_type="clienti")) == 1
    assert len(received) == 1


def test_unsubscribe():
    bus = EventBus()
    received = []
    bus.subscribe(DataExportedEvent, received.append)

    assert bus.unsubscribe(DataExportedEvent, received.append)
    assert not bus.unsubscribe(DataExportedEvent, received.append)
    bus.publish(DataExportedEvent())
    assert received == []
