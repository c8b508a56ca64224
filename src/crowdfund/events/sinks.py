"""
Notification sinks for ledger events.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from crowdfund.core.logging import get_logger
from crowdfund.events.types import EventType, LedgerEvent


class EventSink(ABC):
    """Receives ledger events. No acknowledgment is expected."""

    @abstractmethod
    async def publish(self, event: LedgerEvent) -> None:
        """Deliver one event."""
        ...

    async def close(self) -> None:
        return None


class InMemoryEventSink(EventSink):
    """Collects events in a list, mainly for tests and local inspection."""

    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    async def publish(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[LedgerEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink(EventSink):
    """Writes each event to the `crowdfund.events` logger."""

    def __init__(self) -> None:
        self._logger = get_logger("events")

    async def publish(self, event: LedgerEvent) -> None:
        self._logger.info(f"{event.type.value} {event.payload()}")


class CompositeEventSink(EventSink):
    """
    Fans an event out to several sinks.

    Every sink is attempted; the first failure is re-raised after all
    sinks have been tried.
    """

    def __init__(self, sinks: list[EventSink] | None = None) -> None:
        self._sinks = list(sinks or [])
        self._logger = get_logger("events")

    def add(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    async def publish(self, event: LedgerEvent) -> None:
        first_error: Exception | None = None
        for sink in self._sinks:
            try:
                await sink.publish(event)
            except Exception as e:
                self._logger.warning(f"{type(sink).__name__} failed for {event.type.value}: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def close(self) -> None:
        for sink in self._sinks:
            await sink.close()
