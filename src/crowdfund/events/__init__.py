"""
Ledger events and notification sinks.
"""

from crowdfund.events.sinks import (
    CompositeEventSink,
    EventSink,
    InMemoryEventSink,
    LoggingEventSink,
)
from crowdfund.events.types import (
    CampaignCreated,
    CampaignEnded,
    Donation,
    EventType,
    LedgerEvent,
)
from crowdfund.events.webhook import SIGNATURE_HEADER, WebhookEventSink

__all__ = [
    "CampaignCreated",
    "CampaignEnded",
    "CompositeEventSink",
    "Donation",
    "EventSink",
    "EventType",
    "InMemoryEventSink",
    "LedgerEvent",
    "LoggingEventSink",
    "SIGNATURE_HEADER",
    "WebhookEventSink",
]
