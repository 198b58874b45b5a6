"""
Purpose: Notification fan-out (the "who gets told" stage).
What it does:
Takes the events a lifecycle transition returned and delivers one
notification per recipient through the injected push service.
Runs after the transition is saved; a failed delivery never undoes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .events import LifecycleEvent
from .push import DeliveryError, InMemoryPushService

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    delivered: int = 0
    failures: List[Tuple[str, LifecycleEvent]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


class NotificationDispatcher:
    """
    Coordinates handing lifecycle events to the push service, one delivery per recipient.
    """
    def __init__(self, push_service=None):
        self.push_service = push_service if push_service is not None else InMemoryPushService()

    def dispatch(self, events: Iterable[LifecycleEvent]) -> DispatchReport:
        report = DispatchReport()

        for event in events:
            for recipient_id in event.recipient_ids:
                try:
                    self.push_service.send(recipient_id, event)
                except DeliveryError as e:
                    # Delivery is the push service's problem; keep going for everyone else
                    logger.error(f"Notification {event.event_type.value} to {recipient_id} failed: {e}")
                    report.failures.append((recipient_id, event))
                    continue

                report.delivered += 1
                logger.info(f"Sent {event.event_type.value} to {recipient_id}")

        return report


def dispatch_events(events: Iterable[LifecycleEvent], dispatcher: Optional[NotificationDispatcher] = None) -> DispatchReport:
    """
    Convenience wrapper for callers without a long-lived dispatcher.
    """
    return (dispatcher or NotificationDispatcher()).dispatch(events)
