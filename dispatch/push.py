#Purpose: Push "adapters" the NotificationDispatcher hands deliveries to.
#Sole responsibility: get one payload to one recipient, or raise DeliveryError.
#Channel choice (push/SMS/email) and retries belong to the service behind the webhook.


from dotenv import load_dotenv
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import requests

from .events import LifecycleEvent

# Read the notification webhook from environment
# Example in .env:
# NOTIFICATION_WEBHOOK_URL=https://notify.example.lk/hooks/school-rides
load_dotenv()
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL")


class DeliveryError(Exception):
    """Raised when a push service could not hand a notification over."""
    pass


def build_message(recipient_id: str, event: LifecycleEvent) -> Dict[str, Any]:
    """
    Wire shape of a single delivery.
    """
    return {
        "recipientId": recipient_id,
        "senderId": event.sender_id,
        "event": event.event_type.value,
        "occurredAt": event.occurred_at.isoformat(),
        **event.payload.to_document(),
    }


@dataclass
class SentNotification:
    recipient_id: str
    event: LifecycleEvent


class InMemoryPushService:
    """
    Keeps every delivery in an outbox list. Used by tests and the simulation.
    """
    def __init__(self):
        self.outbox: List[SentNotification] = []

    def send(self, recipient_id: str, event: LifecycleEvent) -> None:
        self.outbox.append(SentNotification(recipient_id=recipient_id, event=event))

    def sent_to(self, recipient_id: str) -> List[LifecycleEvent]:
        return [sent.event for sent in self.outbox if sent.recipient_id == recipient_id]


class WebhookPushService:
    """
    Webhook Adapter

    POSTs each delivery as JSON to the notification service.
    """
    def __init__(self, url: Optional[str] = None, timeout: int = 5, session: Optional[requests.Session] = None):
        self.url = url or NOTIFICATION_WEBHOOK_URL
        self.timeout = timeout #seconds to wait for the webhook before giving up
        self.session = session or requests.Session()

        if not self.url:
            raise ValueError("Notification webhook URL not set. Please set NOTIFICATION_WEBHOOK_URL in the .env file.")

    def send(self, recipient_id: str, event: LifecycleEvent) -> None:
        try:
            response = self.session.post(self.url, json=build_message(recipient_id, event), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"Webhook delivery to {recipient_id} failed: {exc}") from exc
