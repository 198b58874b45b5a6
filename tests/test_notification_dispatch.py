import logging
from datetime import datetime

import pytest
import requests

from bookings.models import ActorRole
from dispatch.dispatcher import NotificationDispatcher, dispatch_events
from dispatch.events import EventType, booking_cancelled, booking_confirmed
from dispatch.push import DeliveryError, InMemoryPushService, WebhookPushService, build_message

NOW = datetime(2026, 10, 18, 10, 30)


class MockResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class MockSession:
    """Records every POST instead of talking to the network."""
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        return MockResponse(self.status_code)


class FlakyPushService:
    """Fails every delivery to one recipient."""
    def __init__(self, broken_recipient):
        self.broken_recipient = broken_recipient
        self.delivered = []

    def send(self, recipient_id, event):
        if recipient_id == self.broken_recipient:
            raise DeliveryError(f"{recipient_id} has no device registered")
        self.delivered.append(recipient_id)


def test_build_message_shape(make_booking):
    event = booking_confirmed(make_booking(), NOW)

    message = build_message("guardian_1", event)

    assert message["recipientId"] == "guardian_1"
    assert message["senderId"] == "driver_1"
    assert message["event"] == EventType.BOOKING_CONFIRMED.value
    assert message["type"] == "booking"
    assert message["title"]
    assert message["data"]["bookingId"] == "booking_1"


def test_webhook_posts_json(make_booking):
    session = MockSession()
    service = WebhookPushService(url="https://notify.test/hooks", timeout=3, session=session)

    service.send("guardian_1", booking_confirmed(make_booking(), NOW))

    assert len(session.posts) == 1
    assert session.posts[0]["url"] == "https://notify.test/hooks"
    assert session.posts[0]["timeout"] == 3
    assert session.posts[0]["json"]["recipientId"] == "guardian_1"


def test_webhook_http_error_becomes_delivery_error(make_booking):
    service = WebhookPushService(url="https://notify.test/hooks", session=MockSession(status_code=503))

    with pytest.raises(DeliveryError):
        service.send("guardian_1", booking_confirmed(make_booking(), NOW))


def test_webhook_needs_a_url(monkeypatch):
    monkeypatch.setattr("dispatch.push.NOTIFICATION_WEBHOOK_URL", None)

    with pytest.raises(ValueError):
        WebhookPushService(session=MockSession())


def test_dispatch_one_delivery_per_recipient(make_booking):
    push_service = InMemoryPushService()
    dispatcher = NotificationDispatcher(push_service=push_service)
    booking = make_booking()

    report = dispatcher.dispatch([
        booking_confirmed(booking, NOW),
        booking_cancelled(booking, ActorRole.GUARDIAN, NOW),
    ])

    assert report.delivered == 2
    assert report.failed == 0
    assert [sent.recipient_id for sent in push_service.outbox] == ["guardian_1", "driver_1"]


def test_failed_delivery_is_logged_and_others_still_sent(make_booking, caplog):
    push_service = FlakyPushService(broken_recipient="guardian_1")
    booking = make_booking()
    events = [
        booking_confirmed(booking, NOW),
        booking_cancelled(booking, ActorRole.GUARDIAN, NOW),
    ]

    with caplog.at_level(logging.ERROR, logger="dispatch.dispatcher"):
        report = NotificationDispatcher(push_service=push_service).dispatch(events)

    assert report.delivered == 1
    assert report.failed == 1
    assert report.failures[0][0] == "guardian_1"
    assert push_service.delivered == ["driver_1"]
    assert "guardian_1" in caplog.text


def test_dispatch_nothing():
    report = dispatch_events([])

    assert report.delivered == 0
    assert report.failed == 0
