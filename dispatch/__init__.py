#Expose the high-level lifecycle pieces:
#Events (what changed, who should know)
#State machines (booking + daily ride transitions)
#NotificationDispatcher (the fan-out stage that hands events to a push service)

from .events import EventType, LifecycleEvent, NotificationPayload, NotificationType
from .dispatcher import DispatchReport, NotificationDispatcher, dispatch_events
from .push import DeliveryError, InMemoryPushService, WebhookPushService

__all__ = [
    "EventType",
    "LifecycleEvent",
    "NotificationPayload",
    "NotificationType",
    "DispatchReport",
    "NotificationDispatcher",
    "dispatch_events",
    "DeliveryError",
    "InMemoryPushService",
    "WebhookPushService",
]
