import logging

import httpx

from booking_engine.core.config import settings
from booking_engine.services.lifecycle_service import LifecycleEvent

logger = logging.getLogger(__name__)


async def send_lifecycle_event(event: LifecycleEvent) -> bool:
    """POST a lifecycle event to the notification webhook (call from background task).

    Delivery is best effort: failures are logged and never propagate, so a
    down notifier cannot undo or block the transition that produced the event.
    """
    if not settings.notifications_enabled:
        logger.debug("Notifications disabled (NOTIFICATION_WEBHOOK_URL not set), skipping %s", event.type)
        return False
    try:
        async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
            resp = await client.post(settings.notification_webhook_url, json=event.to_payload())
        if resp.status_code >= 400:
            logger.warning(
                "Notification webhook rejected %s for booking %s: status=%s body=%s",
                event.type,
                event.booking_id,
                resp.status_code,
                resp.text[:500],
            )
            return False
        logger.info("Notification %s sent for booking %s", event.type, event.booking_id)
        return True
    except Exception as e:
        logger.exception("Failed to send notification %s for booking %s: %s", event.type, event.booking_id, e)
        return False


async def send_lifecycle_events(events: list[LifecycleEvent]) -> None:
    for event in events:
        await send_lifecycle_event(event)
