"""Event handlers that turn order status changes into e-mails."""

from __future__ import annotations

import structlog
from django.conf import settings

from modules.notifications.services import OrderNotifier
from modules.orders.constants import NOTIFIABLE_STATES
from modules.orders.events import OrderStatusChanged
from modules.orders.repositories import OrderDjangoRepository

logger = structlog.get_logger(__name__)


class OrderNotificationHandler:
    """Sends confirmation, shipping and delivery e-mails.

    Runs after the state change has committed; a failure here is logged
    and never reaches the caller.
    """

    def handle(self, event: OrderStatusChanged) -> None:
        if event.new_status not in NOTIFIABLE_STATES:
            return
        notifier = OrderNotifier(
            OrderDjangoRepository(), async_dispatch=settings.NOTIFICATIONS_ASYNC
        )
        try:
            notifier.notify(event.aggregate_id, event.new_status)
        except Exception:
            logger.exception(
                "notification.failed",
                order_id=str(event.aggregate_id),
                status=event.new_status,
            )


order_notification_handler = OrderNotificationHandler()
