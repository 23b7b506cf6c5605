"""Order e-mail notifications.

``OrderNotifier`` renders the Django templates under
``notifications/`` for an order and hands the message to the
``send_email`` task, either through the Celery broker or inline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Tuple

import structlog
from django.template.loader import render_to_string

from modules.core.middleware import get_correlation_id
from modules.notifications.tasks import send_email
from modules.orders.constants import OrderStatus

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

# status -> (template stem, subject prefix)
TEMPLATES: Dict[str, Tuple[str, str]] = {
    OrderStatus.CONFIRMED: ("order_confirmed", "Order Confirmation"),
    OrderStatus.SHIPPED: ("order_shipped", "Order Shipped"),
    OrderStatus.DELIVERED: ("order_delivered", "Order Delivered"),
}


class OrderNotifier:
    def __init__(self, order_repository: IOrderRepository, async_dispatch: bool = True) -> None:
        self._orders = order_repository
        self._async = async_dispatch

    def notify(self, order_id, status: str) -> bool:
        """Send the e-mail for ``status``; ``False`` when there is nothing to send."""
        if status not in TEMPLATES:
            return False
        order = self._orders.get_by_id(str(order_id))
        if order is None or not order.user.email:
            logger.warning("notification.skipped", order_id=str(order_id), status=status)
            return False

        stem, subject_prefix = TEMPLATES[status]
        context = {
            "order": order,
            "customer_name": order.user.get_full_name() or "Customer",
            "items": list(order.items.all()),
            "payment_method": order.payment.get_method_display(),
        }
        subject = f"{subject_prefix} - {order.order_number}"
        html_body = render_to_string(f"notifications/{stem}.html", context)
        text_body = render_to_string(f"notifications/{stem}.txt", context).strip()

        args = (order.user.email, subject, html_body, text_body)
        if self._async:
            send_email.delay(*args, correlation_id=get_correlation_id() or None)
        else:
            send_email(*args)
        logger.info("notification.dispatched", order_id=str(order.id), status=status)
        return True
