"""Storage contract for orders.

On top of ``IRepository`` the workflow needs: creating an order together
with its lines and payment record, locked reads for state changes, the
status trail, order-number look-ups for the sequencer and look-ups by
Razorpay references for the payment bridge.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderPayment, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Insert an order, its ``items`` and an empty payment record.

        ``data`` carries ``order_number``, ``user_id``, the pricing
        columns, both addresses, optional ``notes`` and ``items``
        (``OrderItem`` field dicts).
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]: ...

    @abstractmethod
    def add_history(
        self,
        order_id,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user=None,
    ) -> OrderStatusHistory: ...

    @abstractmethod
    def save_payment(self, payment: OrderPayment) -> OrderPayment: ...

    @abstractmethod
    def latest_order_number(self, prefix: str) -> Optional[str]:
        """Greatest existing number with ``prefix`` (lexicographic)."""

    @abstractmethod
    def order_number_exists(self, order_number: str) -> bool: ...

    @abstractmethod
    def get_by_gateway_order_id(self, gateway_order_id: str, for_update: bool = False) -> Optional[Order]: ...

    @abstractmethod
    def get_by_gateway_payment_id(self, gateway_payment_id: str, for_update: bool = False) -> Optional[Order]: ...
