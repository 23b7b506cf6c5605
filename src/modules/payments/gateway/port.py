"""Payment gateway port (abstract interface).

Adapters create the gateway-side order the client-side checkout widget
pays against.  Signature checks do not go through the port; they are
plain HMACs computed in ``modules.payments.signatures``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class GatewayOrder:
    """Reference returned by the gateway for a payable order."""

    id: str
    amount: int
    currency: str
    receipt: str = ""
    notes: Dict[str, str] = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrder:
        """Create a gateway order for ``amount`` in minor units (paise).

        Raises:
            UpstreamError: the gateway rejected the call or was unreachable.
        """
