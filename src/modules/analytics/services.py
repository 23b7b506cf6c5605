"""Admin analytics: read-only aggregates over products and orders.

Revenue counts orders whose payment is ``completed`` and that were not
cancelled.  Month boundaries use the configured local time zone.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog
from django.db.models import Avg, Count, Exists, OuterRef, Prefetch, Q, Sum
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from modules.orders.constants import IN_PROGRESS_STATES, OrderStatus, PaymentStatus
from modules.orders.models import Order, OrderItem
from modules.products.models import InventoryRecord, Product

if TYPE_CHECKING:
    from modules.core.conf import CommerceConfig

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def _money(value: Optional[Decimal]) -> Decimal:
    return (value or Decimal("0")).quantize(CENT)


def _growth(current, previous) -> float:
    """Percentage change rounded to one decimal; 0 without a baseline."""
    if not previous:
        return 0.0
    return round(float((current - previous) / previous * 100), 1)


class AnalyticsService:
    def __init__(self, config: CommerceConfig, clock: Callable[[], datetime] = timezone.now) -> None:
        self._config = config
        self._clock = clock

    # ------------------------------------------------------------------

    def _month_bounds(self):
        now = timezone.localtime(self._clock())
        this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        last_month = (this_month - timedelta(days=1)).replace(day=1)
        return this_month, last_month

    @staticmethod
    def _revenue_orders():
        return Order.objects.exclude(status=OrderStatus.CANCELLED).filter(
            payment__status=PaymentStatus.COMPLETED
        )

    def _low_stock_products(self, threshold: int):
        low_variant = InventoryRecord.objects.filter(product=OuterRef("pk"), stock__lte=threshold)
        return Product.objects.alive().filter(is_active=True).filter(Exists(low_variant))

    # ------------------------------------------------------------------

    def dashboard(self) -> Dict[str, Any]:
        this_month, last_month = self._month_bounds()
        products = Product.objects.alive()
        orders = Order.objects.all()

        orders_this_month = orders.filter(created_at__gte=this_month).count()
        orders_last_month = orders.filter(
            created_at__gte=last_month, created_at__lt=this_month
        ).count()

        revenue = self._revenue_orders().aggregate(total=Sum("total"), average=Avg("total"))
        revenue_this_month = _money(
            self._revenue_orders()
            .filter(created_at__gte=this_month)
            .aggregate(total=Sum("total"))["total"]
        )
        revenue_last_month = _money(
            self._revenue_orders()
            .filter(created_at__gte=last_month, created_at__lt=this_month)
            .aggregate(total=Sum("total"))["total"]
        )

        logger.info("analytics.dashboard_built")
        return {
            "products": {
                "total": products.count(),
                "active": products.filter(is_active=True).count(),
                "featured": products.filter(is_featured=True).count(),
                "low_stock": self._low_stock_products(self._config.low_stock_threshold).count(),
            },
            "orders": {
                "total": orders.count(),
                "pending": orders.filter(status=OrderStatus.PENDING).count(),
                "in_progress": orders.filter(status__in=IN_PROGRESS_STATES).count(),
                "delivered": orders.filter(status=OrderStatus.DELIVERED).count(),
                "cancelled": orders.filter(status=OrderStatus.CANCELLED).count(),
                "this_month": orders_this_month,
                "last_month": orders_last_month,
                "growth": _growth(orders_this_month, orders_last_month),
            },
            "revenue": {
                "total": _money(revenue["total"]),
                "average_order_value": _money(revenue["average"]),
                "this_month": revenue_this_month,
                "last_month": revenue_last_month,
                "growth": _growth(revenue_this_month, revenue_last_month),
            },
        }

    def sales(self, days: int = 30, by_month: bool = False) -> List[Dict[str, Any]]:
        """Revenue and order count per day (or per month) for non-cancelled orders."""
        since = self._clock() - timedelta(days=days)
        bucket = TruncMonth("created_at") if by_month else TruncDate("created_at")
        rows = (
            Order.objects.filter(created_at__gte=since)
            .exclude(status=OrderStatus.CANCELLED)
            .annotate(bucket=bucket)
            .values("bucket")
            .annotate(
                order_count=Count("id"),
                revenue=Sum("total"),
                average_order_value=Avg("total"),
            )
            .order_by("bucket")
        )
        return [
            {
                "period": row["bucket"].strftime("%Y-%m" if by_month else "%Y-%m-%d"),
                "order_count": row["order_count"],
                "revenue": _money(row["revenue"]),
                "average_order_value": _money(row["average_order_value"]),
            }
            for row in rows
        ]

    def top_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = list(
            OrderItem.objects.exclude(order__status=OrderStatus.CANCELLED)
            .filter(product__isnull=False)
            .values("product_id")
            .annotate(
                total_quantity=Sum("quantity"),
                total_revenue=Sum("subtotal"),
                order_count=Count("order", distinct=True),
            )
            .order_by("-total_revenue", "product_id")[:limit]
        )
        products = Product.objects.in_bulk([row["product_id"] for row in rows])
        result = []
        for row in rows:
            product = products.get(row["product_id"])
            if product is None:
                continue
            result.append(
                {
                    "product_id": str(product.id),
                    "name": product.name,
                    "slug": product.slug,
                    "image": product.primary_image,
                    "total_quantity": row["total_quantity"],
                    "total_revenue": _money(row["total_revenue"]),
                    "order_count": row["order_count"],
                }
            )
        return result

    def low_stock(self, threshold: Optional[int] = None, limit: int = 20) -> List[Dict[str, Any]]:
        """Active products with at least one variant at or below ``threshold``."""
        if threshold is None:
            threshold = self._config.low_stock_threshold
        products = (
            self._low_stock_products(threshold)
            .annotate(
                low_stock_total=Sum("inventory__stock", filter=Q(inventory__stock__lte=threshold))
            )
            .prefetch_related(
                Prefetch(
                    "inventory",
                    queryset=InventoryRecord.objects.filter(stock__lte=threshold).order_by(
                        "stock", "sku"
                    ),
                    to_attr="low_stock_variants",
                )
            )
            .order_by("low_stock_total", "name")[:limit]
        )
        return [
            {
                "product_id": str(product.id),
                "name": product.name,
                "slug": product.slug,
                "image": product.primary_image,
                "low_stock_total": product.low_stock_total,
                "variants": [
                    {
                        "color": record.color,
                        "size": record.size,
                        "stock": record.stock,
                        "sku": record.sku,
                    }
                    for record in product.low_stock_variants
                ],
            }
            for product in products
        ]

    def categories(self) -> List[Dict[str, Any]]:
        rows = (
            Product.objects.alive()
            .filter(is_active=True)
            .values("category")
            .annotate(product_count=Count("id"), average_price=Avg("price"))
            .order_by("-product_count", "category")
        )
        return [
            {
                "category": row["category"],
                "product_count": row["product_count"],
                "average_price": _money(row["average_price"]),
            }
            for row in rows
        ]

    def recent_orders(self, limit: int = 10) -> List[Dict[str, Any]]:
        orders = Order.objects.select_related("user", "payment").order_by("-created_at")[:limit]
        return [
            {
                "id": str(order.id),
                "order_number": order.order_number,
                "customer_name": order.user.get_full_name(),
                "customer_email": order.user.email,
                "total": order.total,
                "status": order.status,
                "payment_method": order.payment.method,
                "created_at": order.created_at,
            }
            for order in orders
        ]
