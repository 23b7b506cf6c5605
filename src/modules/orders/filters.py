"""Query filters for the admin order list.

Unknown ``status``/``payment_status`` values fail validation (400)
instead of silently matching nothing.
"""

import django_filters

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_status = django_filters.ChoiceFilter(
        field_name="payment__status", choices=PaymentStatus.choices
    )
    placed_after = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    placed_before = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    total_between = django_filters.RangeFilter(field_name="total")

    class Meta:
        model = Order
        fields = ("status", "payment_status")
