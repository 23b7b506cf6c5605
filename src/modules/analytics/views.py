"""Admin analytics API (read-only, staff only)."""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.analytics.dtos import SALES_PERIOD_DAYS, AnalyticsQueryDTO
from modules.analytics.services import AnalyticsService
from modules.core.conf import CommerceConfig
from modules.core.permissions import IsAdmin
from modules.core.responses import envelope
from modules.core.validation import parse_dto


class AnalyticsViewSet(ViewSet):
    permission_classes = [IsAdmin]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = AnalyticsService(config=CommerceConfig.from_settings())

    def _query(self, request: Request) -> AnalyticsQueryDTO:
        return parse_dto(AnalyticsQueryDTO, request.query_params)

    @action(detail=False, methods=["get"])
    def dashboard(self, request: Request) -> Response:
        """GET /api/v1/admin/analytics/dashboard/"""
        return envelope(self._service.dashboard())

    @action(detail=False, methods=["get"])
    def sales(self, request: Request) -> Response:
        """GET /api/v1/admin/analytics/sales/?period=7days|30days|90days|year"""
        query = self._query(request)
        sales = self._service.sales(
            days=SALES_PERIOD_DAYS[query.period], by_month=query.period == "year"
        )
        return envelope({"period": query.period, "sales": sales})

    @action(detail=False, methods=["get"], url_path="top-products")
    def top_products(self, request: Request) -> Response:
        query = self._query(request)
        return envelope({"products": self._service.top_products(limit=query.limit)})

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request: Request) -> Response:
        """GET /api/v1/admin/analytics/low-stock/?threshold=&limit="""
        query = self._query(request)
        limit = query.limit if "limit" in request.query_params else 20
        products = self._service.low_stock(threshold=query.threshold, limit=limit)
        return envelope({"products": products})

    @action(detail=False, methods=["get"])
    def categories(self, request: Request) -> Response:
        return envelope({"categories": self._service.categories()})

    @action(detail=False, methods=["get"], url_path="recent-orders")
    def recent_orders(self, request: Request) -> Response:
        query = self._query(request)
        return envelope({"orders": self._service.recent_orders(limit=query.limit)})
