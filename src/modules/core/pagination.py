"""Page-number pagination wrapped in the success envelope."""

from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data) -> Response:
        return Response(
            {
                "success": True,
                "data": {
                    "results": data,
                    "pagination": {
                        "page": self.page.number,
                        "limit": self.get_page_size(self.request),
                        "total": self.page.paginator.count,
                        "pages": self.page.paginator.num_pages,
                    },
                },
            }
        )
