from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

API_V1 = "api/v1/"

api_modules = [
    "modules.accounts.urls",
    "modules.products.urls",
    "modules.carts.urls",
    "modules.orders.urls",
    "modules.payments.urls",
    "modules.analytics.urls",
]

urlpatterns = [
    path("admin/", admin.site.urls),
    # /health
    path("", include("modules.core.urls")),
    *[path(API_V1, include(module)) for module in api_modules],
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
]
