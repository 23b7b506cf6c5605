from rest_framework.routers import SimpleRouter

from modules.analytics.views import AnalyticsViewSet

router = SimpleRouter(trailing_slash=True)
router.register("admin/analytics", AnalyticsViewSet, basename="admin-analytics")

urlpatterns = router.urls
