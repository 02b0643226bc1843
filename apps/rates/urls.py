from rest_framework.routers import DefaultRouter

from apps.rates.views import RateViewSet

router = DefaultRouter()
router.register("rates", RateViewSet, basename="rate")

urlpatterns = router.urls
