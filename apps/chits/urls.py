from rest_framework.routers import DefaultRouter

from apps.chits.views import ChitPaymentViewSet, ChitViewSet

router = DefaultRouter()
router.register("chits", ChitViewSet, basename="chit")
router.register("chit-payments", ChitPaymentViewSet, basename="chit-payment")

urlpatterns = router.urls
