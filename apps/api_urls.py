from django.urls import include, path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

urlpatterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain-pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("", include("apps.customers.urls")),
    path("", include("apps.catalog.urls")),
    path("inventory/", include("apps.inventory.urls")),
    path("", include("apps.rates.urls")),
    path("", include("apps.chits.urls")),
    path("", include("apps.orders.urls")),
]
