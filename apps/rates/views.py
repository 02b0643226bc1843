from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.permissions import RolePermission
from apps.rates.models import Rate
from apps.rates.serializers import RateSerializer, RateUpdateSerializer
from apps.rates.services import seed_rates, set_rate


class RateViewSet(viewsets.GenericViewSet):
    queryset = Rate.objects.select_related("updated_by").order_by("metal", "purity")
    serializer_class = RateSerializer
    permission_classes = [RolePermission]
    pagination_class = None
    lookup_field = "metal"
    lookup_value_regex = "gold|silver"
    capability_map = {
        "list": ["rates.view"],
        "update": ["rates.manage"],
        "seed": ["rates.manage"],
    }

    def list(self, request):
        return Response(RateSerializer(self.get_queryset(), many=True).data)

    def update(self, request, metal=None):
        serializer = RateUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rate, updated_count = set_rate(
            metal,
            serializer.validated_data.get("purity"),
            serializer.validated_data["price"],
            user=request.user,
        )
        record_audit(
            actor=request.user,
            action="rates.update",
            entity_type="rate",
            entity_id=rate.id,
            payload={
                "metal": rate.metal,
                "purity": rate.purity,
                "price": str(rate.price),
                "updated_products": updated_count,
            },
        )
        return Response(
            {
                "success": True,
                "rate": RateSerializer(rate).data,
                "updated_products": updated_count,
                "message": f"Rate updated and {updated_count} products repriced.",
            }
        )

    @action(detail=False, methods=["post"])
    def seed(self, request):
        created = seed_rates()
        return Response(
            {
                "success": True,
                "rates": RateSerializer(self.get_queryset(), many=True).data,
                "created": len(created),
                "message": "Default rates seeded.",
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
