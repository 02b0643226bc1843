from rest_framework.permissions import BasePermission

from apps.accounts.models import UserRole


ROLE_CAPABILITIES = {
    UserRole.ADMIN: {
        "catalog.view",
        "catalog.manage",
        "inventory.view",
        "inventory.manage",
        "customers.view",
        "customers.manage",
        "rates.view",
        "rates.manage",
        "chits.view",
        "chits.manage",
        "chits.collect",
        "chits.settle",
        "chits.delete",
        "orders.view",
        "orders.create",
        "orders.delete",
    },
    UserRole.CASHIER: {
        "catalog.view",
        "inventory.view",
        "customers.view",
        "customers.manage",
        "rates.view",
        "chits.view",
        "chits.manage",
        "chits.collect",
        "chits.settle",
        "orders.view",
        "orders.create",
    },
    UserRole.COLLECTOR: {
        "customers.view",
        "rates.view",
        "chits.view",
        "chits.collect",
    },
}


class RolePermission(BasePermission):
    @staticmethod
    def _resolve_role(user):
        group_names = set(user.groups.values_list("name", flat=True))
        for role in (UserRole.ADMIN, UserRole.CASHIER, UserRole.COLLECTOR):
            if role in group_names:
                return role
        return getattr(user, "role", UserRole.CASHIER)

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability_map = getattr(view, "capability_map", {})
        action = getattr(view, "action", None) or request.method.lower()
        required = capability_map.get(action) or capability_map.get(request.method.lower()) or set()
        if not required:
            return True

        user_role = self._resolve_role(request.user)
        user_caps = ROLE_CAPABILITIES.get(user_role, set())
        return all(cap in user_caps for cap in required)
