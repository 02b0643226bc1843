from apps.common.exceptions import ensure_uuid


class UUIDLookupMixin:
    lookup_label = "id"

    def get_object(self):
        lookup_url_kwarg = self.lookup_url_kwarg or self.lookup_field
        ensure_uuid(self.kwargs.get(lookup_url_kwarg), self.lookup_label)
        return super().get_object()
