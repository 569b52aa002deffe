"""Admin registration for merchant models."""

from django.contrib import admin

from apps.web.merchants.models import MerchantCredential


@admin.register(MerchantCredential)
class MerchantCredentialAdmin(admin.ModelAdmin):
    """Admin for merchant credentials. The token is write-only here."""

    list_display = ["merchant_id", "pos_provider", "location_id", "updated_at"]
    list_filter = ["pos_provider"]
    search_fields = ["merchant_id", "location_id"]
    readonly_fields = ["created_at", "updated_at"]

    def get_fields(self, request, obj=None):  # type: ignore[no-untyped-def]
        fields = ["merchant_id", "pos_provider", "location_id"]
        if obj is None:
            fields.append("access_token")
        return [*fields, "created_at", "updated_at"]
