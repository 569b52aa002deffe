"""
URL configuration for SipLocal.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # Mobile app endpoints
    path("api/orders/", include("apps.web.orders.urls")),
    # Square webhooks
    path("", include("apps.web.pos.urls")),
    # Internal tooling
    path("", include("apps.web.merchants.urls")),
]
