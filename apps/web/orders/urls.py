"""
URL routing for order API endpoints.

Called by the mobile app; no session auth.
"""

from django.urls import path

from apps.web.orders import views

app_name = "orders"

urlpatterns = [
    path("authorize", views.authorize, name="authorize"),
    path("cancel", views.cancel, name="cancel"),
    path("capture", views.capture, name="capture"),
    path("submit-external", views.submit_external, name="submit_external"),
    path("<str:transaction_id>", views.order_detail, name="order_detail"),
]
