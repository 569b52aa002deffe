"""
URL routing for POS webhooks.
"""

from django.urls import path

from apps.web.pos import views

app_name = "pos"

urlpatterns = [
    path("webhook", views.square_webhook, name="square_webhook"),
]
