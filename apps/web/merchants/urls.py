"""
URL routing for internal merchant endpoints.
"""

from django.urls import path

from apps.web.merchants import views

app_name = "merchants"

urlpatterns = [
    path("credentials", views.credentials, name="credentials"),
]
