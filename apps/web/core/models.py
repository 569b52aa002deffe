"""
Core models - shared abstract bases.
"""

from django.db import models


class TimestampedModel(models.Model):
    """
    Abstract base adding created/updated timestamps.

    Records built on it are audit records: they are updated in place and
    never deleted by application code.
    """

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
