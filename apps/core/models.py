# apps/core/models.py
"""
Abstract base models for common patterns.
Use these as base classes to ensure consistency across models.
"""
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract model providing automatic timestamp fields.
    Inherit from this for models that need created/updated tracking.
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']


class ReferenceDataModel(TimeStampedModel):
    """
    Abstract model for small lookup tables (plans, payment methods).
    Rows are switched off with is_active instead of being deleted.
    """
    name = models.CharField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        abstract = True
        ordering = ['name']

    def __str__(self):
        return self.name
