"""
Base Models and Mixins for the Lending Ledger
=============================================

Provides:
- UUID primary keys
- Common timestamp fields
- Active/inactive status tracking
"""

from django.db import models
from django.utils import timezone
import uuid


class BaseModel(models.Model):
    """
    Base model with common fields

    Features:
    - UUID primary key
    - Timestamp tracking (created, updated)

    created_at is a plain default rather than auto_now_add so an archived
    record can be restored with its original timestamp.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    # Timestamps
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When this record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When this record was last updated"
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']


class StatusTrackingMixin(models.Model):
    """
    Mixin for models with status tracking

    Provides common status fields
    """

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Is this record active?"
    )

    deactivated_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this record was deactivated"
    )

    deactivation_reason = models.TextField(
        blank=True,
        help_text="Reason for deactivation"
    )

    class Meta:
        abstract = True

    def deactivate(self, reason=''):
        """Deactivate the record"""
        self.is_active = False
        self.deactivated_at = timezone.now()
        self.deactivation_reason = reason
        self.save(update_fields=['is_active', 'deactivated_at', 'deactivation_reason', 'updated_at'])
