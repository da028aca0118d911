# apps/clients/models.py
"""
Client subscription record with its embedded payment ledger.
"""
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator

from apps.core.models import TimeStampedModel
from . import lifecycle
from .ledger import PaymentLedger


class Client(TimeStampedModel):
    """
    A subscriber of the service.

    net_amount is always derived from gross_amount and the plan/payment method
    discount by ClientService; it is never authored directly.
    due_date_string caches due_date in display format and is refreshed on save.
    payment_history is an ordered JSON list of payment entries (see ledger.py).
    """
    full_name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True, null=True)

    plan = models.ForeignKey(
        'billing.Plan',
        on_delete=models.PROTECT,
        related_name='clients'
    )
    payment_method = models.ForeignKey(
        'billing.PaymentMethod',
        on_delete=models.PROTECT,
        related_name='clients'
    )

    due_date = models.DateField(db_index=True)
    due_date_string = models.CharField(max_length=20, blank=True, default='')

    gross_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    net_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00')
    )

    is_active = models.BooleanField(default=True, db_index=True)
    observations = models.TextField(blank=True, null=True)

    payment_history = models.JSONField(default=list, blank=True)
    next_payment_entry_id = models.PositiveIntegerField(default=1)

    # Manual flag toggled from the UI, independent of the ledger
    visual_payment_confirmed = models.BooleanField(default=False)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='client_profile'
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'due_date'], name='client_active_due_idx'),
        ]

    def __str__(self):
        return self.full_name

    def save(self, *args, **kwargs):
        self.due_date_string = lifecycle.format_due_date(self.due_date)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'due_date' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'due_date_string'}
        super().save(*args, **kwargs)

    # Lifecycle
    def lifecycle_state(self, on_date=None):
        """ACTIVE or EXPIRED, recomputed from the due date on every call"""
        on_date = on_date or lifecycle.today()
        return lifecycle.effective_state(self.is_active, self.due_date, on_date)

    @property
    def is_expired(self):
        return self.lifecycle_state() == lifecycle.EXPIRED

    @property
    def effective_is_active(self):
        return not self.is_expired

    # Ledger
    def get_ledger(self):
        return PaymentLedger.from_storage(
            self.payment_history,
            next_entry_id=self.next_payment_entry_id,
            client_id=self.pk,
        )

    def set_ledger(self, ledger):
        self.payment_history = ledger.to_json()
        self.next_payment_entry_id = ledger.next_entry_id
