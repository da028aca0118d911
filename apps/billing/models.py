# apps/billing/models.py
"""
Reference data for pricing: plans, payment methods, the sparse
plan/payment-method discount table and the report-time gross overrides.
"""
from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from apps.core.models import TimeStampedModel, ReferenceDataModel


class Plan(ReferenceDataModel):
    """Subscription plan (Comum, Platinum, ...)"""

    default_gross_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Price suggested for new clients of this plan"
    )


class PaymentMethod(ReferenceDataModel):
    """Payment provider used by a client (PagSeguro, Caixa, ...)"""


class PlanPaymentMethodDiscount(TimeStampedModel):
    """
    Discount for a (plan, payment method) pair.

    The discount is a fraction: 0.10 means the net amount is 90% of the gross.
    A missing row means no discount.
    """
    plan = models.ForeignKey(
        Plan,
        on_delete=models.CASCADE,
        related_name='discounts'
    )
    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.CASCADE,
        related_name='discounts'
    )
    discount = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0'),
        validators=[
            MinValueValidator(Decimal('0')),
            MaxValueValidator(Decimal('1'))
        ],
        help_text="Fraction between 0 and 1"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['plan', 'payment_method'],
                name='unique_discount_per_plan_payment_method'
            ),
        ]

    def __str__(self):
        return f"{self.plan.name} / {self.payment_method.name}: {self.discount}"


class GrossOverride(TimeStampedModel):
    """
    Settlement amount reported for an exact charged price of a payment method.

    Only the financial report reads these rows: a payment charged at
    gross_value through payment_method is counted as substitute_value.
    """
    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.CASCADE,
        related_name='gross_overrides'
    )
    gross_value = models.DecimalField(max_digits=10, decimal_places=2)
    substitute_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['payment_method', 'gross_value'],
                name='unique_override_per_payment_method_gross'
            ),
        ]

    def __str__(self):
        return f"{self.payment_method.name}: {self.gross_value} -> {self.substitute_value}"
