# apps/billing/views.py
"""
Read-only endpoints for pricing reference data.
Plans and payment methods are edited through the admin site or seed_billing.
"""
from rest_framework import viewsets

from apps.core.permissions import IsAdminOrAssistant
from .models import Plan, PaymentMethod, PlanPaymentMethodDiscount, GrossOverride
from .serializers import (
    PlanSerializer,
    PaymentMethodSerializer,
    PlanPaymentMethodDiscountSerializer,
    GrossOverrideSerializer,
)


class PlanViewSet(viewsets.ReadOnlyModelViewSet):
    """Active plans offered to clients"""
    queryset = Plan.objects.filter(is_active=True)
    serializer_class = PlanSerializer
    permission_classes = [IsAdminOrAssistant]
    pagination_class = None


class PaymentMethodViewSet(viewsets.ReadOnlyModelViewSet):
    """Active payment methods"""
    queryset = PaymentMethod.objects.filter(is_active=True)
    serializer_class = PaymentMethodSerializer
    permission_classes = [IsAdminOrAssistant]
    pagination_class = None


class DiscountViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = PlanPaymentMethodDiscount.objects.select_related('plan', 'payment_method')
    serializer_class = PlanPaymentMethodDiscountSerializer
    permission_classes = [IsAdminOrAssistant]
    pagination_class = None
    filterset_fields = ['plan', 'payment_method']


class GrossOverrideViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = GrossOverride.objects.select_related('payment_method')
    serializer_class = GrossOverrideSerializer
    permission_classes = [IsAdminOrAssistant]
    pagination_class = None
