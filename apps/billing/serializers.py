# apps/billing/serializers.py
from rest_framework import serializers
from .models import Plan, PaymentMethod, PlanPaymentMethodDiscount, GrossOverride


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = ['id', 'name', 'is_active', 'default_gross_amount']


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ['id', 'name', 'is_active']


class PlanPaymentMethodDiscountSerializer(serializers.ModelSerializer):
    plan_name = serializers.CharField(source='plan.name', read_only=True)
    payment_method_name = serializers.CharField(source='payment_method.name', read_only=True)

    class Meta:
        model = PlanPaymentMethodDiscount
        fields = ['id', 'plan', 'plan_name', 'payment_method', 'payment_method_name', 'discount']


class GrossOverrideSerializer(serializers.ModelSerializer):
    payment_method_name = serializers.CharField(source='payment_method.name', read_only=True)

    class Meta:
        model = GrossOverride
        fields = ['id', 'payment_method', 'payment_method_name', 'gross_value', 'substitute_value']
