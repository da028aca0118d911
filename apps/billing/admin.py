from django.contrib import admin
from .models import Plan, PaymentMethod, PlanPaymentMethodDiscount, GrossOverride


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ['name', 'default_gross_amount', 'is_active']
    list_filter = ['is_active']


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active']
    list_filter = ['is_active']


@admin.register(PlanPaymentMethodDiscount)
class PlanPaymentMethodDiscountAdmin(admin.ModelAdmin):
    list_display = ['plan', 'payment_method', 'discount']


@admin.register(GrossOverride)
class GrossOverrideAdmin(admin.ModelAdmin):
    list_display = ['payment_method', 'gross_value', 'substitute_value']
