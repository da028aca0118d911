from django.contrib import admin
from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'email', 'plan', 'payment_method', 'due_date', 'gross_amount', 'net_amount', 'is_active']
    list_filter = ['is_active', 'plan', 'payment_method', 'visual_payment_confirmed']
    search_fields = ['full_name', 'email', 'phone']
    readonly_fields = ['net_amount', 'due_date_string', 'next_payment_entry_id', 'created_at', 'updated_at']
