# apps/clients/serializers.py
from rest_framework import serializers

from . import lifecycle
from .models import Client


class ClientSerializer(serializers.ModelSerializer):
    """
    Read representation of a client.

    is_active is the effective state (the lapse rule applied to the stored
    flag); stored_is_active exposes the raw flag.
    """
    plan_name = serializers.CharField(source='plan.name', read_only=True)
    payment_method_name = serializers.CharField(source='payment_method.name', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True, default=None)
    is_active = serializers.SerializerMethodField()
    stored_is_active = serializers.BooleanField(source='is_active', read_only=True)
    lifecycle_state = serializers.SerializerMethodField()
    payment_history = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            'id', 'full_name', 'email', 'phone',
            'plan', 'plan_name', 'payment_method', 'payment_method_name',
            'due_date', 'due_date_string', 'gross_amount', 'net_amount',
            'is_active', 'stored_is_active', 'lifecycle_state',
            'observations', 'payment_history', 'visual_payment_confirmed',
            'username', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def _today(self):
        return self.context.get('today') or lifecycle.today()

    def get_lifecycle_state(self, obj):
        return obj.lifecycle_state(self._today())

    def get_is_active(self, obj):
        return self.get_lifecycle_state(obj) == lifecycle.ACTIVE

    def get_payment_history(self, obj):
        history = []
        for index, entry in enumerate(obj.get_ledger()):
            data = entry.to_json()
            data['index'] = index
            history.append(data)
        return history


class ClientWriteSerializer(serializers.Serializer):
    """
    Input for create and update. Values are passed through to ClientService,
    which owns the validation rules.
    """
    full_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    plan_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_method_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    due_date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    gross_amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_active = serializers.BooleanField(required=False)
    observations = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    username = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DueDateSerializer(serializers.Serializer):
    due_date = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ObservationsSerializer(serializers.Serializer):
    observations = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class VisualPaymentStatusSerializer(serializers.Serializer):
    status = serializers.BooleanField()


class PaymentSerializer(serializers.Serializer):
    payment_date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    gross = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    net = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_method_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PaymentEditSerializer(PaymentSerializer):
    index = serializers.IntegerField()
    entry_id = serializers.IntegerField(required=False, allow_null=True)


class PaymentDeleteSerializer(serializers.Serializer):
    index = serializers.IntegerField()
    entry_id = serializers.IntegerField(required=False, allow_null=True)
