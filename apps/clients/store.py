# apps/clients/store.py
"""
Persistence boundary for clients and the reference data they point to.

Services receive a ClientStore instance instead of touching the ORM, so the
business rules can run against any store that implements this interface.
"""
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q

from apps.billing.models import GrossOverride, PaymentMethod, Plan, PlanPaymentMethodDiscount
from apps.billing.pricing import GrossOverrideTable
from apps.core.exceptions import InvalidArgumentError, NotFoundError
from . import lifecycle
from .models import Client


class ClientStore(ABC):

    @abstractmethod
    def get_client(self, client_id, for_update=False):
        """Return the client or raise NotFoundError"""

    @abstractmethod
    def list_clients(self, is_active=None, search='', today=None):
        """Clients filtered by effective state and free text"""

    @abstractmethod
    def list_all_clients(self):
        """Every client, whatever its state"""

    @abstractmethod
    def save_client(self, client, update_fields=None):
        pass

    @abstractmethod
    def delete_client(self, client_id):
        pass

    @abstractmethod
    def get_plan(self, plan_id):
        """Return the plan or None"""

    @abstractmethod
    def get_payment_method(self, payment_method_id):
        """Return the payment method or None"""

    @abstractmethod
    def get_discount(self, plan_id, payment_method_id):
        """Return the stored discount factor or None"""

    @abstractmethod
    def list_payment_methods(self):
        pass

    @abstractmethod
    def get_gross_overrides(self):
        """Return a GrossOverrideTable"""

    @abstractmethod
    def create_login(self, username, email=''):
        pass

    @abstractmethod
    def rename_login(self, user, username):
        pass

    @abstractmethod
    def atomic(self):
        """Context manager wrapping one unit of work"""


def parse_client_id(client_id):
    if isinstance(client_id, bool):
        raise InvalidArgumentError("ID inválido")
    try:
        return int(client_id)
    except (TypeError, ValueError):
        raise InvalidArgumentError("ID inválido")


class DjangoClientStore(ClientStore):
    """ClientStore backed by the Django ORM"""

    def _base_queryset(self):
        return Client.objects.select_related('plan', 'payment_method', 'user')

    def get_client(self, client_id, for_update=False):
        client_id = parse_client_id(client_id)
        queryset = self._base_queryset()
        if for_update:
            # Row lock held until the surrounding transaction ends
            queryset = queryset.select_for_update(of=('self',))
        try:
            return queryset.get(pk=client_id)
        except Client.DoesNotExist:
            raise NotFoundError("Cliente não encontrado")

    def list_clients(self, is_active=None, search='', today=None):
        queryset = self._base_queryset()

        if is_active is not None:
            cutoff = lifecycle.lapse_cutoff(today or lifecycle.today())
            active = Q(is_active=True, due_date__gte=cutoff)
            queryset = queryset.filter(active) if is_active else queryset.exclude(active)

        search = (search or '').strip()
        if search:
            query = (
                Q(full_name__icontains=search)
                | Q(email__icontains=search)
                | Q(phone__icontains=search)
                | Q(observations__icontains=search)
                | Q(plan__name__icontains=search)
                | Q(payment_method__name__icontains=search)
                | Q(user__username__icontains=search)
                | Q(due_date_string__icontains=search)
            )
            try:
                amount = Decimal(search.replace(',', '.'))
            except InvalidOperation:
                amount = None
            if amount is not None and amount.is_finite():
                query |= Q(gross_amount=amount) | Q(net_amount=amount)
            queryset = queryset.filter(query)

        return queryset.order_by('-created_at')

    def list_all_clients(self):
        return self._base_queryset().order_by('id')

    def save_client(self, client, update_fields=None):
        client.save(update_fields=update_fields)
        return client

    def delete_client(self, client_id):
        client = self.get_client(client_id)
        client.delete()

    def get_plan(self, plan_id):
        return Plan.objects.filter(pk=plan_id).first()

    def get_payment_method(self, payment_method_id):
        return PaymentMethod.objects.filter(pk=payment_method_id).first()

    def get_discount(self, plan_id, payment_method_id):
        row = PlanPaymentMethodDiscount.objects.filter(
            plan_id=plan_id,
            payment_method_id=payment_method_id
        ).first()
        return row.discount if row else None

    def list_payment_methods(self):
        return PaymentMethod.objects.order_by('name')

    def get_gross_overrides(self):
        rows = GrossOverride.objects.select_related('payment_method').values_list(
            'payment_method__name', 'gross_value', 'substitute_value'
        )
        return GrossOverrideTable(rows)

    def create_login(self, username, email=''):
        User = get_user_model()
        if User.objects.filter(username=username).exists():
            raise InvalidArgumentError(f"Nome de usuário já está em uso: {username}")
        return User.objects.create_user(
            username=username,
            email=email,
            password=settings.CLIENT_TEMP_PASSWORD,
            role=User.ROLE_CLIENT,
        )

    def rename_login(self, user, username):
        User = get_user_model()
        if User.objects.filter(username=username).exclude(pk=user.pk).exists():
            raise InvalidArgumentError(f"Nome de usuário já está em uso: {username}")
        user.username = username
        user.save(update_fields=['username'])
        return user

    def atomic(self):
        return transaction.atomic()
