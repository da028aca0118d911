# apps/clients/services.py
"""
Service layer for client operations.
Handles validation, pricing, lifecycle transitions and payment ledger
mutations inside one transaction per call.
"""
import logging

from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from apps.billing.pricing import (
    compute_net,
    parse_amount,
    parse_reference_id,
    quantize_money,
    resolve_discount,
)
from apps.core.exceptions import (
    InvalidArgumentError,
    InvalidReferenceError,
    MissingRequiredFieldError,
)
from . import lifecycle
from .ledger import validate_entry_fields
from .models import Client

logger = logging.getLogger(__name__)

LEDGER_FIELDS = ['payment_history', 'next_payment_entry_id', 'updated_at']


class ClientService:
    """
    Client use cases over an injected ClientStore.

    Every mutation re-reads the client with a row lock, validates the input,
    applies the change and saves, all inside store.atomic(). A failed
    validation leaves the stored record untouched.
    """

    def __init__(self, store, today_provider=None):
        self.store = store
        self.today = today_provider or lifecycle.today

    # Reads
    def get_client(self, client_id):
        return self.store.get_client(client_id)

    def list_clients(self, is_active=None, search=''):
        return self.store.list_clients(is_active=is_active, search=search, today=self.today())

    def state_of(self, client):
        return client.lifecycle_state(self.today())

    # Validation helpers
    def _require_text(self, data, key, label):
        value = data.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MissingRequiredFieldError(f"Campo obrigatório ausente: {label}")
        if not isinstance(value, str):
            raise InvalidArgumentError(f"{label} deve ser um texto.")
        return value.strip()

    def _validate_email(self, value):
        try:
            validate_email(value)
        except ValidationError:
            raise InvalidArgumentError("E-mail inválido.")
        return value

    def _resolve_plan(self, plan_id):
        if plan_id is None or plan_id == '':
            raise MissingRequiredFieldError("Campo obrigatório ausente: plano")
        plan = self.store.get_plan(parse_reference_id(plan_id, 'plano'))
        if plan is None:
            raise InvalidReferenceError(f"Plano {plan_id} não existe.")
        if not plan.is_active:
            raise InvalidReferenceError(f"Plano {plan.name} está inativo.")
        return plan

    def _resolve_payment_method(self, payment_method_id):
        if payment_method_id is None or payment_method_id == '':
            raise MissingRequiredFieldError("Campo obrigatório ausente: método de pagamento")
        method = self.store.get_payment_method(
            parse_reference_id(payment_method_id, 'método de pagamento')
        )
        if method is None:
            raise InvalidReferenceError(f"Método de pagamento {payment_method_id} não existe.")
        if not method.is_active:
            raise InvalidReferenceError(f"Método de pagamento {method.name} está inativo.")
        return method

    def _resolve_gross(self, data, plan, current=None):
        gross = data.get('gross_amount')
        if gross is None or gross == '':
            gross = current if current is not None else plan.default_gross_amount
        if gross is None:
            raise MissingRequiredFieldError("Campo obrigatório ausente: valor bruto")
        gross = quantize_money(parse_amount(gross, 'Valor bruto'))
        if gross <= 0:
            raise InvalidArgumentError("Valor bruto deve ser de pelo menos 0,01.")
        return gross

    def _validate_flag(self, value, label):
        if not isinstance(value, bool):
            raise InvalidArgumentError(f"{label} deve ser verdadeiro ou falso.")
        return value

    def _price(self, plan, payment_method, gross):
        factor = resolve_discount(self.store, plan.pk, payment_method.pk)
        return quantize_money(compute_net(gross, factor))

    # CRUD
    def create_client(self, data):
        """
        Create a client with a derived net amount and, optionally, a login.

        Args:
            data: dict with full_name, email, plan_id, payment_method_id,
                due_date and optional phone, gross_amount, username,
                observations, is_active

        Returns:
            The saved Client

        Raises:
            MissingRequiredFieldError: If a required field is absent
            InvalidArgumentError: If a field is malformed or the username is taken
            InvalidReferenceError: If the plan or payment method is missing or inactive
        """
        full_name = self._require_text(data, 'full_name', 'nome')
        email = self._validate_email(self._require_text(data, 'email', 'e-mail'))
        due_date = lifecycle.parse_due_date(data.get('due_date'))
        plan = self._resolve_plan(data.get('plan_id'))
        payment_method = self._resolve_payment_method(data.get('payment_method_id'))
        gross = self._resolve_gross(data, plan)
        net = self._price(plan, payment_method, gross)

        is_active = data.get('is_active', True)
        self._validate_flag(is_active, 'is_active')

        username = data.get('username')
        if username is not None:
            username = self._require_text(data, 'username', 'nome de usuário')

        with self.store.atomic():
            user = self.store.create_login(username, email) if username else None
            client = Client(
                full_name=full_name,
                email=email,
                phone=data.get('phone') or None,
                plan=plan,
                payment_method=payment_method,
                due_date=due_date,
                gross_amount=gross,
                net_amount=net,
                is_active=is_active,
                observations=data.get('observations') or None,
                payment_history=[],
                next_payment_entry_id=1,
                visual_payment_confirmed=False,
                user=user,
            )
            self.store.save_client(client)

        logger.info(f"Client {client.pk} created ({plan.name}/{payment_method.name}, net {net})")
        return client

    def update_client(self, client_id, data):
        """
        Partial update. References are re-validated and the net amount is
        recomputed on every call, even when only profile fields change.
        """
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)

            if 'full_name' in data:
                client.full_name = self._require_text(data, 'full_name', 'nome')
            if 'email' in data:
                client.email = self._validate_email(self._require_text(data, 'email', 'e-mail'))
            if 'phone' in data:
                client.phone = data.get('phone') or None
            if 'observations' in data:
                client.observations = data.get('observations') or None
            if 'due_date' in data:
                client.due_date = lifecycle.parse_due_date(data.get('due_date'))
            if 'is_active' in data:
                client.is_active = self._validate_flag(data.get('is_active'), 'is_active')

            plan = self._resolve_plan(data.get('plan_id', client.plan_id))
            payment_method = self._resolve_payment_method(
                data.get('payment_method_id', client.payment_method_id)
            )
            gross = self._resolve_gross(data, plan, current=client.gross_amount)

            client.plan = plan
            client.payment_method = payment_method
            client.gross_amount = gross
            client.net_amount = self._price(plan, payment_method, gross)

            if data.get('username'):
                username = self._require_text(data, 'username', 'nome de usuário')
                if client.user is None:
                    client.user = self.store.create_login(username, client.email)
                elif client.user.username != username:
                    self.store.rename_login(client.user, username)

            self.store.save_client(client)

        logger.info(f"Client {client.pk} updated (net {client.net_amount})")
        return client

    def delete_client(self, client_id):
        with self.store.atomic():
            self.store.delete_client(client_id)
        logger.info(f"Client {client_id} deleted")

    # Lifecycle
    def renew(self, client_id, new_due_date):
        """
        Move the due date. Allowed in any state; is_active is left as is.

        Args:
            client_id: Client primary key
            new_due_date: date or date string

        Returns:
            Updated Client instance

        Raises:
            NotFoundError: If the client does not exist
            MissingRequiredFieldError: If no date was given
            InvalidArgumentError: If the date cannot be parsed
        """
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            lifecycle.renew(client, new_due_date)
            self.store.save_client(client, update_fields=['due_date', 'updated_at'])

        logger.info(f"Client {client.pk} renewed until {client.due_date_string}")
        return client

    def reactivate(self, client_id, new_due_date):
        """
        Bring an expired client back with a new due date.

        Args:
            client_id: Client primary key
            new_due_date: date or date string

        Returns:
            Updated Client instance

        Raises:
            NotFoundError: If the client does not exist
            InvalidStateError: If the client is currently active
            MissingRequiredFieldError: If no date was given
            InvalidArgumentError: If the date cannot be parsed
        """
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            lifecycle.reactivate(client, new_due_date, self.today())
            self.store.save_client(client, update_fields=['is_active', 'due_date', 'updated_at'])

        logger.info(f"Client {client.pk} reactivated until {client.due_date_string}")
        return client

    def update_observations(self, client_id, text):
        if text is not None and not isinstance(text, str):
            raise InvalidArgumentError("Observações devem ser um texto.")
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            client.observations = text or None
            self.store.save_client(client, update_fields=['observations', 'updated_at'])
        return client

    def set_visual_payment_status(self, client_id, status):
        self._validate_flag(status, 'Status de pagamento visual')
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            client.visual_payment_confirmed = status
            self.store.save_client(client, update_fields=['visual_payment_confirmed', 'updated_at'])
        return client

    # Payment ledger
    def _payment_fields(self, client, data):
        payment_method_id = data.get('payment_method_id')
        if payment_method_id is None or payment_method_id == '':
            payment_method_id = client.payment_method_id
        else:
            payment_method_id = parse_reference_id(payment_method_id, 'método de pagamento')
            if self.store.get_payment_method(payment_method_id) is None:
                raise InvalidReferenceError(f"Método de pagamento {payment_method_id} não existe.")

        return validate_entry_fields(
            data.get('payment_date'),
            data.get('gross'),
            data.get('net'),
            payment_method_id,
        )

    def append_payment(self, client_id, data):
        """
        Append a payment to the end of the client's ledger under a row lock.

        Args:
            client_id: Client primary key
            data: dict with payment_date, gross, net and optional
                payment_method_id (defaults to the client's method)

        Returns:
            Updated Client instance

        Raises:
            NotFoundError: If the client does not exist
            MissingRequiredFieldError: If date, gross or net is absent
            InvalidArgumentError: If a field is malformed or out of bounds
            InvalidReferenceError: If the payment method does not exist
        """
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            fields = self._payment_fields(client, data)
            ledger = client.get_ledger()
            entry = ledger.append(fields)
            client.set_ledger(ledger)
            self.store.save_client(client, update_fields=LEDGER_FIELDS)

        logger.info(f"Client {client.pk}: payment {entry.entry_id} appended ({entry.gross}/{entry.net})")
        return client

    def edit_payment(self, client_id, index, data, entry_id=None):
        """
        Replace the payment at a ledger position, keeping its entry id.

        Args:
            client_id: Client primary key
            index: zero-based position in the ledger
            data: same fields as append_payment
            entry_id: id the caller expects at that position, if known

        Returns:
            Updated Client instance

        Raises:
            NotFoundError: If the client does not exist
            OutOfRangeError: If index is outside the ledger
            ConcurrentModificationError: If entry_id no longer sits at index
            MissingRequiredFieldError, InvalidArgumentError, InvalidReferenceError:
                As for append_payment
        """
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            fields = self._payment_fields(client, data)
            ledger = client.get_ledger()
            entry = ledger.edit_at(index, fields, expected_entry_id=entry_id)
            client.set_ledger(ledger)
            self.store.save_client(client, update_fields=LEDGER_FIELDS)

        logger.info(f"Client {client.pk}: payment {entry.entry_id} edited at position {index}")
        return client

    def delete_payment(self, client_id, index, entry_id=None):
        """
        Remove the payment at a ledger position; later entries shift down.

        Args:
            client_id: Client primary key
            index: zero-based position in the ledger
            entry_id: id the caller expects at that position, if known

        Returns:
            Updated Client instance

        Raises:
            NotFoundError: If the client does not exist
            OutOfRangeError: If index is outside the ledger
            ConcurrentModificationError: If entry_id no longer sits at index
        """
        with self.store.atomic():
            client = self.store.get_client(client_id, for_update=True)
            ledger = client.get_ledger()
            removed = ledger.delete_at(index, expected_entry_id=entry_id)
            client.set_ledger(ledger)
            self.store.save_client(client, update_fields=LEDGER_FIELDS)

        logger.info(f"Client {client.pk}: payment {removed.entry_id} deleted from position {index}")
        return client
