# apps/clients/tests.py
"""
Clients app tests - Testing the payment ledger, the lifecycle rules,
ClientService and the client endpoints
"""
import json
from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase, APIClient

from apps.billing.models import PaymentMethod, Plan, PlanPaymentMethodDiscount
from apps.billing.pricing import compute_net, resolve_discount
from apps.clients import lifecycle
from apps.clients.ledger import (
    PaymentLedger,
    decode_history,
    validate_entry_fields,
)
from apps.clients.models import Client
from apps.clients.services import ClientService
from apps.clients.store import DjangoClientStore
from apps.core.exceptions import (
    ConcurrentModificationError,
    InvalidArgumentError,
    InvalidReferenceError,
    InvalidStateError,
    MissingRequiredFieldError,
    NotFoundError,
    OutOfRangeError,
)

User = get_user_model()

UTC = dt_timezone.utc
TODAY = date(2025, 6, 15)


def make_fields(day, gross='35.00', net='31.50', payment_method_id=None):
    return validate_entry_fields(
        datetime(2025, 5, day, 12, 0, tzinfo=UTC),
        gross,
        net,
        payment_method_id,
    )


class PaymentLedgerTests(TestCase):
    """Test the index-addressed ledger operations"""

    def setUp(self):
        self.ledger = PaymentLedger()
        for day in (1, 2, 3, 4):
            self.ledger.append(make_fields(day, net=f'{day}0.00'))

    def test_append_assigns_increasing_ids(self):
        self.assertEqual([entry.entry_id for entry in self.ledger], [1, 2, 3, 4])
        self.assertEqual(self.ledger.next_entry_id, 5)

    def test_edit_and_delete_on_empty_ledger(self):
        ledger = PaymentLedger()

        with self.assertRaises(OutOfRangeError):
            ledger.edit_at(0, make_fields(1))
        with self.assertRaises(OutOfRangeError):
            ledger.delete_at(0)
        self.assertEqual(len(ledger), 0)

    def test_out_of_bounds_index_leaves_ledger_unchanged(self):
        before = self.ledger.entries

        for index in (4, 10, -1):
            with self.assertRaises(OutOfRangeError):
                self.ledger.edit_at(index, make_fields(20))
            with self.assertRaises(OutOfRangeError):
                self.ledger.delete_at(index)

        self.assertEqual(self.ledger.entries, before)

    def test_non_integer_index(self):
        with self.assertRaises(InvalidArgumentError):
            self.ledger.delete_at('1')
        with self.assertRaises(InvalidArgumentError):
            self.ledger.delete_at(True)

    def test_delete_shifts_following_entries(self):
        before = self.ledger.entries

        removed = self.ledger.delete_at(1)

        self.assertEqual(removed, before[1])
        self.assertEqual(len(self.ledger), len(before) - 1)
        self.assertEqual(self.ledger[0], before[0])
        self.assertEqual(self.ledger[1], before[2])
        self.assertEqual(self.ledger[2], before[3])

    def test_edit_replaces_in_place_and_keeps_id(self):
        before = self.ledger.entries

        edited = self.ledger.edit_at(2, make_fields(20, gross='30.00', net='28.00'))

        self.assertEqual(edited.entry_id, before[2].entry_id)
        self.assertEqual(self.ledger[2].gross, Decimal('30.00'))
        self.assertEqual(self.ledger[0], before[0])
        self.assertEqual(self.ledger[1], before[1])
        self.assertEqual(self.ledger[3], before[3])

    def test_stale_entry_id_is_refused(self):
        before = self.ledger.entries

        with self.assertRaises(ConcurrentModificationError):
            self.ledger.delete_at(1, expected_entry_id=3)
        with self.assertRaises(ConcurrentModificationError):
            self.ledger.edit_at(1, make_fields(9), expected_entry_id=4)

        self.assertEqual(self.ledger.entries, before)
        self.ledger.delete_at(1, expected_entry_id=2)
        self.assertEqual(len(self.ledger), 3)

    def test_ids_are_not_reused_after_delete(self):
        self.ledger.delete_at(3)
        entry = self.ledger.append(make_fields(9))

        self.assertEqual(entry.entry_id, 5)

    def test_find_index(self):
        self.ledger.delete_at(0)

        self.assertEqual(self.ledger.find_index(3), 1)
        with self.assertRaises(OutOfRangeError):
            self.ledger.find_index(1)

    def test_storage_round_trip(self):
        restored = PaymentLedger.from_storage(
            self.ledger.to_json(),
            next_entry_id=self.ledger.next_entry_id
        )

        self.assertEqual(restored.entries, self.ledger.entries)
        self.assertEqual(restored.next_entry_id, 5)


class DecodeHistoryTests(TestCase):
    """Test the lenient decoding of stored histories"""

    def test_non_list_degrades_to_empty(self):
        with self.assertLogs('apps.clients.ledger', level='WARNING'):
            result = decode_history({'paymentDate': '2025-01-01'}, client_id=7)

        self.assertEqual(result.entries, [])
        self.assertTrue(result.degraded)

    def test_none_is_an_empty_history(self):
        result = decode_history(None)

        self.assertEqual(result.entries, [])
        self.assertFalse(result.degraded)

    def test_json_string_is_parsed(self):
        raw = json.dumps([{'payment_date': '2025-01-05T10:00:00Z', 'gross': '35.00', 'net': '31.50'}])

        result = decode_history(raw)

        self.assertEqual(len(result.entries), 1)
        self.assertEqual(result.entries[0].gross, Decimal('35.00'))

    def test_legacy_keys_are_accepted(self):
        raw = [{'paymentDate': '2025-01-05T10:00:00.000Z', 'paymentBruto': 35, 'paymentLiquido': 31.5}]

        result = decode_history(raw)
        entry = result.entries[0]

        self.assertEqual(entry.payment_date, datetime(2025, 1, 5, 10, 0, tzinfo=UTC))
        self.assertEqual(entry.gross, Decimal('35'))
        self.assertEqual(entry.net, Decimal('31.5'))
        self.assertIsNone(entry.payment_method_id)
        self.assertEqual(entry.entry_id, 1)

    def test_malformed_rows_are_dropped(self):
        raw = [
            {'payment_date': '2025-01-05', 'gross': '35.00', 'net': '31.50'},
            {'payment_date': 'not a date', 'gross': '35.00', 'net': '31.50'},
            {'payment_date': '2025-01-06', 'net': '31.50'},
            'junk',
            {'payment_date': '2025-01-07', 'gross': 'abc', 'net': '1'},
        ]

        with self.assertLogs('apps.clients.ledger', level='WARNING'):
            result = decode_history(raw)

        self.assertEqual(len(result.entries), 1)
        self.assertEqual(result.dropped, 4)
        self.assertTrue(result.degraded)

    def test_oversized_stored_amounts_are_dropped(self):
        raw = [
            {'entry_id': 1, 'payment_date': '2025-01-05', 'gross': '35.00', 'net': '31.50'},
            {'entry_id': 2, 'payment_date': '2025-01-06', 'gross': '1e30', 'net': '1e30'},
        ]

        with self.assertLogs('apps.clients.ledger', level='WARNING'):
            result = decode_history(raw)

        self.assertEqual([entry.entry_id for entry in result.entries], [1])
        self.assertEqual(result.dropped, 1)

    def test_missing_and_duplicate_ids_get_fresh_ones(self):
        raw = [
            {'entry_id': 4, 'payment_date': '2025-01-05', 'gross': '1', 'net': '1'},
            {'payment_date': '2025-01-06', 'gross': '1', 'net': '1'},
            {'entry_id': 4, 'payment_date': '2025-01-07', 'gross': '1', 'net': '1'},
        ]

        result = decode_history(raw)

        self.assertEqual([entry.entry_id for entry in result.entries], [4, 5, 6])
        self.assertEqual(result.next_entry_id, 7)


class ValidateEntryFieldsTests(TestCase):
    """Test strict validation of new payment input"""

    def test_naive_datetime_is_utc(self):
        fields = validate_entry_fields('2025-03-10T14:30:00', '40.00', '40.00')
        self.assertEqual(fields.payment_date, datetime(2025, 3, 10, 14, 30, tzinfo=UTC))

    def test_offset_is_converted_to_utc(self):
        fields = validate_entry_fields('2025-03-10T23:30:00-03:00', '40.00', '40.00')
        self.assertEqual(fields.payment_date, datetime(2025, 3, 11, 2, 30, tzinfo=UTC))

    def test_plain_date_is_midnight_utc(self):
        fields = validate_entry_fields('2025-03-10', '40.00', '40.00')
        self.assertEqual(fields.payment_date, datetime(2025, 3, 10, tzinfo=UTC))

    def test_invalid_date(self):
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('2025-02-30', '40.00', '40.00')
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('yesterday', '40.00', '40.00')

    def test_missing_date(self):
        with self.assertRaises(MissingRequiredFieldError):
            validate_entry_fields(None, '40.00', '40.00')

    def test_non_positive_amounts(self):
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('2025-03-10', '0', '40.00')
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('2025-03-10', '40.00', -5)

    def test_oversized_amounts(self):
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('2025-05-10', '1e30', '40.00')
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('2025-05-10', '40.00', '100000000.00')

        fields = validate_entry_fields('2025-05-10', '99999999.99', '99999999.99')
        self.assertEqual(fields.gross, Decimal('99999999.99'))

    def test_invalid_payment_method_id(self):
        with self.assertRaises(InvalidArgumentError):
            validate_entry_fields('2025-03-10', '40.00', '40.00', 'pix')


class LifecycleTests(TestCase):
    """Test the lazy expiration rule and the transitions"""

    def test_lapse_boundary(self):
        self.assertTrue(lifecycle.is_lapsed(TODAY - timedelta(days=31), TODAY))
        self.assertFalse(lifecycle.is_lapsed(TODAY - timedelta(days=30), TODAY))
        self.assertFalse(lifecycle.is_lapsed(TODAY - timedelta(days=29), TODAY))
        self.assertFalse(lifecycle.is_lapsed(TODAY + timedelta(days=10), TODAY))

    def test_custom_grace_period(self):
        self.assertTrue(lifecycle.is_lapsed(TODAY - timedelta(days=8), TODAY, grace_days=7))

    def test_effective_state(self):
        self.assertEqual(lifecycle.effective_state(True, TODAY, TODAY), lifecycle.ACTIVE)
        self.assertEqual(lifecycle.effective_state(False, TODAY, TODAY), lifecycle.EXPIRED)
        self.assertEqual(
            lifecycle.effective_state(True, TODAY - timedelta(days=31), TODAY),
            lifecycle.EXPIRED
        )

    def test_format_due_date(self):
        self.assertEqual(lifecycle.format_due_date(date(2025, 3, 7)), '07/03/2025')
        self.assertEqual(lifecycle.format_due_date(None), '')

    def test_parse_due_date(self):
        self.assertEqual(lifecycle.parse_due_date('2025-07-01'), date(2025, 7, 1))
        self.assertEqual(lifecycle.parse_due_date('2025-07-01T01:00:00+03:00'), date(2025, 6, 30))
        with self.assertRaises(InvalidArgumentError):
            lifecycle.parse_due_date('01/07/2025')
        with self.assertRaises(MissingRequiredFieldError):
            lifecycle.parse_due_date('')

    def test_renew_keeps_active_flag(self):
        client = Client(is_active=False, due_date=TODAY - timedelta(days=60))

        lifecycle.renew(client, '2025-07-15')

        self.assertFalse(client.is_active)
        self.assertEqual(client.due_date, date(2025, 7, 15))
        self.assertEqual(client.due_date_string, '15/07/2025')

    def test_reactivate_active_client_is_refused_whatever_the_date(self):
        client = Client(is_active=True, due_date=TODAY)

        for new_due_date in (None, 'garbage', '2025-08-01'):
            with self.assertRaises(InvalidStateError):
                lifecycle.reactivate(client, new_due_date, TODAY)

        self.assertEqual(client.due_date, TODAY)

    def test_reactivate_requires_a_date(self):
        client = Client(is_active=False, due_date=TODAY)

        with self.assertRaises(MissingRequiredFieldError):
            lifecycle.reactivate(client, None, TODAY)
        self.assertFalse(client.is_active)

    def test_reactivate_lapsed_client(self):
        client = Client(is_active=True, due_date=TODAY - timedelta(days=45))

        lifecycle.reactivate(client, '2025-07-15', TODAY)

        self.assertTrue(client.is_active)
        self.assertEqual(client.due_date, date(2025, 7, 15))


class ClientFixtureMixin:
    """Reference data shared by the service and endpoint tests"""

    def create_reference_data(self):
        self.comum = Plan.objects.create(name='Comum', default_gross_amount=Decimal('30.00'))
        self.platinum = Plan.objects.create(name='Platinum', default_gross_amount=Decimal('35.00'))
        self.pagseguro = PaymentMethod.objects.create(name='PagSeguro')
        self.caixa = PaymentMethod.objects.create(name='Caixa')
        PlanPaymentMethodDiscount.objects.create(
            plan=self.comum,
            payment_method=self.pagseguro,
            discount=Decimal('0.5')
        )

    def client_data(self, **overrides):
        data = {
            'full_name': 'Maria Souza',
            'email': 'maria@example.com',
            'phone': '11999990000',
            'plan_id': self.comum.pk,
            'payment_method_id': self.pagseguro.pk,
            'due_date': '2025-06-20',
            'gross_amount': '100',
        }
        data.update(overrides)
        return data


class ClientServiceTests(ClientFixtureMixin, TestCase):
    """Test ClientService against the ORM store"""

    def setUp(self):
        self.create_reference_data()
        self.store = DjangoClientStore()
        self.service = ClientService(self.store, today_provider=lambda: TODAY)

    def assert_net_is_derived(self, client):
        factor = resolve_discount(self.store, client.plan_id, client.payment_method_id)
        self.assertEqual(client.net_amount, compute_net(client.gross_amount, factor))

    # Create / update
    def test_create_derives_net_from_discount(self):
        client = self.service.create_client(self.client_data())
        client.refresh_from_db()

        self.assertEqual(client.gross_amount, Decimal('100.00'))
        self.assertEqual(client.net_amount, Decimal('50.00'))
        self.assert_net_is_derived(client)
        self.assertTrue(client.is_active)
        self.assertFalse(client.visual_payment_confirmed)
        self.assertEqual(client.payment_history, [])
        self.assertEqual(client.due_date_string, '20/06/2025')

    def test_create_without_discount_row(self):
        client = self.service.create_client(self.client_data(payment_method_id=self.caixa.pk))

        self.assertEqual(client.net_amount, Decimal('100.00'))
        self.assert_net_is_derived(client)

    def test_create_uses_plan_default_gross(self):
        data = self.client_data(plan_id=self.platinum.pk)
        del data['gross_amount']

        client = self.service.create_client(data)

        self.assertEqual(client.gross_amount, Decimal('35.00'))
        self.assertEqual(client.net_amount, Decimal('35.00'))

    def test_create_with_login(self):
        client = self.service.create_client(self.client_data(username='maria'))

        self.assertEqual(client.user.username, 'maria')
        self.assertEqual(client.user.role, User.ROLE_CLIENT)
        self.assertTrue(client.user.check_password('tempPassword123'))

    def test_duplicate_username_creates_nothing(self):
        User.objects.create_user(username='maria', password='pass')

        with self.assertRaises(InvalidArgumentError):
            self.service.create_client(self.client_data(username='maria'))

        self.assertEqual(Client.objects.count(), 0)

    def test_create_with_inactive_plan(self):
        self.comum.is_active = False
        self.comum.save()

        with self.assertRaises(InvalidReferenceError):
            self.service.create_client(self.client_data())

    def test_create_with_unknown_or_malformed_references(self):
        with self.assertRaises(InvalidReferenceError):
            self.service.create_client(self.client_data(plan_id=9999))
        with self.assertRaises(InvalidReferenceError):
            self.service.create_client(self.client_data(payment_method_id='pix'))
        self.assertEqual(Client.objects.count(), 0)

    def test_create_validation(self):
        with self.assertRaises(MissingRequiredFieldError):
            self.service.create_client(self.client_data(due_date=None))
        with self.assertRaises(MissingRequiredFieldError):
            self.service.create_client(self.client_data(full_name='  '))
        with self.assertRaises(InvalidArgumentError):
            self.service.create_client(self.client_data(email='not-an-email'))
        with self.assertRaises(InvalidArgumentError):
            self.service.create_client(self.client_data(gross_amount='-10'))
        with self.assertRaises(InvalidArgumentError):
            self.service.create_client(self.client_data(due_date='32/01/2025'))

    def test_oversized_gross_is_refused(self):
        with self.assertRaises(InvalidArgumentError):
            self.service.create_client(self.client_data(gross_amount='1e30'))
        self.assertEqual(Client.objects.count(), 0)

        client = self.service.create_client(self.client_data())
        with self.assertRaises(InvalidArgumentError):
            self.service.update_client(client.pk, self.client_data(gross_amount='100000000'))

        client.refresh_from_db()
        self.assertEqual(client.gross_amount, Decimal('100.00'))

    def test_update_recomputes_net(self):
        client = self.service.create_client(self.client_data())

        client = self.service.update_client(client.pk, {'payment_method_id': self.caixa.pk})
        self.assertEqual(client.net_amount, Decimal('100.00'))

        client = self.service.update_client(
            client.pk,
            {'payment_method_id': self.pagseguro.pk, 'gross_amount': '60'}
        )
        client.refresh_from_db()
        self.assertEqual(client.net_amount, Decimal('30.00'))
        self.assert_net_is_derived(client)

    def test_update_revalidates_references(self):
        client = self.service.create_client(self.client_data())
        self.pagseguro.is_active = False
        self.pagseguro.save()

        with self.assertRaises(InvalidReferenceError):
            self.service.update_client(client.pk, {'full_name': 'Maria S.'})

        client.refresh_from_db()
        self.assertEqual(client.full_name, 'Maria Souza')

    def test_update_does_not_change_lifecycle(self):
        client = self.service.create_client(self.client_data())

        client = self.service.update_client(client.pk, {'observations': 'VIP'})

        self.assertTrue(client.is_active)
        self.assertEqual(client.observations, 'VIP')

    def test_update_keeps_due_date_string_in_sync(self):
        client = self.service.create_client(self.client_data())

        self.service.update_client(client.pk, {'due_date': '2025-09-01'})

        client.refresh_from_db()
        self.assertEqual(client.due_date_string, '01/09/2025')

    def test_update_renames_login(self):
        client = self.service.create_client(self.client_data(username='maria'))
        User.objects.create_user(username='joana', password='pass')

        with self.assertRaises(InvalidArgumentError):
            self.service.update_client(client.pk, {'username': 'joana'})

        client = self.service.update_client(client.pk, {'username': 'maria.souza'})
        self.assertEqual(client.user.username, 'maria.souza')

    def test_unknown_client(self):
        with self.assertRaises(NotFoundError):
            self.service.update_client(9999, {'full_name': 'x'})
        with self.assertRaises(NotFoundError):
            self.service.delete_client(9999)

    def test_delete_client(self):
        client = self.service.create_client(self.client_data())

        self.service.delete_client(client.pk)

        self.assertFalse(Client.objects.filter(pk=client.pk).exists())

    # Lifecycle
    def test_lapsed_client_reads_as_expired(self):
        lapsed = self.service.create_client(
            self.client_data(email='a@example.com', due_date=TODAY - timedelta(days=31))
        )
        current = self.service.create_client(
            self.client_data(email='b@example.com', due_date=TODAY - timedelta(days=29))
        )

        active_ids = [client.pk for client in self.service.list_clients(is_active=True)]
        expired_ids = [client.pk for client in self.service.list_clients(is_active=False)]

        self.assertEqual(active_ids, [current.pk])
        self.assertEqual(expired_ids, [lapsed.pk])
        self.assertEqual(self.service.state_of(lapsed), lifecycle.EXPIRED)

        # The stored flag is not written back by reads
        lapsed.refresh_from_db()
        self.assertTrue(lapsed.is_active)

    def test_renew(self):
        client = self.service.create_client(self.client_data(is_active=False))

        client = self.service.renew(client.pk, '2025-07-20')
        client.refresh_from_db()

        self.assertEqual(client.due_date, date(2025, 7, 20))
        self.assertEqual(client.due_date_string, '20/07/2025')
        self.assertFalse(client.is_active)

    def test_reactivate(self):
        client = self.service.create_client(self.client_data())

        with self.assertRaises(InvalidStateError):
            self.service.reactivate(client.pk, '2025-07-20')

        Client.objects.filter(pk=client.pk).update(is_active=False)
        with self.assertRaises(MissingRequiredFieldError):
            self.service.reactivate(client.pk, None)

        client = self.service.reactivate(client.pk, '2025-07-20')
        client.refresh_from_db()
        self.assertTrue(client.is_active)
        self.assertEqual(client.due_date_string, '20/07/2025')

    def test_observations_and_visual_status(self):
        client = self.service.create_client(self.client_data())

        client = self.service.update_observations(client.pk, 'Paga sempre em dia')
        self.assertEqual(client.observations, 'Paga sempre em dia')

        client = self.service.set_visual_payment_status(client.pk, True)
        self.assertTrue(client.visual_payment_confirmed)

        with self.assertRaises(InvalidArgumentError):
            self.service.set_visual_payment_status(client.pk, 'yes')

    # Ledger
    def test_append_round_trip(self):
        client = self.service.create_client(self.client_data())

        self.service.append_payment(client.pk, {
            'payment_date': '2025-03-10T14:30:00Z',
            'gross': '40.00',
            'net': '32.85',
        })

        stored = Client.objects.get(pk=client.pk)
        entry = stored.get_ledger()[0]
        self.assertEqual(entry.payment_date, datetime(2025, 3, 10, 14, 30, tzinfo=UTC))
        self.assertEqual(str(entry.gross), '40.00')
        self.assertEqual(str(entry.net), '32.85')
        self.assertEqual(entry.payment_method_id, self.pagseguro.pk)
        self.assertEqual(stored.payment_history[0]['payment_date'], '2025-03-10T14:30:00+00:00')

    def test_payment_with_unknown_method(self):
        client = self.service.create_client(self.client_data())

        with self.assertRaises(InvalidReferenceError):
            self.service.append_payment(client.pk, {
                'payment_date': '2025-03-10', 'gross': '40', 'net': '40', 'payment_method_id': 9999,
            })

    def test_invalid_payment_is_not_written(self):
        client = self.service.create_client(self.client_data())

        with self.assertRaises(InvalidArgumentError):
            self.service.append_payment(client.pk, {'payment_date': 'x', 'gross': '40', 'net': '40'})

        client.refresh_from_db()
        self.assertEqual(client.payment_history, [])

    def test_oversized_payment_is_not_written(self):
        client = self.service.create_client(self.client_data())

        with self.assertRaises(InvalidArgumentError):
            self.service.append_payment(client.pk, {
                'payment_date': '2025-06-10', 'gross': '1e30', 'net': '1e30',
            })

        client.refresh_from_db()
        self.assertEqual(client.payment_history, [])

    def test_edit_and_delete_by_index(self):
        client = self.service.create_client(self.client_data())
        for day in (1, 2, 3):
            self.service.append_payment(client.pk, {
                'payment_date': f'2025-05-0{day}', 'gross': '30.00', 'net': f'{day}.00',
            })

        client = self.service.edit_payment(client.pk, 1, {
            'payment_date': '2025-05-12', 'gross': '35.00', 'net': '20.00',
            'payment_method_id': self.caixa.pk,
        })
        entry = client.get_ledger()[1]
        self.assertEqual(entry.entry_id, 2)
        self.assertEqual(entry.net, Decimal('20.00'))
        self.assertEqual(entry.payment_method_id, self.caixa.pk)

        client = self.service.delete_payment(client.pk, 0)
        ledger = client.get_ledger()
        self.assertEqual([e.entry_id for e in ledger], [2, 3])

        with self.assertRaises(OutOfRangeError):
            self.service.delete_payment(client.pk, 2)
        with self.assertRaises(ConcurrentModificationError):
            self.service.delete_payment(client.pk, 0, entry_id=3)

        client.refresh_from_db()
        self.assertEqual(len(client.payment_history), 2)

    def test_index_on_empty_ledger(self):
        client = self.service.create_client(self.client_data())

        with self.assertRaises(OutOfRangeError):
            self.service.delete_payment(client.pk, 0)
        with self.assertRaises(OutOfRangeError):
            self.service.edit_payment(client.pk, 0, {
                'payment_date': '2025-05-01', 'gross': '30', 'net': '30',
            })

    def test_corrupt_history_is_read_as_empty(self):
        client = self.service.create_client(self.client_data())
        Client.objects.filter(pk=client.pk).update(payment_history={'oops': True})

        client = self.service.append_payment(client.pk, {
            'payment_date': '2025-05-01', 'gross': '30', 'net': '30',
        })

        self.assertEqual(len(client.payment_history), 1)


class ClientEndpointTests(ClientFixtureMixin, APITestCase):
    """Test the client endpoints and their error shape"""

    def setUp(self):
        self.create_reference_data()
        self.api = APIClient()
        self.admin = User.objects.create_user(username='admin', password='pass123', role=User.ROLE_ADMIN)
        self.assistant = User.objects.create_user(
            username='assistant', password='pass123', role=User.ROLE_ASSISTANT
        )
        self.api.force_authenticate(user=self.assistant)

        self.today = lifecycle.today()
        self.service = ClientService(DjangoClientStore())
        self.active = self.service.create_client(
            self.client_data(full_name='Ana Lima', email='ana@example.com', due_date=self.today)
        )
        self.expired = self.service.create_client(
            self.client_data(
                full_name='Bruno Costa',
                email='bruno@example.com',
                due_date=self.today - timedelta(days=31)
            )
        )

    def test_list_shows_active_clients(self):
        response = self.api.get('/api/clients/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['full_name'], 'Ana Lima')
        self.assertTrue(response.data['results'][0]['is_active'])

    def test_expired_list(self):
        response = self.api.get('/api/clients/expired/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        result = response.data['results'][0]
        self.assertEqual(result['full_name'], 'Bruno Costa')
        self.assertFalse(result['is_active'])
        self.assertTrue(result['stored_is_active'])
        self.assertEqual(result['lifecycle_state'], lifecycle.EXPIRED)

    def test_search(self):
        response = self.api.get('/api/clients/', {'search': 'ana@'})
        self.assertEqual(response.data['count'], 1)

        response = self.api.get('/api/clients/', {'search': '50.00'})
        self.assertEqual(response.data['count'], 1)

        response = self.api.get('/api/clients/', {'search': 'nobody'})
        self.assertEqual(response.data['count'], 0)

    def test_create(self):
        response = self.api.post('/api/clients/', self.client_data(email='c@example.com', username='carla'), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['net_amount'], Decimal('50.00'))
        self.assertEqual(response.data['username'], 'carla')
        self.assertEqual(response.data['payment_history'], [])

    def test_create_missing_due_date(self):
        data = self.client_data(email='c@example.com')
        del data['due_date']

        response = self.api.post('/api/clients/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'missing_required_field')

    def test_create_with_unknown_plan(self):
        response = self.api.post('/api/clients/', self.client_data(plan_id=9999), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_reference')

    def test_retrieve_unknown_client(self):
        response = self.api.get('/api/clients/9999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'message': 'Cliente não encontrado', 'code': 'not_found'})

    def test_update(self):
        response = self.api.put(
            f'/api/clients/{self.active.pk}/',
            {'payment_method_id': self.caixa.pk},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['net_amount'], Decimal('100.00'))
        self.assertEqual(response.data['full_name'], 'Ana Lima')

    def test_reactivate_active_client(self):
        response = self.api.put(
            f'/api/clients/{self.active.pk}/reactivate/',
            {'due_date': '2030-01-01'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_state')

    def test_reactivate_expired_client(self):
        new_due = (self.today + timedelta(days=30)).isoformat()

        response = self.api.put(
            f'/api/clients/{self.expired.pk}/reactivate/',
            {'due_date': new_due},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_active'])
        self.assertEqual(response.data['due_date'], new_due)

    def test_renew(self):
        new_due = (self.today + timedelta(days=30)).isoformat()

        response = self.api.put(f'/api/clients/{self.active.pk}/renew/', {'due_date': new_due}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['due_date'], new_due)

    def test_payment_flow(self):
        url = f'/api/clients/{self.active.pk}/payments/'

        response = self.api.post(url, {
            'payment_date': '2025-03-10T14:30:00Z', 'gross': '40.00', 'net': '40.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        entry = response.data['payment_history'][0]
        self.assertEqual(entry['index'], 0)
        self.assertEqual(entry['gross'], '40.00')
        self.assertEqual(entry['payment_date'], '2025-03-10T14:30:00+00:00')

        response = self.api.put(f'{url}edit/', {
            'index': 0, 'entry_id': entry['entry_id'],
            'payment_date': '2025-03-11', 'gross': '35.00', 'net': '32.85',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_history'][0]['net'], '32.85')

        response = self.api.delete(f'{url}delete/', {'index': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_history'], [])

    def test_payment_index_errors(self):
        url = f'/api/clients/{self.active.pk}/payments/'

        response = self.api.post(f'{url}delete/', {'index': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'out_of_range')

        response = self.api.post(f'{url}delete/', {}, format='json')
        self.assertEqual(response.data['code'], 'missing_required_field')

    def test_invalid_payment_amount(self):
        response = self.api.post(f'/api/clients/{self.active.pk}/payments/', {
            'payment_date': '2025-03-10', 'gross': '0', 'net': '10',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_argument')

    def test_visual_payment_status_and_observations(self):
        response = self.api.put(
            f'/api/clients/{self.active.pk}/visual-payment-status/',
            {'status': True},
            format='json'
        )
        self.assertTrue(response.data['visual_payment_confirmed'])

        response = self.api.put(
            f'/api/clients/{self.active.pk}/observations/',
            {'observations': 'Cliente antigo'},
            format='json'
        )
        self.assertEqual(response.data['observations'], 'Cliente antigo')

    def test_destroy_requires_admin(self):
        response = self.api.delete(f'/api/clients/{self.active.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.api.force_authenticate(user=self.admin)
        response = self.api.delete(f'/api/clients/{self.active.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Client.objects.filter(pk=self.active.pk).exists())

    def test_unauthenticated(self):
        self.api.force_authenticate(user=None)

        response = self.api.get('/api/clients/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class SeedClientsCommandTests(TestCase):

    def test_seed_clients(self):
        call_command('seed_clients', count=3, payments=2, stdout=StringIO())

        self.assertEqual(Client.objects.count(), 3)
        store = DjangoClientStore()
        for client in Client.objects.all():
            factor = resolve_discount(store, client.plan_id, client.payment_method_id)
            self.assertEqual(client.net_amount, compute_net(client.gross_amount, factor))
            self.assertEqual(client.user.role, User.ROLE_CLIENT)
