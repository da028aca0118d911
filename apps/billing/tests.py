# apps/billing/tests.py
"""
Billing app tests - Testing discount resolution, net derivation,
gross overrides and the reference data endpoints
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from io import StringIO
from rest_framework import status
from rest_framework.test import APITestCase, APIClient

from apps.billing.models import GrossOverride, PaymentMethod, Plan, PlanPaymentMethodDiscount
from apps.billing.pricing import (
    MAX_AMOUNT,
    GrossOverrideTable,
    compute_net,
    parse_amount,
    resolve_discount,
)
from apps.clients.store import DjangoClientStore
from apps.core.exceptions import (
    InvalidArgumentError,
    InvalidReferenceError,
    MissingRequiredFieldError,
)

User = get_user_model()


class FakeDiscountStore:
    """Minimal store exposing only the discount lookup"""

    def __init__(self, discounts=None):
        self.discounts = discounts or {}
        self.calls = []

    def get_discount(self, plan_id, payment_method_id):
        self.calls.append((plan_id, payment_method_id))
        return self.discounts.get((plan_id, payment_method_id))


class ResolveDiscountTests(TestCase):
    """Test the sparse discount lookup"""

    def test_missing_row_means_no_discount(self):
        store = FakeDiscountStore()
        self.assertEqual(resolve_discount(store, 1, 2), Decimal('0'))

    def test_stored_factor_is_returned(self):
        store = FakeDiscountStore({(1, 2): Decimal('0.5')})
        self.assertEqual(resolve_discount(store, 1, 2), Decimal('0.5'))

    def test_string_ids_are_accepted(self):
        store = FakeDiscountStore({(1, 2): Decimal('0.1')})
        self.assertEqual(resolve_discount(store, '1', '2'), Decimal('0.1'))
        self.assertEqual(store.calls, [(1, 2)])

    def test_malformed_keys_are_invalid_references(self):
        store = FakeDiscountStore()

        with self.assertRaises(InvalidReferenceError):
            resolve_discount(store, 'abc', 2)
        with self.assertRaises(InvalidReferenceError):
            resolve_discount(store, 1, None)
        with self.assertRaises(InvalidReferenceError):
            resolve_discount(store, True, 2)
        self.assertEqual(store.calls, [])

    def test_percentage_style_factor_is_refused(self):
        store = FakeDiscountStore({(1, 2): Decimal('10')})

        with self.assertRaises(InvalidReferenceError):
            resolve_discount(store, 1, 2)


class ComputeNetTests(TestCase):
    """Test the fractional discount convention"""

    def test_fractional_factor(self):
        self.assertEqual(compute_net(Decimal('100'), Decimal('0.5')), Decimal('50'))
        self.assertEqual(compute_net(Decimal('35.00'), Decimal('0.1')), Decimal('31.5'))

    def test_zero_factor_keeps_gross(self):
        self.assertEqual(compute_net(Decimal('30.00'), Decimal('0')), Decimal('30.00'))

    def test_full_discount(self):
        self.assertEqual(compute_net(Decimal('30.00'), Decimal('1')), Decimal('0'))

    def test_factor_outside_unit_interval(self):
        with self.assertRaises(InvalidArgumentError):
            compute_net(Decimal('100'), Decimal('10'))
        with self.assertRaises(InvalidArgumentError):
            compute_net(Decimal('100'), Decimal('-0.1'))


class ParseAmountTests(TestCase):

    def test_float_keeps_its_decimal_text(self):
        self.assertEqual(parse_amount(32.85), Decimal('32.85'))

    def test_comma_decimal_separator(self):
        self.assertEqual(parse_amount('1,5'), Decimal('1.5'))

    def test_absent_amount(self):
        with self.assertRaises(MissingRequiredFieldError):
            parse_amount(None)
        with self.assertRaises(MissingRequiredFieldError):
            parse_amount('')

    def test_invalid_amounts(self):
        for value in [0, -1, 'abc', 'NaN', 'Infinity', True]:
            with self.assertRaises(InvalidArgumentError, msg=repr(value)):
                parse_amount(value)


    def test_amount_beyond_money_precision(self):
        self.assertEqual(parse_amount('99999999.99'), MAX_AMOUNT)
        for value in ['100000000', '1e30', Decimal('1E+30')]:
            with self.assertRaises(InvalidArgumentError, msg=repr(value)):
                parse_amount(value)


class GrossOverrideTableTests(TestCase):
    """Test the report-time gross substitution"""

    def setUp(self):
        self.table = GrossOverrideTable([
            ('PagSeguro', Decimal('35.00'), Decimal('32.85')),
            ('PagSeguro', '30.00', '28.10'),
        ])

    def test_exact_match_is_substituted(self):
        self.assertEqual(self.table.apply('PagSeguro', Decimal('35.00')), Decimal('32.85'))
        self.assertEqual(self.table.apply('PagSeguro', Decimal('30')), Decimal('28.10'))

    def test_other_values_pass_through(self):
        self.assertEqual(self.table.apply('PagSeguro', Decimal('35.01')), Decimal('35.01'))
        self.assertEqual(self.table.apply('Caixa', Decimal('35.00')), Decimal('35.00'))

    def test_membership_and_size(self):
        self.assertEqual(len(self.table), 2)
        self.assertIn(('PagSeguro', '35'), self.table)
        self.assertNotIn(('Picpay', '35'), self.table)

    def test_table_is_immutable(self):
        rules = self.table.rules()
        rules[('Caixa', Decimal('10'))] = Decimal('1')

        self.assertEqual(len(self.table), 2)
        with self.assertRaises(TypeError):
            self.table._rules[('Caixa', Decimal('10'))] = Decimal('1')

    def test_empty_table(self):
        table = GrossOverrideTable()
        self.assertEqual(table.apply('PagSeguro', Decimal('35.00')), Decimal('35.00'))


class StoreReferenceDataTests(TestCase):
    """Test the reference data lookups of the ORM store"""

    def setUp(self):
        self.store = DjangoClientStore()
        self.plan = Plan.objects.create(name='Comum', default_gross_amount=Decimal('30.00'))
        self.method = PaymentMethod.objects.create(name='PagSeguro')

    def test_discount_lookup(self):
        self.assertIsNone(self.store.get_discount(self.plan.pk, self.method.pk))

        PlanPaymentMethodDiscount.objects.create(
            plan=self.plan,
            payment_method=self.method,
            discount=Decimal('0.5')
        )

        self.assertEqual(self.store.get_discount(self.plan.pk, self.method.pk), Decimal('0.5'))
        self.assertEqual(resolve_discount(self.store, self.plan.pk, self.method.pk), Decimal('0.5'))

    def test_gross_overrides_come_from_the_table(self):
        GrossOverride.objects.create(
            payment_method=self.method,
            gross_value=Decimal('35.00'),
            substitute_value=Decimal('32.85')
        )

        table = self.store.get_gross_overrides()

        self.assertEqual(len(table), 1)
        self.assertEqual(table.apply('PagSeguro', Decimal('35.00')), Decimal('32.85'))

    def test_missing_references(self):
        self.assertIsNone(self.store.get_plan(9999))
        self.assertIsNone(self.store.get_payment_method(9999))


class SeedBillingCommandTests(TestCase):

    def test_seed_is_idempotent(self):
        call_command('seed_billing', stdout=StringIO())
        call_command('seed_billing', stdout=StringIO())

        self.assertEqual(Plan.objects.count(), 4)
        self.assertEqual(PaymentMethod.objects.count(), 5)
        self.assertEqual(GrossOverride.objects.count(), 2)
        self.assertEqual(Plan.objects.get(name='Comum').default_gross_amount, Decimal('30.00'))

        table = DjangoClientStore().get_gross_overrides()
        self.assertEqual(table.apply('PagSeguro', Decimal('30.00')), Decimal('28.10'))


class ReferenceDataEndpointTests(APITestCase):
    """Test the read-only plan and payment method endpoints"""

    def setUp(self):
        self.client = APIClient()
        self.assistant = User.objects.create_user(
            username='assistant',
            password='pass123',
            role=User.ROLE_ASSISTANT
        )
        self.client_login = User.objects.create_user(
            username='cliente',
            password='pass123',
            role=User.ROLE_CLIENT
        )
        Plan.objects.create(name='Comum')
        Plan.objects.create(name='Antigo', is_active=False)
        PaymentMethod.objects.create(name='Caixa')
        PaymentMethod.objects.create(name='Boleto', is_active=False)

    def test_list_active_plans(self):
        self.client.force_authenticate(user=self.assistant)
        response = self.client.get('/api/plans/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([plan['name'] for plan in response.data], ['Comum'])

    def test_list_active_payment_methods(self):
        self.client.force_authenticate(user=self.assistant)
        response = self.client.get('/api/payment-methods/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([method['name'] for method in response.data], ['Caixa'])

    def test_unauthenticated(self):
        response = self.client.get('/api/plans/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_client_login_is_refused(self):
        self.client.force_authenticate(user=self.client_login)
        response = self.client.get('/api/plans/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'permission_denied')
