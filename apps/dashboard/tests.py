# apps/dashboard/tests.py
"""
Dashboard app tests - Testing the monthly report aggregation,
the live summary and the dashboard endpoints
"""
from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase, APIClient

from apps.billing.models import GrossOverride, PaymentMethod, Plan
from apps.billing.pricing import GrossOverrideTable
from apps.clients import lifecycle
from apps.clients.ledger import PaymentEntry
from apps.clients.services import ClientService
from apps.clients.store import DjangoClientStore
from apps.core.exceptions import InvalidArgumentError
from apps.dashboard.reporting import ClientLedger, build_report, validate_period
from apps.dashboard.services import ReportService

User = get_user_model()

UTC = dt_timezone.utc

PAGSEGURO_OVERRIDES = GrossOverrideTable([
    ('PagSeguro', Decimal('35.00'), Decimal('32.85')),
    ('PagSeguro', Decimal('30.00'), Decimal('28.10')),
])


def entry(entry_id, paid_at, gross, net, payment_method_id=None):
    return PaymentEntry(
        entry_id=entry_id,
        payment_date=paid_at,
        gross=Decimal(gross),
        net=Decimal(net),
        payment_method_id=payment_method_id,
    )


class NeverIterated:
    def __iter__(self):
        raise AssertionError("ledgers were scanned")


class BuildReportTests(TestCase):
    """Test the pure aggregation"""

    def test_empty_input(self):
        report = build_report(5, 2025, [], PAGSEGURO_OVERRIDES, method_names=['Caixa', 'PagSeguro'])

        self.assertEqual(report.total_payments, 0)
        self.assertEqual(report.total_gross_amount, Decimal('0'))
        self.assertEqual(report.total_net_amount_8, Decimal('0'))
        self.assertEqual(report.total_net_amount_15, Decimal('0'))
        self.assertEqual(report.daily_net_profit, [])
        self.assertEqual(report.gross_by_payment_method, {'Caixa': Decimal('0'), 'PagSeguro': Decimal('0')})

    def test_invalid_period_fails_before_scanning(self):
        for month, year in [(0, 2025), (13, 2025), (5, 1999), (5, 2101), ('abc', 2025), (5, None)]:
            with self.assertRaises(InvalidArgumentError, msg=f"{month}/{year}"):
                build_report(month, year, NeverIterated())

    def test_validate_period_accepts_strings(self):
        self.assertEqual(validate_period('12', '2100'), (12, 2100))

    def test_pagseguro_override(self):
        ledgers = [ClientLedger('PagSeguro', [
            entry(1, datetime(2025, 5, 10, 12, 0, tzinfo=UTC), '35.00', '35.00'),
        ])]

        report = build_report(5, 2025, ledgers, PAGSEGURO_OVERRIDES)

        self.assertEqual(report.gross_by_payment_method['PagSeguro'], Decimal('32.85'))
        self.assertEqual(report.total_gross_amount, Decimal('32.85'))
        self.assertEqual(report.total_net_amount_8, Decimal('24.85'))
        self.assertEqual(report.total_net_amount_15, Decimal('17.85'))

    def test_override_only_for_matching_method(self):
        ledgers = [ClientLedger('Caixa', [
            entry(1, datetime(2025, 5, 10, tzinfo=UTC), '35.00', '35.00'),
        ])]

        report = build_report(5, 2025, ledgers, PAGSEGURO_OVERRIDES)

        self.assertEqual(report.gross_by_payment_method, {'Caixa': Decimal('35.00')})

    def test_daily_net_profit_series(self):
        ledgers = [
            ClientLedger('Caixa', [entry(1, datetime(2025, 5, 20, 9, 0, tzinfo=UTC), '60.00', '60.00')]),
            ClientLedger('Caixa', [entry(1, datetime(2025, 5, 3, 18, 0, tzinfo=UTC), '40.00', '40.00')]),
        ]

        report = build_report(5, 2025, ledgers)

        self.assertEqual(report.daily_net_profit, [
            (date(2025, 5, 3), Decimal('40.00')),
            (date(2025, 5, 20), Decimal('60.00')),
        ])
        self.assertEqual(sum(total for _, total in report.daily_net_profit), Decimal('100.00'))

    def test_daily_series_uses_stored_net(self):
        ledgers = [ClientLedger('PagSeguro', [
            entry(1, datetime(2025, 5, 10, tzinfo=UTC), '35.00', '31.50'),
            entry(2, datetime(2025, 5, 10, 22, 0, tzinfo=UTC), '30.00', '27.00'),
        ])]

        report = build_report(5, 2025, ledgers, PAGSEGURO_OVERRIDES)

        self.assertEqual(report.daily_net_profit, [(date(2025, 5, 10), Decimal('58.50'))])
        self.assertEqual(report.total_gross_amount, Decimal('60.95'))
        self.assertEqual(report.total_payments, 2)

    def test_month_window_is_utc(self):
        brasilia = dt_timezone(timedelta(hours=-3))
        ledgers = [ClientLedger('Caixa', [
            # 31/05 23:30 in Brasilia is 01/06 in UTC
            entry(1, datetime(2025, 5, 31, 23, 30, tzinfo=brasilia), '10.00', '10.00'),
            entry(2, datetime(2025, 6, 30, 23, 59, tzinfo=UTC), '20.00', '20.00'),
            entry(3, datetime(2025, 7, 1, 0, 0, tzinfo=UTC), '40.00', '40.00'),
        ])]

        june = build_report(6, 2025, ledgers)
        may = build_report(5, 2025, ledgers)

        self.assertEqual(june.total_payments, 2)
        self.assertEqual(june.total_gross_amount, Decimal('30.00'))
        self.assertEqual(june.daily_net_profit[0][0], date(2025, 6, 1))
        self.assertEqual(may.total_payments, 0)

    def test_payments_follow_the_client_method(self):
        ledgers = [ClientLedger('PagSeguro', [
            # Recorded under another method id, still counted as PagSeguro
            entry(1, datetime(2025, 5, 10, tzinfo=UTC), '35.00', '35.00', payment_method_id=5),
        ])]

        report = build_report(5, 2025, ledgers, PAGSEGURO_OVERRIDES, method_names=['Caixa', 'PagSeguro'])

        self.assertEqual(report.gross_by_payment_method['PagSeguro'], Decimal('32.85'))
        self.assertEqual(report.gross_by_payment_method['Caixa'], Decimal('0'))
        self.assertEqual(report.total_gross_amount, Decimal('32.85'))

    def test_activation_costs_can_be_patched(self):
        ledgers = [ClientLedger('Caixa', [entry(1, datetime(2025, 5, 10, tzinfo=UTC), '50.00', '50.00')])]

        with mock.patch('apps.dashboard.reporting.ACTIVATION_COST_LOW', Decimal('10')):
            report = build_report(5, 2025, ledgers)

        self.assertEqual(report.total_net_amount_8, Decimal('40.00'))
        self.assertEqual(report.total_net_amount_15, Decimal('35.00'))

    def test_as_dict_rounds_at_the_boundary(self):
        ledgers = [ClientLedger('Caixa', [
            entry(1, datetime(2025, 5, 10, tzinfo=UTC), '10.005', '3.333'),
            entry(2, datetime(2025, 5, 10, tzinfo=UTC), '10.005', '3.333'),
        ])]

        report = build_report(5, 2025, ledgers)
        data = report.as_dict()

        # Summed before rounding: 20.01, not 10.01 + 10.01
        self.assertEqual(report.total_gross_amount, Decimal('20.010'))
        self.assertEqual(data['total_gross_amount'], Decimal('20.01'))
        self.assertEqual(data['daily_net_profit'], [{'date': '2025-05-10', 'net_amount': Decimal('6.67')}])
        self.assertEqual(data['total_net_amount_8'], Decimal('4.01'))
        self.assertEqual(data['total_payments'], 2)


class ReportFixtureMixin:

    def create_data(self, today):
        self.comum = Plan.objects.create(name='Comum', default_gross_amount=Decimal('30.00'))
        self.platinum = Plan.objects.create(name='Platinum', default_gross_amount=Decimal('35.00'))
        self.pagseguro = PaymentMethod.objects.create(name='PagSeguro')
        self.caixa = PaymentMethod.objects.create(name='Caixa')
        GrossOverride.objects.create(
            payment_method=self.pagseguro,
            gross_value=Decimal('35.00'),
            substitute_value=Decimal('32.85')
        )

        self.client_service = ClientService(DjangoClientStore(), today_provider=lambda: today)
        self.ana = self.client_service.create_client({
            'full_name': 'Ana', 'email': 'ana@example.com',
            'plan_id': self.platinum.pk, 'payment_method_id': self.pagseguro.pk,
            'due_date': today,
        })
        self.bruno = self.client_service.create_client({
            'full_name': 'Bruno', 'email': 'bruno@example.com',
            'plan_id': self.comum.pk, 'payment_method_id': self.caixa.pk,
            'due_date': today - timedelta(days=40),
        })

        paid_at = datetime(today.year, today.month, 1, 12, 0, tzinfo=UTC)
        self.client_service.append_payment(self.ana.pk, {
            'payment_date': paid_at, 'gross': '35.00', 'net': '35.00',
        })
        self.client_service.append_payment(self.bruno.pk, {
            'payment_date': paid_at, 'gross': '30.00', 'net': '30.00',
        })
        # Tagged PagSeguro, but reported under the client's method (Caixa)
        self.client_service.append_payment(self.bruno.pk, {
            'payment_date': paid_at + timedelta(hours=1), 'gross': '35.00', 'net': '30.00',
            'payment_method_id': self.pagseguro.pk,
        })


class ReportServiceTests(ReportFixtureMixin, TestCase):
    """Test the report over stored ledgers"""

    def setUp(self):
        self.today = date(2025, 6, 15)
        self.create_data(self.today)
        self.service = ReportService(DjangoClientStore(), today_provider=lambda: self.today)

    def test_build(self):
        report = self.service.build(6, 2025)

        self.assertEqual(report.total_payments, 3)
        self.assertEqual(report.gross_by_payment_method, {
            'Caixa': Decimal('65.00'),
            'PagSeguro': Decimal('32.85'),
        })
        self.assertEqual(report.total_gross_amount, Decimal('97.85'))
        self.assertEqual(report.total_net_amount_8, Decimal('73.85'))
        self.assertEqual(report.total_net_amount_15, Decimal('52.85'))
        self.assertEqual(report.daily_net_profit, [(date(2025, 6, 1), Decimal('95.00'))])

    def test_other_month_is_empty(self):
        report = self.service.build(5, 2025)

        self.assertEqual(report.total_payments, 0)
        self.assertEqual(report.gross_by_payment_method, {'Caixa': Decimal('0'), 'PagSeguro': Decimal('0')})

    def test_live_summary(self):
        summary = self.service.build_live_summary()

        self.assertEqual(summary['active_clients'], 1)
        self.assertEqual(summary['clients_by_plan'], {'Platinum': 1})
        self.assertEqual(summary['clients_by_payment_method'], {'PagSeguro': 1})
        self.assertEqual(summary['total_payments'], 3)
        self.assertEqual(summary['total_net_amount_8'], Decimal('73.85'))


class DashboardEndpointTests(ReportFixtureMixin, APITestCase):
    """Test the dashboard endpoints"""

    def setUp(self):
        self.today = lifecycle.today()
        self.create_data(self.today)
        self.api = APIClient()
        self.assistant = User.objects.create_user(
            username='assistant', password='pass123', role=User.ROLE_ASSISTANT
        )
        self.api.force_authenticate(user=self.assistant)

    def test_report_defaults_to_current_month(self):
        response = self.api.get('/api/dashboard/report/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['month'], self.today.month)
        self.assertEqual(response.data['total_payments'], 3)
        self.assertEqual(response.data['gross_by_payment_method']['PagSeguro'], Decimal('32.85'))

    def test_oversized_payment_does_not_break_the_report(self):
        response = self.api.post(f'/api/clients/{self.ana.pk}/payments/', {
            'payment_date': self.today.isoformat(), 'gross': '1e30', 'net': '1e30',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_argument')

        response = self.api.get('/api/dashboard/report/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_payments'], 3)

    def test_report_for_empty_month(self):
        response = self.api.get('/api/dashboard/report/', {'month': 1, 'year': 2001})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_payments'], 0)
        self.assertEqual(response.data['daily_net_profit'], [])

    def test_invalid_month(self):
        response = self.api.get('/api/dashboard/report/', {'month': 13, 'year': 2025})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_argument')

    def test_current_month(self):
        response = self.api.get('/api/dashboard/current-month/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['active_clients'], 1)
        self.assertEqual(response.data['clients_by_plan'], {'Platinum': 1})

    def test_requires_staff(self):
        self.api.force_authenticate(user=None)
        response = self.api.get('/api/dashboard/report/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
