# apps/dashboard/services.py
import logging
from collections import Counter

from apps.billing.pricing import quantize_money
from apps.clients import lifecycle
from .reporting import ClientLedger, build_report

logger = logging.getLogger(__name__)


class ReportService:
    """Loads ledgers and overrides through a ClientStore and aggregates them"""

    def __init__(self, store, today_provider=None):
        self.store = store
        self.today = today_provider or lifecycle.today

    def _ledgers(self, clients):
        for client in clients:
            yield ClientLedger(client.payment_method.name, client.get_ledger().entries)

    def build(self, month, year):
        """
        Build the financial report for one calendar month.

        Args:
            month: 1-12
            year: within REPORT_MIN_YEAR..REPORT_MAX_YEAR

        Returns:
            FinancialReport over every client's ledger, with gross overrides applied

        Raises:
            InvalidArgumentError: If month or year is out of range
        """
        methods = self.store.list_payment_methods()
        report = build_report(
            month,
            year,
            self._ledgers(self.store.list_all_clients()),
            overrides=self.store.get_gross_overrides(),
            method_names=[method.name for method in methods],
        )
        logger.info(f"Report {month}/{year} built over {report.total_payments} payments")
        return report

    def build_live_summary(self, on_date=None):
        """Current month totals plus the active client breakdown"""
        on_date = on_date or self.today()
        report = self.build(on_date.month, on_date.year)

        active_clients = list(self.store.list_clients(is_active=True, today=on_date))
        by_plan = Counter(client.plan.name for client in active_clients)
        by_method = Counter(client.payment_method.name for client in active_clients)

        return {
            'month': on_date.month,
            'year': on_date.year,
            'active_clients': len(active_clients),
            'clients_by_plan': dict(by_plan),
            'clients_by_payment_method': dict(by_method),
            'total_payments': report.total_payments,
            'total_gross_amount': quantize_money(report.total_gross_amount),
            'total_net_amount_8': quantize_money(report.total_net_amount_8),
            'total_net_amount_15': quantize_money(report.total_net_amount_15),
        }
