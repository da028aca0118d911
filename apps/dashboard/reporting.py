# apps/dashboard/reporting.py
"""
Monthly financial report over every client's payment ledger.

Pure aggregation: callers hand in the ledgers and the gross override table,
nothing here touches the database. Amounts stay Decimal until as_dict().
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import timezone as dt_timezone
from decimal import Decimal
from typing import Dict, List, Sequence

from django.conf import settings

from apps.billing.pricing import GrossOverrideTable, ZERO, quantize_money
from apps.core.exceptions import InvalidArgumentError

# Flat cost of one activation under the two profit scenarios
ACTIVATION_COST_LOW = Decimal('8')
ACTIVATION_COST_HIGH = Decimal('15')

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass(frozen=True)
class ClientLedger:
    """One client's payments plus the name of the client's payment method"""
    method_name: str
    entries: Sequence


@dataclass
class FinancialReport:
    month: int
    year: int
    gross_by_payment_method: Dict[str, Decimal] = field(default_factory=dict)
    daily_net_profit: List[tuple] = field(default_factory=list)
    total_gross_amount: Decimal = ZERO
    total_payments: int = 0
    total_net_amount_8: Decimal = ZERO
    total_net_amount_15: Decimal = ZERO

    def as_dict(self):
        """API shape; every amount rounded to cents here and only here"""
        return {
            'month': self.month,
            'year': self.year,
            'gross_by_payment_method': {
                name: quantize_money(total)
                for name, total in self.gross_by_payment_method.items()
            },
            'daily_net_profit': [
                {'date': day.isoformat(), 'net_amount': quantize_money(total)}
                for day, total in self.daily_net_profit
            ],
            'total_gross_amount': quantize_money(self.total_gross_amount),
            'total_payments': self.total_payments,
            'total_net_amount_8': quantize_money(self.total_net_amount_8),
            'total_net_amount_15': quantize_money(self.total_net_amount_15),
        }


def _coerce_int(value, label):
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{label} inválido.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{label} inválido.")


def validate_period(month, year):
    """Return (month, year) as ints or raise InvalidArgumentError."""
    month = _coerce_int(month, 'Mês')
    year = _coerce_int(year, 'Ano')

    min_year = getattr(settings, 'REPORT_MIN_YEAR', MIN_YEAR)
    max_year = getattr(settings, 'REPORT_MAX_YEAR', MAX_YEAR)

    if not 1 <= month <= 12:
        raise InvalidArgumentError(f"Mês deve estar entre 1 e 12, recebido {month}.")
    if not min_year <= year <= max_year:
        raise InvalidArgumentError(f"Ano deve estar entre {min_year} e {max_year}, recebido {year}.")
    return month, year


def build_report(month, year, ledgers, overrides=None, method_names=()):
    """
    Aggregate the payments made in (month, year), UTC.

    Every payment is attributed to its client's payment method. The gross
    override is applied before summing; daily_net_profit sums the stored
    net, not the overridden gross.
    """
    month, year = validate_period(month, year)
    overrides = overrides if overrides is not None else GrossOverrideTable()

    gross_by_method = OrderedDict((name, ZERO) for name in method_names)
    net_by_day = {}
    total_gross = ZERO
    total_payments = 0

    for ledger in ledgers:
        for entry in ledger.entries:
            paid_at = entry.payment_date.astimezone(dt_timezone.utc)
            if paid_at.year != year or paid_at.month != month:
                continue

            gross = overrides.apply(ledger.method_name, entry.gross)
            gross_by_method[ledger.method_name] = gross_by_method.get(ledger.method_name, ZERO) + gross
            total_gross += gross
            total_payments += 1

            day = paid_at.date()
            net_by_day[day] = net_by_day.get(day, ZERO) + entry.net

    return FinancialReport(
        month=month,
        year=year,
        gross_by_payment_method=dict(gross_by_method),
        daily_net_profit=sorted(net_by_day.items()),
        total_gross_amount=total_gross,
        total_payments=total_payments,
        total_net_amount_8=total_gross - total_payments * ACTIVATION_COST_LOW,
        total_net_amount_15=total_gross - total_payments * ACTIVATION_COST_HIGH,
    )
