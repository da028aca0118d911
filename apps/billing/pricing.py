# apps/billing/pricing.py
"""
Pricing rules: discount lookup, net amount derivation and the
report-time gross override table.

Discount factors are fractions in [0, 1] and are applied as
``gross * (1 - factor)``. A factor stored as a percentage (e.g. 10 for 10%)
is rejected instead of being silently reinterpreted.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from types import MappingProxyType

from apps.core.exceptions import (
    InvalidArgumentError,
    InvalidReferenceError,
    MissingRequiredFieldError,
)

ZERO = Decimal('0')
ONE = Decimal('1')
CENT = Decimal('0.01')
# Largest value a DecimalField(max_digits=10, decimal_places=2) holds
MAX_AMOUNT = Decimal('99999999.99')


def quantize_money(value):
    """Round a Decimal to cents. Only used at persistence/API boundaries."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value, field_name='valor'):
    """
    Convert user input to a positive, finite Decimal no larger than MAX_AMOUNT.

    Floats go through str() so 32.85 stays 32.85. Booleans are refused
    even though bool is an int subclass.
    """
    if value is None or value == '':
        raise MissingRequiredFieldError(f"{field_name} é obrigatório.")
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field_name} deve ser um número.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).replace(',', '.'))
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f"{field_name} deve ser um número.")
    if not amount.is_finite() or amount <= 0:
        raise InvalidArgumentError(f"{field_name} deve ser um número maior que zero.")
    if amount > MAX_AMOUNT:
        raise InvalidArgumentError(f"{field_name} deve ser no máximo {MAX_AMOUNT}.")
    return amount


def parse_reference_id(value, label):
    if isinstance(value, bool):
        raise InvalidReferenceError(f"Identificador de {label} inválido.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidReferenceError(f"Identificador de {label} inválido.")


def resolve_discount(store, plan_id, payment_method_id):
    """
    Return the discount factor for a (plan, payment method) pair.

    Absence of a row is not an error and means no discount.
    """
    plan_id = parse_reference_id(plan_id, 'plano')
    payment_method_id = parse_reference_id(payment_method_id, 'método de pagamento')

    factor = store.get_discount(plan_id, payment_method_id)
    if factor is None:
        return ZERO

    factor = Decimal(factor)
    if factor < ZERO or factor > ONE:
        raise InvalidReferenceError(
            f"Desconto cadastrado para o par ({plan_id}, {payment_method_id}) "
            f"deve estar entre 0 e 1, encontrado {factor}."
        )
    return factor


def compute_net(gross, factor):
    """Net amount for a gross amount and a fractional discount factor."""
    gross = Decimal(gross)
    factor = Decimal(factor)
    if factor < ZERO or factor > ONE:
        raise InvalidArgumentError("Fator de desconto deve estar entre 0 e 1.")
    return gross * (ONE - factor)


class GrossOverrideTable:
    """
    Immutable lookup of (payment method name, exact gross) -> substitute gross.

    Used by the financial report to count the settled amount a processor
    actually pays out for specific charged prices.
    """

    def __init__(self, rules=()):
        table = {}
        for method_name, gross_value, substitute in rules:
            table[(method_name, Decimal(gross_value))] = Decimal(substitute)
        self._rules = MappingProxyType(table)

    def __len__(self):
        return len(self._rules)

    def __contains__(self, key):
        method_name, gross_value = key
        return (method_name, Decimal(gross_value)) in self._rules

    def apply(self, method_name, gross):
        """Return the substitute for an exact match, else gross unchanged."""
        return self._rules.get((method_name, Decimal(gross)), gross)

    def rules(self):
        return dict(self._rules)
