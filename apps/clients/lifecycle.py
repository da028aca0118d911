# apps/clients/lifecycle.py
"""
Client subscription lifecycle.

A client is ACTIVE or EXPIRED. The stored ``is_active`` flag is the only
persisted state; a client whose due date is more than the grace period in
the past reads as EXPIRED even while the flag is still true. The rule is
evaluated on every read and never written back by a scheduler.
"""
from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.core.exceptions import (
    InvalidArgumentError,
    InvalidStateError,
    MissingRequiredFieldError,
)

ACTIVE = 'ACTIVE'
EXPIRED = 'EXPIRED'

STATE_CHOICES = [
    (ACTIVE, 'Active'),
    (EXPIRED, 'Expired'),
]

GRACE_PERIOD_DAYS = 30
DUE_DATE_DISPLAY_FORMAT = '%d/%m/%Y'


def grace_period_days():
    return getattr(settings, 'CLIENT_GRACE_PERIOD_DAYS', GRACE_PERIOD_DAYS)


def today():
    """Current date in UTC"""
    return timezone.now().astimezone(dt_timezone.utc).date()


def lapse_cutoff(on_date, grace_days=None):
    """Due dates strictly before the returned date are lapsed on ``on_date``."""
    if grace_days is None:
        grace_days = grace_period_days()
    return on_date - timedelta(days=grace_days)


def is_lapsed(due_date, on_date, grace_days=None):
    """True when more than ``grace_days`` days have passed since ``due_date``."""
    if due_date is None:
        return False
    if grace_days is None:
        grace_days = grace_period_days()
    return (on_date - due_date).days > grace_days


def effective_state(is_active, due_date, on_date, grace_days=None):
    if not is_active or is_lapsed(due_date, on_date, grace_days):
        return EXPIRED
    return ACTIVE


def parse_due_date(value, message="Data de vencimento é obrigatória."):
    """
    Accept a date, a datetime or an ISO string (date or datetime).
    Datetimes are reduced to their UTC calendar day.
    """
    if value is None or value == '':
        raise MissingRequiredFieldError(message)

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = parse_date(text) or parse_datetime(text)
        except ValueError:
            parsed = None
    else:
        parsed = None

    if parsed is None:
        raise InvalidArgumentError("Data de vencimento inválida.")

    if isinstance(parsed, datetime):
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(dt_timezone.utc)
        return parsed.date()
    return parsed


def format_due_date(due_date):
    """Cached display string kept next to the due date (dd/mm/yyyy)."""
    if due_date is None:
        return ''
    fmt = getattr(settings, 'DUE_DATE_DISPLAY_FORMAT', DUE_DATE_DISPLAY_FORMAT)
    return due_date.strftime(fmt)


def renew(client, new_due_date):
    """
    Move the due date. Allowed in any state; the active flag and the
    payment ledger are left alone.
    """
    new_due_date = parse_due_date(new_due_date, "Nova data de vencimento é obrigatória.")
    client.due_date = new_due_date
    client.due_date_string = format_due_date(new_due_date)
    return client


def reactivate(client, new_due_date, on_date, grace_days=None):
    """
    Bring an EXPIRED client back with a new due date.

    The state is checked first, so an ACTIVE client is refused whatever
    date was supplied.
    """
    state = effective_state(client.is_active, client.due_date, on_date, grace_days)
    if state == ACTIVE:
        raise InvalidStateError("Cliente já está ativo.")
    new_due_date = parse_due_date(
        new_due_date, "Nova data de vencimento é obrigatória para reativar."
    )

    client.is_active = True
    client.due_date = new_due_date
    client.due_date_string = format_due_date(new_due_date)
    return client
