# apps/clients/ledger.py
"""
Payment ledger embedded in a client record.

Entries are kept in insertion order inside ``Client.payment_history`` (a JSON
list). Callers address them by position, but every entry also carries a
stable ``entry_id`` so a stale position can be detected before it edits or
deletes the wrong payment.

Stored histories are decoded leniently (legacy shapes, junk rows), while new
input is validated strictly.
"""
import json
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, time
from datetime import timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.utils.dateparse import parse_date, parse_datetime

from apps.billing.pricing import MAX_AMOUNT, parse_amount
from apps.core.exceptions import (
    ConcurrentModificationError,
    InvalidArgumentError,
    MissingRequiredFieldError,
    OutOfRangeError,
)

logger = logging.getLogger(__name__)

# Keys written by older versions of the history
LEGACY_KEYS = {
    'paymentDate': 'payment_date',
    'paymentBruto': 'gross',
    'paymentLiquido': 'net',
    'paymentMethodId': 'payment_method_id',
}


@dataclass(frozen=True)
class PaymentEntry:
    entry_id: int
    payment_date: datetime
    gross: Decimal
    net: Decimal
    payment_method_id: Optional[int] = None

    def to_json(self):
        return {
            'entry_id': self.entry_id,
            'payment_date': self.payment_date.astimezone(dt_timezone.utc).isoformat(),
            'gross': str(self.gross),
            'net': str(self.net),
            'payment_method_id': self.payment_method_id,
        }


@dataclass(frozen=True)
class PaymentFields:
    """Validated input for a new or edited entry (no id yet)"""
    payment_date: datetime
    gross: Decimal
    net: Decimal
    payment_method_id: Optional[int] = None


@dataclass
class HistoryDecodeResult:
    entries: List[PaymentEntry] = field(default_factory=list)
    next_entry_id: int = 1
    degraded: bool = False
    dropped: int = 0


def parse_payment_date(value):
    """
    Parse a payment instant. Naive values are taken as UTC and dates as
    midnight UTC. Returns an aware datetime in UTC.
    """
    if value is None or value == '':
        raise MissingRequiredFieldError("Data de pagamento é obrigatória.")

    parsed = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
            if parsed is None:
                day = parse_date(value.strip())
                if day is not None:
                    parsed = datetime.combine(day, time.min)
        except ValueError:
            parsed = None

    if parsed is None:
        raise InvalidArgumentError("Data de pagamento inválida.")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed.astimezone(dt_timezone.utc)


def validate_entry_fields(payment_date, gross, net, payment_method_id=None):
    """Validate caller input for a ledger entry. Raises before anything is written."""
    parsed_date = parse_payment_date(payment_date)
    gross = parse_amount(gross, 'Valor bruto do pagamento')
    net = parse_amount(net, 'Valor líquido do pagamento')

    if payment_method_id is not None:
        if isinstance(payment_method_id, bool):
            raise InvalidArgumentError("Método de pagamento inválido.")
        try:
            payment_method_id = int(payment_method_id)
        except (TypeError, ValueError):
            raise InvalidArgumentError("Método de pagamento inválido.")

    return PaymentFields(
        payment_date=parsed_date,
        gross=gross,
        net=net,
        payment_method_id=payment_method_id,
    )


def _decode_entry(raw):
    """Decode one stored entry. Returns None when the row is unusable."""
    if not isinstance(raw, dict):
        return None

    data = {LEGACY_KEYS.get(key, key): value for key, value in raw.items()}
    try:
        payment_date = parse_payment_date(data.get('payment_date'))
        gross = Decimal(str(data['gross']))
        net = Decimal(str(data['net']))
    except (KeyError, InvalidOperation, ValueError, InvalidArgumentError, MissingRequiredFieldError):
        return None
    if not gross.is_finite() or not net.is_finite():
        return None
    if abs(gross) > MAX_AMOUNT or abs(net) > MAX_AMOUNT:
        return None

    entry_id = data.get('entry_id')
    if not isinstance(entry_id, int) or isinstance(entry_id, bool) or entry_id < 1:
        entry_id = None

    payment_method_id = data.get('payment_method_id')
    if not isinstance(payment_method_id, int) or isinstance(payment_method_id, bool):
        payment_method_id = None

    return entry_id, PaymentFields(payment_date, gross, net, payment_method_id)


def decode_history(raw, next_entry_id=1, client_id=None):
    """
    Decode a stored payment history into well-typed entries.

    Anything that is not a list (after parsing a JSON string) degrades to an
    empty history; rows missing required fields are dropped. Both cases are
    logged and reported through ``degraded``; neither raises.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raw = None

    if raw is None:
        return HistoryDecodeResult(next_entry_id=max(next_entry_id or 1, 1))

    if not isinstance(raw, list):
        logger.warning(
            f"Client {client_id}: payment history is a {type(raw).__name__}, treating it as empty"
        )
        return HistoryDecodeResult(next_entry_id=max(next_entry_id or 1, 1), degraded=True)

    decoded = []
    dropped = 0
    for item in raw:
        result = _decode_entry(item)
        if result is None:
            dropped += 1
            continue
        decoded.append(result)

    highest = max((entry_id for entry_id, _ in decoded if entry_id is not None), default=0)

    # Rows without an id (or with a duplicated one) get fresh ids after the highest
    next_id = max(next_entry_id or 1, highest + 1)
    entries = []
    seen = set()
    for entry_id, fields in decoded:
        if entry_id is None or entry_id in seen:
            entry_id = next_id
            next_id += 1
        seen.add(entry_id)
        entries.append(PaymentEntry(entry_id=entry_id, **asdict(fields)))

    if dropped:
        logger.warning(f"Client {client_id}: dropped {dropped} malformed payment history entries")

    return HistoryDecodeResult(
        entries=entries,
        next_entry_id=next_id,
        degraded=bool(dropped),
        dropped=dropped,
    )


class PaymentLedger:
    """
    Ordered, index-addressable list of payments for one client.

    Operations validate the index before touching the list, so a failed call
    leaves the ledger unchanged.
    """

    def __init__(self, entries=(), next_entry_id=1):
        self._entries = list(entries)
        highest = max((entry.entry_id for entry in self._entries), default=0)
        self.next_entry_id = max(next_entry_id or 1, highest + 1)

    @classmethod
    def from_storage(cls, raw, next_entry_id=1, client_id=None):
        result = decode_history(raw, next_entry_id=next_entry_id, client_id=client_id)
        return cls(result.entries, result.next_entry_id)

    @property
    def entries(self):
        return tuple(self._entries)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def _check_index(self, index, expected_entry_id=None):
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidArgumentError("Índice de pagamento inválido.")
        if index < 0 or index >= len(self._entries):
            raise OutOfRangeError(
                f"Índice de pagamento fora dos limites: {index} (histórico com {len(self._entries)} pagamentos)."
            )
        if expected_entry_id is not None and self._entries[index].entry_id != expected_entry_id:
            raise ConcurrentModificationError()

    def find_index(self, entry_id):
        for position, entry in enumerate(self._entries):
            if entry.entry_id == entry_id:
                return position
        raise OutOfRangeError(f"Pagamento {entry_id} não existe no histórico.")

    def append(self, fields):
        entry = PaymentEntry(entry_id=self.next_entry_id, **asdict(fields))
        self._entries.append(entry)
        self.next_entry_id += 1
        return entry

    def edit_at(self, index, fields, expected_entry_id=None):
        self._check_index(index, expected_entry_id)
        current = self._entries[index]
        entry = replace(
            current,
            payment_date=fields.payment_date,
            gross=fields.gross,
            net=fields.net,
            payment_method_id=fields.payment_method_id,
        )
        self._entries[index] = entry
        return entry

    def delete_at(self, index, expected_entry_id=None):
        self._check_index(index, expected_entry_id)
        return self._entries.pop(index)

    def to_json(self):
        return [entry.to_json() for entry in self._entries]
