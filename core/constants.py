"""Shared constants and money helpers (fixed-point, two decimals)."""
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

DEFAULT_TAX_RATE = Decimal('0.13')
DEFAULT_DELIVERY_FEE = Decimal('3.99')
DEFAULT_PAYMENT_METHOD = 'card'

UNKNOWN_ITEM_REJECT = 'reject'
UNKNOWN_ITEM_SKIP = 'skip'
UNKNOWN_ITEM_POLICIES = frozenset({UNKNOWN_ITEM_REJECT, UNKNOWN_ITEM_SKIP})

MIN_RATING = 1
MAX_RATING = 5


def round_money(value) -> Decimal:
    """Round half-up to two decimals. Accepts Decimal, int or str ('8.50')."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def compute_line_total(unit_price, quantity) -> Decimal:
    return round_money(round_money(unit_price) * to_int(quantity))


def to_int(value) -> int:
    """
    int(value) that refuses to truncate: bools and numbers with a fractional part
    raise ValueError, other non-numeric types raise TypeError. Digit strings are accepted.
    """
    if isinstance(value, bool):
        raise ValueError(f'{value!r} is not an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f'{value!r} is not an integer')
        return int(value)
    if isinstance(value, Decimal):
        if not value.is_finite() or value % 1:
            raise ValueError(f'{value!r} is not an integer')
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f'{value!r} is not an integer')
