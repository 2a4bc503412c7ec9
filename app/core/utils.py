from decimal import Decimal, ROUND_HALF_UP, getcontext
from app.core.config import settings

getcontext().prec = 28
CENTS = Decimal("0.01")
ZERO = Decimal("0")

# single epsilon for balances, split sums and settled checks
TOLERANCE = Decimal(str(settings.BALANCE_TOLERANCE))


def qround(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
