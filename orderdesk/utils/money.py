from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENTS = Decimal("0.01")
ZERO = Decimal("0")
# Numeric(12, 2) columns hold ten integer digits
MAX_MONEY = Decimal("10000000000")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Coerce numbers coming from JSON or the DB into ``Decimal`` without float noise."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"{field} must be a number") from None
    if not number.is_finite():
        raise ValueError(f"{field} must be a finite number")
    return number


def optional_decimal(value: Any, field: str = "amount") -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value, field)


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def money(value: Any) -> float:
    """Presentation form: rounded to 2 places."""
    if value is None:
        return 0.0
    return float(quantize(to_decimal(value)))
