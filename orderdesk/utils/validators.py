from decimal import Decimal, InvalidOperation
from typing import Any, Dict

ADDRESS_REQUIRED = ("full_name", "phone", "address_line1", "city", "state", "pincode")
ADDRESS_OPTIONAL = ("address_line2", "landmark")


def ensure_quantity(value: Any, field: str, minimum: int = 1) -> int:
    """Whole number no smaller than ``minimum``; ``2.0`` is accepted, ``1.5`` is not."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field} must be a whole number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"{field} must be a whole number") from None
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"{field} must be a whole number")
    if number < minimum:
        raise ValueError(f"{field} must be >= {minimum}")
    return int(number)


def validate_shipping_address(address: Any) -> Dict[str, str]:
    """Return a clean copy of the address; it is stored as the order's snapshot."""
    if not isinstance(address, dict):
        raise ValueError("shipping_address must be an object")
    clean = {}
    for key in ADDRESS_REQUIRED:
        value = str(address.get(key) or "").strip()
        if not value:
            raise ValueError(f"shipping_address.{key} required")
        clean[key] = value
    for key in ADDRESS_OPTIONAL:
        value = str(address.get(key) or "").strip()
        if value:
            clean[key] = value
    return clean
