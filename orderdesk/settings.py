"""Typed store settings, one dataclass per settings domain.

Each domain is persisted as one ``store_setting`` row (key -> JSON value) and
validated by ``from_dict`` whenever it is loaded or saved.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, fields
from decimal import Decimal
from typing import Any, Dict, Optional

from .utils.money import MAX_MONEY, to_decimal

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _reject_unknown(cls, data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.KEY} settings: {', '.join(unknown)}")


def _non_negative(data: Dict[str, Any], name: str, default: Decimal) -> Decimal:
    raw = data.get(name, default)
    value = to_decimal(raw, name)
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    if value >= MAX_MONEY:
        raise ValueError(f"{name} must be below {MAX_MONEY}")
    return value


def _text(data: Dict[str, Any], name: str) -> Optional[str]:
    raw = data.get(name)
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


@dataclass(frozen=True)
class CheckoutSettings:
    KEY = "checkout"

    cod_enabled: bool = True
    min_order_value: Decimal = Decimal("0")
    free_shipping_threshold: Decimal = Decimal("500")
    default_shipping_charge: Decimal = Decimal("50")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CheckoutSettings":
        data = dict(data or {})
        _reject_unknown(cls, data)
        cod_enabled = data.get("cod_enabled", True)
        if not isinstance(cod_enabled, bool):
            raise ValueError("cod_enabled must be true or false")
        return cls(
            cod_enabled=cod_enabled,
            min_order_value=_non_negative(data, "min_order_value", cls.min_order_value),
            free_shipping_threshold=_non_negative(data, "free_shipping_threshold", cls.free_shipping_threshold),
            default_shipping_charge=_non_negative(data, "default_shipping_charge", cls.default_shipping_charge),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cod_enabled": self.cod_enabled,
            "min_order_value": str(self.min_order_value),
            "free_shipping_threshold": str(self.free_shipping_threshold),
            "default_shipping_charge": str(self.default_shipping_charge),
        }


@dataclass(frozen=True)
class StoreInfo:
    KEY = "store_info"

    name: str = "My Store"
    tagline: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StoreInfo":
        data = dict(data or {})
        _reject_unknown(cls, data)
        name = _text(data, "name") or cls.name
        email = _text(data, "contact_email")
        if email and not _EMAIL_RE.match(email):
            raise ValueError(f"Invalid contact_email: {email}")
        return cls(
            name=name,
            tagline=_text(data, "tagline"),
            contact_email=email,
            contact_phone=_text(data, "contact_phone"),
            address=_text(data, "address"),
            gstin=_text(data, "gstin"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SETTINGS_DOMAINS = {
    CheckoutSettings.KEY: CheckoutSettings,
    StoreInfo.KEY: StoreInfo,
}
