"""Storefront settings, read from the domain configuration.

Both domains load ``src/domain.toml``: top-level keys, then the table named
after ``PROTEAN_ENV`` (``[test]``, ``[production]`` ...), with ``${VAR|default}``
placeholders resolved from the environment. Application keys live under
``[custom]`` and the gateway merchant under ``[custom.vnpay]``.

``Settings.from_domain`` turns that raw mapping into an immutable object
that is handed to the application explicitly.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal

from shared.money import to_money

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GatewaySettings:
    """VNPay merchant configuration."""

    tmn_code: str = "DEMOTMN1"
    hash_secret: str = "change-me"
    url: str = "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html"
    return_url: str = "http://localhost:8000/payments/vnpay-return"
    ipn_url: str = "http://localhost:8000/payments/vnpay-ipn"
    currency_code: str = "VND"
    locale: str = "vn"
    version: str = "2.1.0"
    # The gateway transmits amounts multiplied by this factor.
    amount_scale: int = 100
    amount_tolerance: Decimal = Decimal("0.01")
    # Gateway timestamps are local time at this fixed UTC offset.
    utc_offset_hours: int = 7

    @classmethod
    def from_mapping(cls, raw) -> "GatewaySettings":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (raw or {}).items() if k in known}
        if "amount_tolerance" in values:
            values["amount_tolerance"] = to_money(values["amount_tolerance"])
        for name in ("amount_scale", "utc_offset_hours"):
            if name in values:
                values[name] = int(values[name])
        return cls(**values)


@dataclass(frozen=True)
class Settings:
    env: str = "development"
    database_url: str = "sqlite:///storefront.db"
    database_echo: bool = False
    default_shipping_fee: Decimal = Decimal("5.00")
    frontend_url: str = "http://localhost:5173"
    gateway: GatewaySettings = field(default_factory=GatewaySettings)

    @classmethod
    def from_domain(cls, domain) -> "Settings":
        """Settings of an initialized-or-not ``Domain`` (config is loaded on construction)."""
        custom = dict(domain.config.get("custom") or {})
        values = {}
        for name in ("database_url", "frontend_url"):
            if custom.get(name):
                values[name] = custom[name]
        if "database_echo" in custom:
            values["database_echo"] = _as_bool(custom["database_echo"])
        if custom.get("default_shipping_fee") is not None:
            values["default_shipping_fee"] = to_money(custom["default_shipping_fee"])

        return cls(
            env=(domain.config.get("env") or "development").lower(),
            gateway=GatewaySettings.from_mapping(custom.get("vnpay")),
            **values,
        )


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE
