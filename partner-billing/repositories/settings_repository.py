"""
Settings repository for reading billing configuration.

Fetches the system settings document and extracts the values the billing
engine looks at: tax rate, currency and the default lead prices found under
`pricing.<serviceType>.<partnerType>.perLeadPrice`.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping, Tuple

from domain.lead import ServiceType
from domain.partner import PartnerType
from domain.settings import BillingSettings
from repositories.client import request_json, unwrap
from repositories.serialization import optional_decimal


def _parse_lead_prices(pricing: Any) -> Dict[Tuple[ServiceType, PartnerType], Decimal]:
    if not isinstance(pricing, Mapping):
        return {}

    prices: Dict[Tuple[ServiceType, PartnerType], Decimal] = {}
    for service_type in ServiceType:
        by_partner_type = pricing.get(service_type.value)
        if not isinstance(by_partner_type, Mapping):
            continue
        for partner_type in PartnerType:
            entry = by_partner_type.get(partner_type.value)
            if not isinstance(entry, Mapping):
                continue
            price = optional_decimal(entry.get("perLeadPrice"))
            if price is not None:
                prices[(service_type, partner_type)] = price
    return prices


def _row_to_settings(row: Mapping[str, Any]) -> BillingSettings:
    system = row.get("system") or {}
    return BillingSettings(
        tax_rate_percent=optional_decimal(system.get("taxRate")),
        currency=str(system.get("currency") or "EUR"),
        lead_prices=_parse_lead_prices(row.get("pricing")),
    )


def get_billing_settings() -> BillingSettings:
    """
    Get the current billing settings.

    Example:
        settings = get_billing_settings()
        settings.tax_rate_percent
        # Decimal('19')
        settings.default_lead_price(ServiceType.MOVING, PartnerType.BASIC)
        # Decimal('25')
    """

    body = request_json("GET", "/settings")
    return _row_to_settings(unwrap(body, "settings"))


__all__ = ["get_billing_settings"]
