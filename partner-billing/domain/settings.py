"""
Domain: Billing settings read from the settings store.

Only the values the billing engine looks at are modelled here. Invoice
generation keeps its fixed tax rate; the configured rate is only compared
against it so a mismatch is visible.

Default lead prices are configured per service type and partner type. They are
what the lead store records as an assignment's leadPrice when it is accepted;
an assignment without a recorded price still bills at the fallback unit price.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Tuple

from .invoice import TAX_RATE
from .lead import ServiceType
from .partner import PartnerType


@dataclass(frozen=True, slots=True)
class BillingSettings:
    tax_rate_percent: Optional[Decimal] = None
    currency: str = "EUR"
    lead_prices: Mapping[Tuple[ServiceType, PartnerType], Decimal] = field(default_factory=dict)

    def tax_rate_differs_from_fixed(self) -> bool:
        """True when a configured tax rate exists and is not the fixed invoice rate."""

        if self.tax_rate_percent is None:
            return False
        return self.tax_rate_percent / Decimal("100") != TAX_RATE

    def default_lead_price(self, service_type: ServiceType, partner_type: PartnerType) -> Optional[Decimal]:
        """
        Configured per-lead price for a service and partner type.

        Example:
            settings.default_lead_price(ServiceType.MOVING, PartnerType.EXCLUSIVE)
            # Decimal('45'), or None when nothing is configured
        """

        return self.lead_prices.get((service_type, partner_type))
