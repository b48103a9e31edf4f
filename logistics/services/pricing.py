"""
Pricing Engine for the courier dashboard

Commission by district tier and package size, and the payment breakdown
between the recipient, the courier operator and the provider.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from django.conf import settings

from logistics.zones import DistrictZoneMap, PricingTier, default_zone_map

logger = logging.getLogger(__name__)

Number = Union[int, float, str, Decimal]


def round_currency(amount: Number) -> int:
    """
    Round to whole currency units, half-up.

    Example: 12.5 -> 13, 12.49 -> 12, -2.5 -> -3
    """
    return int(Decimal(str(amount)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AutoCommission:
    """Commission computed from district tier and package size."""


@dataclass(frozen=True)
class ManualCommission:
    """Commission fixed by an operator."""
    amount: int


CommissionPolicy = Union[AutoCommission, ManualCommission]


@dataclass(frozen=True)
class PaymentBreakdown:
    provider_payout: int
    commission: int
    total_charged: int


class PricingEngine:
    """
    Commission calculation engine.

    Formula: Commission = TierBase(district) + (OversizedSurcharge if oversized)
    Tiers: high 15 / mid 13 / base 10, surcharge 5 (settings override)
    """

    def __init__(self, zone_map: Optional[DistrictZoneMap] = None):
        self.zone_map = zone_map or default_zone_map
        self.tier_amounts = {
            PricingTier.HIGH: settings.COMMISSION_HIGH,
            PricingTier.MID: settings.COMMISSION_MID,
            PricingTier.BASE: settings.COMMISSION_BASE,
        }
        self.oversized_surcharge = settings.COMMISSION_OVERSIZED_SURCHARGE

    def compute_commission(self, district: Optional[str], is_oversized: bool) -> int:
        tier = self.zone_map.tier_for(district)
        commission = self.tier_amounts[tier]
        if is_oversized:
            commission += self.oversized_surcharge
        return round_currency(commission)

    def resolve_commission(self, policy: CommissionPolicy, district: Optional[str],
                           is_oversized: bool) -> int:
        """Stored commission for a policy. Manual amounts are only rounded."""
        if isinstance(policy, ManualCommission):
            amount = round_currency(policy.amount)
            if amount < 0:
                raise ValueError("La comisión no puede ser negativa")
            return amount
        return self.compute_commission(district, is_oversized)

    def compute_payment_breakdown(self, total_charged: Number, commission: Number) -> PaymentBreakdown:
        """
        provider_payout = total_charged - commission, rounded to whole units.

        A negative payout is returned as-is; callers flag it as a data
        quality condition.
        """
        total = round_currency(total_charged)
        fee = round_currency(commission)
        return PaymentBreakdown(
            provider_payout=total - fee,
            commission=fee,
            total_charged=total,
        )
