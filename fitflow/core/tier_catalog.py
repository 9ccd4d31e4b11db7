from typing import Dict, Optional, Mapping
import logging

from config.environment import Environment
from .models import SubscriptionTier

logger = logging.getLogger(__name__)


class TierCatalog:
    """Maps Stripe price IDs to subscription tiers.

    The table must be kept in sync by hand with the prices defined in Stripe.
    """

    def __init__(self, price_to_tier: Optional[Mapping[str, str]] = None):
        self._price_to_tier: Dict[str, SubscriptionTier] = {}
        for price_id, tier in (price_to_tier or {}).items():
            tier = SubscriptionTier(tier)
            if tier == SubscriptionTier.FREE:
                raise ValueError(f"Price {price_id} cannot map to the free tier")
            self._price_to_tier[price_id] = tier

    @classmethod
    def from_environment(cls) -> 'TierCatalog':
        """Build the catalog from STRIPE_<TIER>_PRICE_ID settings"""
        price_ids = Environment.get_price_ids()
        if not price_ids:
            logger.warning("Tier catalog is empty; no Stripe price IDs configured")
        return cls({price_id: tier for tier, price_id in price_ids.items()})

    def tier_for_price(self, price_id: Optional[str]) -> Optional[SubscriptionTier]:
        if not price_id:
            return None
        return self._price_to_tier.get(price_id)

    def price_for_tier(self, tier: str) -> Optional[str]:
        """Get the first price ID configured for a tier"""
        for price_id, mapped_tier in self._price_to_tier.items():
            if mapped_tier == tier:
                return price_id
        return None

    def __contains__(self, price_id: str) -> bool:
        return price_id in self._price_to_tier

    def __len__(self) -> int:
        return len(self._price_to_tier)
