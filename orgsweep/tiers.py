"""
Account quota resolution.

A tenant's subscription tier decides how many organization accounts one
crawl may cover. Tier lookup belongs to an external account service; the
orchestrator only depends on the ``TierResolver`` protocol.
"""

from typing import Dict, Optional, Protocol

from .constants import TIER_ACCOUNT_QUOTAS
from .enums import AccountTier
from .exceptions import TierResolutionError


def quota_for_tier(tier: AccountTier) -> Optional[int]:
    """Return the account quota for a tier; None means unlimited."""
    return TIER_ACCOUNT_QUOTAS.get(tier, TIER_ACCOUNT_QUOTAS[AccountTier.FREE])


class TierResolver(Protocol):
    def get_account_quota(self, tenant_id: str) -> Optional[int]:
        """
        Return how many accounts the tenant may crawl (None for unlimited).

        Raises:
            TierResolutionError: If the tenant's tier cannot be determined
        """
        ...


class StaticTierResolver:
    """Resolve tiers from a fixed mapping, with a default for unknown tenants."""

    def __init__(self, default_tier: AccountTier = AccountTier.FREE, tenant_tiers: Optional[Dict[str, AccountTier]] = None) -> None:
        self.default_tier = default_tier
        self.tenant_tiers = dict(tenant_tiers or {})

    def get_account_quota(self, tenant_id: str) -> Optional[int]:
        tier = self.tenant_tiers.get(tenant_id, self.default_tier)
        try:
            return quota_for_tier(AccountTier(tier))
        except ValueError as e:
            raise TierResolutionError(f"Unknown tier {tier!r} for tenant {tenant_id}") from e
