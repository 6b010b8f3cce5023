"""
Quota management module for tier-based daily limits.
Supports Free, Plus, Pro and Ultimate tiers.
"""

from .models import UserTier, QuotaAction, QuotaResult, QuotaConfig, TierFeatures, get_tier_features
from .manager import QuotaManager

__all__ = [
    "UserTier",
    "QuotaAction",
    "QuotaResult",
    "QuotaConfig",
    "TierFeatures",
    "get_tier_features",
    "QuotaManager",
]
