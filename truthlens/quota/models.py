"""
Data models for tier features and daily quota checks.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Union


UNLIMITED = -1  # limit sentinel
UNLIMITED_REMAINING = 9999  # reported remaining count for unlimited tiers


class UserTier(Enum):
    """Subscription tiers."""
    FREE = "free"
    PLUS = "plus"
    PRO = "pro"
    ULTIMATE = "ultimate"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            cls(value)
            return True
        except ValueError:
            return False

    @classmethod
    def resolve(cls, value: Union["UserTier", str, None]) -> "UserTier":
        """Map a tier name to a tier; unknown names fall back to FREE."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.FREE


class QuotaAction(Enum):
    """Rate-limited actions recorded in the per-user history."""
    SCAN = "scan"
    AI_CHAT = "ai_chat"


@dataclass(frozen=True)
class TierFeatures:
    """Feature limits for a tier. -1 means unlimited."""
    daily_scan_limit: int
    multi_scan_limit: int
    history_limit: int
    recommendation_limit: int
    ai_chat_limit: int
    product_compare: int
    ai_truth_detector: bool = False
    pc_builder: bool = False

    def limit_for(self, action: QuotaAction) -> int:
        if action == QuotaAction.AI_CHAT:
            return self.ai_chat_limit
        return self.daily_scan_limit


TIER_CONFIG: Dict[UserTier, TierFeatures] = {
    UserTier.FREE: TierFeatures(
        daily_scan_limit=5,
        multi_scan_limit=1,
        history_limit=10,
        recommendation_limit=3,
        ai_chat_limit=0,
        product_compare=0,
    ),
    UserTier.PLUS: TierFeatures(
        daily_scan_limit=20,
        multi_scan_limit=3,
        history_limit=50,
        recommendation_limit=10,
        ai_chat_limit=10,
        product_compare=2,
    ),
    UserTier.PRO: TierFeatures(
        daily_scan_limit=UNLIMITED,
        multi_scan_limit=10,
        history_limit=UNLIMITED,
        recommendation_limit=UNLIMITED,
        ai_chat_limit=UNLIMITED,
        product_compare=5,
        ai_truth_detector=True,
        pc_builder=True,
    ),
    UserTier.ULTIMATE: TierFeatures(
        daily_scan_limit=UNLIMITED,
        multi_scan_limit=99,
        history_limit=UNLIMITED,
        recommendation_limit=UNLIMITED,
        ai_chat_limit=UNLIMITED,
        product_compare=UNLIMITED,
        ai_truth_detector=True,
        pc_builder=True,
    ),
}


def get_tier_features(tier: Union[UserTier, str, None]) -> TierFeatures:
    return TIER_CONFIG[UserTier.resolve(tier)]


@dataclass
class QuotaResult:
    """Result of a quota check operation."""
    allowed: bool
    remaining: int
    limit: Optional[int]  # None for unlimited tiers
    tier: UserTier = UserTier.FREE
    reason: Optional[str] = None  # "daily_limit", "quota_unavailable"
    message: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "limit": self.limit,
            "tier": self.tier.value,
            "reason": self.reason,
            "message": self.message,
        }


@dataclass
class QuotaConfig:
    """Configuration for quota checks."""
    fail_open: bool = True
    # Per-tier overrides of the daily scan limit, e.g. {"free": 3}
    daily_scan_limits: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "QuotaConfig":
        return cls(
            fail_open=data.get("fail_open", True),
            daily_scan_limits=data.get("daily_scan_limits", {}),
        )
