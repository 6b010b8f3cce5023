"""
Quota manager for tier-based daily limits on rate-limited actions.
"""

import logging
from datetime import datetime
from threading import Lock
from typing import Callable, Optional, Tuple, Union

from truthlens.store import DocumentStore, StoreError
from truthlens.utils import now_local, start_of_day
from .models import (
    UserTier,
    QuotaAction,
    QuotaResult,
    QuotaConfig,
    UNLIMITED,
    UNLIMITED_REMAINING,
    get_tier_features,
)

logger = logging.getLogger(__name__)

HISTORY_COLLECTION = "history"


class QuotaManager:
    """
    Decides whether a user may perform another rate-limited action today.

    Usage is the number of history entries of the action type the user has
    created since local midnight. Limits come from the tier table, with
    optional per-tier overrides for scans from ``QuotaConfig``.

    When the count cannot be read the manager fails open by default
    (``allowed=True, remaining=1``); set ``QuotaConfig.fail_open`` to False
    to deny instead.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: QuotaConfig,
        clock: Callable[[], datetime] = now_local,
    ):
        self.store = store
        self.config = config
        self.clock = clock
        self._lock = Lock()

    def get_limit(self, tier: Union[UserTier, str], action: QuotaAction = QuotaAction.SCAN) -> int:
        """Daily limit for a tier, or -1 for unlimited."""
        tier = UserTier.resolve(tier)
        if action == QuotaAction.SCAN and tier.value in self.config.daily_scan_limits:
            return int(self.config.daily_scan_limits[tier.value])
        return get_tier_features(tier).limit_for(action)

    def count_today(self, user_id: str, action: QuotaAction = QuotaAction.SCAN) -> int:
        """Number of actions recorded for the user since local midnight."""
        return self.store.count(
            HISTORY_COLLECTION,
            filters=[
                ("user_id", "==", user_id),
                ("type", "==", action.value),
                ("created_at", ">=", start_of_day(self.clock())),
            ],
        )

    def check_limit(
        self,
        user_id: str,
        tier: Union[UserTier, str],
        action: QuotaAction = QuotaAction.SCAN,
    ) -> QuotaResult:
        """
        Check the user's remaining quota without consuming it.

        Args:
            user_id: User identifier
            tier: The user's effective tier
            action: Which rate-limited action to check

        Returns:
            QuotaResult with allowed, remaining and limit (None when unlimited)
        """
        tier = UserTier.resolve(tier)
        limit = self.get_limit(tier, action)

        if limit == UNLIMITED:
            return QuotaResult(
                allowed=True,
                remaining=UNLIMITED_REMAINING,
                limit=None,
                tier=tier,
                message=self.get_limit_message(tier, UNLIMITED_REMAINING, action),
            )

        try:
            count = self.count_today(user_id, action)
        except StoreError as e:
            logger.error(f"Error checking {action.value} limit for {user_id}: {e}")
            if self.config.fail_open:
                return QuotaResult(allowed=True, remaining=1, limit=limit, tier=tier)
            return QuotaResult(
                allowed=False,
                remaining=0,
                limit=limit,
                tier=tier,
                reason="quota_unavailable",
                message="Quota service unavailable, please try again later",
            )

        remaining = max(0, limit - count)
        allowed = count < limit
        logger.info(f"Quota check: uid={user_id}, tier={tier.value}, action={action.value}, used={count}/{limit}")

        return QuotaResult(
            allowed=allowed,
            remaining=remaining,
            limit=limit,
            tier=tier,
            reason=None if allowed else "daily_limit",
            message=self.get_limit_message(tier, remaining, action),
        )

    def record_action(
        self,
        user_id: str,
        action: QuotaAction = QuotaAction.SCAN,
        payload: Optional[dict] = None,
    ) -> str:
        """Append an entry to the user's action history. Returns its id."""
        entry_id = self.store.add(
            HISTORY_COLLECTION,
            {
                "user_id": user_id,
                "type": action.value,
                "created_at": self.clock(),
                "payload": payload or {},
            },
        )
        logger.info(f"Recorded {action.value} for {user_id}")
        return entry_id

    def consume(
        self,
        user_id: str,
        tier: Union[UserTier, str],
        action: QuotaAction = QuotaAction.SCAN,
        payload: Optional[dict] = None,
    ) -> Tuple[QuotaResult, Optional[str]]:
        """
        Check the quota and, if allowed, record the action in one step.

        Concurrent callers are serialized so a burst of requests cannot
        record more actions than the daily limit.

        Returns:
            The pre-consumption QuotaResult and the new history entry id,
            or None as the id when the action was not allowed
        """
        with self._lock:
            result = self.check_limit(user_id, tier, action)
            if not result.allowed:
                return result, None
            return result, self.record_action(user_id, action, payload)

    def get_limit_message(
        self,
        tier: Union[UserTier, str],
        remaining: int,
        action: QuotaAction = QuotaAction.SCAN,
    ) -> str:
        """Human-readable remaining-quota message."""
        noun = "scan" if action == QuotaAction.SCAN else "message"
        if self.get_limit(tier, action) == UNLIMITED:
            return f"Unlimited {noun}s"
        if remaining == 0:
            return "Daily limit reached"
        return f"{remaining} daily {noun}{'' if remaining == 1 else 's'} remaining"
