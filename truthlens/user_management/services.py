"""
User services: authentication from cookies, admin checks, subscriptions and
notifications.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from flask import request

from truthlens.store import DocumentStore
from truthlens.utils import ensure_aware, now_local
from .models import UserSubscription, UserNotification, DEFAULT_TIER

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
NOTIFICATIONS_COLLECTION = "notifications"


class UserService:
    """Service for user identity, subscriptions and notifications."""

    def __init__(
        self,
        store: DocumentStore,
        admin_user_ids: List[str],
        clock: Callable[[], datetime] = now_local,
    ):
        self.store = store
        self.admin_user_ids = admin_user_ids
        self.clock = clock

    # =====================
    # Identity
    # =====================

    def get_current_user_id(self) -> Optional[str]:
        """Get the current user ID from cookies."""
        uid = request.cookies.get("uid")
        return uid.strip() if uid and uid.strip() else None

    def is_authenticated(self) -> bool:
        return bool(self.get_current_user_id())

    def is_admin_user(self, uid: Optional[str]) -> bool:
        """Check if the user is an admin based on configuration."""
        return bool(uid) and uid.strip() in self.admin_user_ids

    def require_auth_json(self) -> tuple[Optional[str], Optional[dict]]:
        """Require authentication for JSON endpoints, return error if not authenticated."""
        uid = self.get_current_user_id()
        if not uid:
            return None, {"error": "no-uid"}
        return uid, None

    def require_admin_json(self) -> tuple[Optional[str], Optional[dict], int]:
        """Require an admin caller. Returns (uid, error, status_code)."""
        uid, error = self.require_auth_json()
        if error:
            return None, error, 401
        if not self.is_admin_user(uid):
            return None, {"error": "forbidden"}, 403
        return uid, None, 200

    # =====================
    # Subscriptions
    # =====================

    def get_subscription(self, uid: str) -> UserSubscription:
        doc = self.store.get(USERS_COLLECTION, uid)
        return UserSubscription.from_dict(doc.get("subscription") if doc else None)

    def _save_subscription(self, uid: str, subscription: UserSubscription) -> None:
        self.store.update(USERS_COLLECTION, uid, {"subscription": subscription.to_dict()}, upsert=True)

    def get_effective_tier(self, uid: Optional[str]) -> str:
        """
        Tier used for feature gating.

        An expired free-access grant is reverted to the tier the user had
        before the grant, and the reversion is persisted.
        """
        if not uid:
            return DEFAULT_TIER
        subscription = self.get_subscription(uid)
        if subscription.grant_expired(self.clock()):
            reverted = UserSubscription(tier=subscription.original_tier or DEFAULT_TIER)
            self._save_subscription(uid, reverted)
            logger.info(f"Free access expired for {uid}, reverted to {reverted.tier}")
            return reverted.tier
        return subscription.tier

    def set_tier(self, uid: str, tier: str) -> UserSubscription:
        """Set a user's tier directly (admin)."""
        subscription = self.get_subscription(uid)
        subscription.tier = tier
        self._save_subscription(uid, subscription)
        logger.info(f"Set tier for {uid}: {tier}")
        return subscription

    def grant_free_access(self, uid: str, tier: str, expires_at: datetime) -> UserSubscription:
        """Upgrade a user until ``expires_at``, remembering the tier to revert to."""
        current = self.get_subscription(uid)
        # Keep the pre-grant tier across repeated grants
        original_tier = current.original_tier if current.free_access_granted else current.tier
        subscription = UserSubscription(
            tier=tier,
            free_access_granted=True,
            free_access_expires_at=ensure_aware(expires_at),
            original_tier=original_tier or DEFAULT_TIER,
        )
        self._save_subscription(uid, subscription)
        logger.info(f"Granted {tier} to {uid} until {expires_at.isoformat()}")
        return subscription

    # =====================
    # Notifications
    # =====================

    def notify(
        self,
        uid: str,
        notification_type: str,
        title: str,
        message: str,
        metadata: Optional[dict] = None,
    ) -> UserNotification:
        notification = UserNotification(
            id="",
            user_id=uid,
            type=notification_type,
            title=title,
            message=message,
            read=False,
            created_at=self.clock(),
            metadata=metadata or {},
        )
        notification.id = self.store.add(NOTIFICATIONS_COLLECTION, notification.to_dict())
        return notification

    def list_notifications(self, uid: str) -> List[UserNotification]:
        docs = self.store.query(
            NOTIFICATIONS_COLLECTION,
            filters=[("user_id", "==", uid)],
            order_by="created_at",
            descending=True,
        )
        return [UserNotification.from_dict(d) for d in docs]

    def mark_notification_read(self, uid: str, notification_id: str) -> bool:
        """Mark one of the user's notifications as read. False if not theirs or missing."""
        doc = self.store.get(NOTIFICATIONS_COLLECTION, notification_id)
        if not doc or doc.get("user_id") != uid:
            return False
        self.store.update(NOTIFICATIONS_COLLECTION, notification_id, {"read": True})
        return True
