"""
User subscription and notification models.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


DEFAULT_TIER = "free"


class NotificationType(Enum):
    """Kinds of notifications written to a user's inbox."""
    ACCESS_APPROVED = "access_approved"
    ACCESS_DENIED = "access_denied"


@dataclass
class UserSubscription:
    """Subscription state stored on the user document."""
    tier: str = DEFAULT_TIER
    free_access_granted: bool = False
    free_access_expires_at: Optional[datetime] = None
    original_tier: Optional[str] = None

    def grant_expired(self, now: datetime) -> bool:
        """True when a free-access grant exists and has run out."""
        return (
            self.free_access_granted
            and self.free_access_expires_at is not None
            and self.free_access_expires_at < now
        )

    def effective_tier(self, now: datetime) -> str:
        if self.grant_expired(now):
            return self.original_tier or DEFAULT_TIER
        return self.tier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "free_access_granted": self.free_access_granted,
            "free_access_expires_at": self.free_access_expires_at,
            "original_tier": self.original_tier,
        }

    def to_json(self) -> Dict[str, Any]:
        data = self.to_dict()
        if self.free_access_expires_at:
            data["free_access_expires_at"] = self.free_access_expires_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserSubscription":
        data = data or {}
        return cls(
            tier=data.get("tier") or DEFAULT_TIER,
            free_access_granted=bool(data.get("free_access_granted", False)),
            free_access_expires_at=data.get("free_access_expires_at"),
            original_tier=data.get("original_tier"),
        )


@dataclass
class UserNotification:
    """A message shown in the user's notification menu."""
    id: str
    user_id: str
    type: str
    title: str
    message: str
    read: bool = False
    created_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "read": self.read,
            "created_at": self.created_at,
            "metadata": self.metadata,
        }

    def to_json(self) -> Dict[str, Any]:
        data = self.to_dict()
        data["id"] = self.id
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserNotification":
        return cls(
            id=data.get("id", ""),
            user_id=data.get("user_id", ""),
            type=data.get("type", ""),
            title=data.get("title", ""),
            message=data.get("message", ""),
            read=bool(data.get("read", False)),
            created_at=data.get("created_at"),
            metadata=data.get("metadata") or {},
        )
