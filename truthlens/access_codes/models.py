"""
Data models for access codes and their validation results.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


# User-facing reasons, in the order the validator checks them
REASON_INVALID = "Invalid or inactive access code"
REASON_EXPIRED = "This access code has expired"
REASON_USAGE_LIMIT = "This access code has reached its usage limit"
REASON_INTERNAL = "Internal validation error"


class AccessCodeTier(Enum):
    """Tiers an access code can grant."""
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


class AccessCodeType(Enum):
    """Category tag of an access code."""
    STUDENT = "student"
    GENERAL = "general"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            cls(value)
            return True
        except ValueError:
            return False


def canonicalize_code(code: str) -> str:
    """Codes are case-insensitive and stored uppercase."""
    return code.upper()


@dataclass
class AccessCode:
    """A redeemable code granting a tier."""
    id: str
    code: str
    tier: str
    type: str
    usage_limit: int = 0  # 0 or negative means unlimited
    used_count: int = 0
    expires_at: Optional[datetime] = None
    active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_unlimited(self) -> bool:
        return self.usage_limit <= 0

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def is_exhausted(self) -> bool:
        return not self.is_unlimited and self.used_count >= self.usage_limit

    def to_dict(self) -> Dict[str, Any]:
        """Document representation for the store."""
        return {
            "code": self.code,
            "tier": self.tier,
            "type": self.type,
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "expires_at": self.expires_at,
            "active": self.active,
            "created_by": self.created_by,
            "created_at": self.created_at,
        }

    def to_admin_dict(self) -> Dict[str, Any]:
        """JSON representation for the admin console."""
        return {
            "id": self.id,
            "code": self.code,
            "tier": self.tier,
            "type": self.type,
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "active": self.active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessCode":
        return cls(
            id=data.get("id", ""),
            code=data.get("code", ""),
            tier=data.get("tier", ""),
            type=data.get("type", AccessCodeType.GENERAL.value),
            usage_limit=int(data.get("usage_limit") or 0),
            used_count=int(data.get("used_count") or 0),
            expires_at=data.get("expires_at"),
            active=bool(data.get("active", False)),
            created_by=data.get("created_by"),
            created_at=data.get("created_at"),
        )


@dataclass
class ValidationResult:
    """Outcome of validating a submitted code.

    A valid result carries only what callers need (id, code, tier, type);
    administrative metadata is never exposed.
    """
    valid: bool
    reason: Optional[str] = None
    code_id: Optional[str] = None
    code: Optional[str] = None
    tier: Optional[str] = None
    type: Optional[str] = None
    internal_error: bool = False

    @classmethod
    def success(cls, access_code: AccessCode) -> "ValidationResult":
        return cls(
            valid=True,
            code_id=access_code.id,
            code=access_code.code,
            tier=access_code.tier,
            type=access_code.type,
        )

    @classmethod
    def failure(cls, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason)

    @classmethod
    def internal(cls) -> "ValidationResult":
        return cls(valid=False, reason=REASON_INTERNAL, internal_error=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the validate endpoint's response body."""
        if not self.valid:
            return {"valid": False, "error": self.reason}
        return {
            "valid": True,
            "codeData": {
                "id": self.code_id,
                "code": self.code,
                "tier": self.tier,
                "type": self.type,
            },
        }
