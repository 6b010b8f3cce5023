"""
Access request models.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


AUTO_STUDENT_PROCESSOR = "auto_student"


class RequestStatus(Enum):
    """Lifecycle states of an access request."""
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class AccessRequestError(Exception):
    """An access request cannot be processed."""


class RequestNotFoundError(AccessRequestError):
    pass


class RequestAlreadyProcessedError(AccessRequestError):
    pass


class AccessRequestSubmission(BaseModel):
    """Payload a user submits to redeem an access code.

    Fields are accepted in snake_case or camelCase (``isStudent``, ``studentProofUrl``).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str = Field(min_length=1, description="The access code being redeemed")
    full_name: str = Field(default="", description="Requester's full name")
    username: str = Field(default="", description="Requester's display username")
    email: str = Field(default="", description="Contact email")
    use_account_email: bool = Field(default=False, description="Whether the account email is the contact email")
    phone: str = Field(default="", description="Contact phone number")
    reason: str = Field(default="", description="Why the user is requesting access")
    is_student: bool = Field(default=False, description="Whether the requester claims student status")
    student_proof_url: Optional[str] = Field(default=None, description="Reference to the uploaded proof of student status")

    @property
    def has_student_proof(self) -> bool:
        return bool(self.is_student and self.student_proof_url)


@dataclass
class AccessRequest:
    """A redemption of an access code awaiting or past admin review."""
    id: str
    user_id: str
    code_used: str
    code_tier: str
    status: str = RequestStatus.PENDING.value
    full_name: str = ""
    username: str = ""
    email: str = ""
    use_account_email: bool = False
    phone: str = ""
    reason: str = ""
    is_student: bool = False
    student_proof_url: Optional[str] = None
    denial_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    access_expires_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def to_dict(self) -> Dict[str, Any]:
        """Document representation for the store."""
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "username": self.username,
            "email": self.email,
            "use_account_email": self.use_account_email,
            "phone": self.phone,
            "reason": self.reason,
            "code_used": self.code_used,
            "code_tier": self.code_tier,
            "is_student": self.is_student,
            "student_proof_url": self.student_proof_url,
            "status": self.status,
            "denial_reason": self.denial_reason,
            "created_at": self.created_at,
            "processed_at": self.processed_at,
            "processed_by": self.processed_by,
            "access_expires_at": self.access_expires_at,
        }

    def to_json(self) -> Dict[str, Any]:
        data = self.to_dict()
        data["id"] = self.id
        for key in ("created_at", "processed_at", "access_expires_at"):
            value = data[key]
            data[key] = value.isoformat() if value else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessRequest":
        return cls(
            id=data.get("id", ""),
            user_id=data.get("user_id", ""),
            code_used=data.get("code_used", ""),
            code_tier=data.get("code_tier", ""),
            status=data.get("status", RequestStatus.PENDING.value),
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            email=data.get("email", ""),
            use_account_email=bool(data.get("use_account_email", False)),
            phone=data.get("phone", ""),
            reason=data.get("reason", ""),
            is_student=bool(data.get("is_student", False)),
            student_proof_url=data.get("student_proof_url"),
            denial_reason=data.get("denial_reason"),
            created_at=data.get("created_at"),
            processed_at=data.get("processed_at"),
            processed_by=data.get("processed_by"),
            access_expires_at=data.get("access_expires_at"),
        )


@dataclass
class SubmissionResult:
    """Result of redeeming an access code."""
    success: bool
    request_id: Optional[str] = None
    auto_approved: bool = False
    tier: Optional[str] = None
    error: Optional[str] = None
    internal_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "requestId": self.request_id,
            "autoApproved": self.auto_approved,
            "tier": self.tier,
        }
