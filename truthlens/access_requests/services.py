"""
Access request service: code redemption and admin review.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from truthlens.access_codes.models import REASON_USAGE_LIMIT
from truthlens.access_codes.repository import AccessCodeRepository
from truthlens.access_codes.validator import AccessCodeValidator
from truthlens.store import DocumentStore, DocumentNotFoundError, StoreError
from truthlens.user_management.models import NotificationType
from truthlens.user_management.services import UserService
from truthlens.utils import add_months, now_local
from .models import (
    AccessRequest,
    AccessRequestSubmission,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
    RequestStatus,
    SubmissionResult,
    AUTO_STUDENT_PROCESSOR,
)

logger = logging.getLogger(__name__)

ACCESS_REQUESTS_COLLECTION = "access_requests"


class AccessRequestService:
    """Main service for redeeming access codes and reviewing requests."""

    def __init__(
        self,
        store: DocumentStore,
        repository: AccessCodeRepository,
        validator: AccessCodeValidator,
        user_service: UserService,
        access_duration_months: int = 3,
        clock: Callable[[], datetime] = now_local,
    ):
        self.store = store
        self.repository = repository
        self.validator = validator
        self.user_service = user_service
        self.access_duration_months = access_duration_months
        self.clock = clock

    def submit(self, user_id: str, submission: AccessRequestSubmission) -> SubmissionResult:
        """
        Redeem an access code by creating an access request.

        The code is re-validated, the request is written, and only then is a
        use of the code consumed with a conditional increment. If another
        redemption took the last use in the meantime, the new request is
        removed again and the submission fails with the usage-limit reason.

        Students who attach proof are approved immediately.
        """
        result, access_code = self.validator.resolve(submission.code)
        if not result.valid:
            return SubmissionResult(
                success=False,
                error=result.reason,
                internal_error=result.internal_error,
            )

        now = self.clock()
        auto_approved = submission.has_student_proof
        expires_at = add_months(now, self.access_duration_months) if auto_approved else None

        access_request = AccessRequest(
            id="",
            user_id=user_id,
            code_used=access_code.code,
            code_tier=access_code.tier,
            status=(RequestStatus.APPROVED if auto_approved else RequestStatus.PENDING).value,
            full_name=submission.full_name,
            username=submission.username,
            email=submission.email,
            use_account_email=submission.use_account_email,
            phone=submission.phone,
            reason=submission.reason,
            is_student=submission.is_student,
            student_proof_url=submission.student_proof_url,
            created_at=now,
            processed_at=now if auto_approved else None,
            processed_by=AUTO_STUDENT_PROCESSOR if auto_approved else None,
            access_expires_at=expires_at,
        )

        request_id = None
        try:
            request_id = self.store.add(ACCESS_REQUESTS_COLLECTION, access_request.to_dict())
            consumed = self.repository.increment_usage(access_code.id, access_code.usage_limit)
        except StoreError as e:
            logger.error(f"Access request submission failed for {user_id}: {e}")
            if request_id:
                self._discard(request_id)
            return SubmissionResult(success=False, error="Submission failed", internal_error=True)

        if not consumed:
            self._discard(request_id)
            return SubmissionResult(success=False, error=REASON_USAGE_LIMIT)

        access_request.id = request_id
        logger.info(
            f"Access request {request_id} by {user_id} for {access_code.code} "
            f"({'auto-approved' if auto_approved else 'pending'})"
        )

        if auto_approved:
            try:
                self.user_service.grant_free_access(user_id, access_code.tier, expires_at)
            except StoreError as e:
                # Undo the redemption so the code use is not lost
                logger.error(f"Auto-approval grant failed for {user_id}, rolling back {request_id}: {e}")
                self._discard(request_id)
                self._release(access_code.id)
                return SubmissionResult(success=False, error="Submission failed", internal_error=True)

            self._notify_approved(
                access_request,
                expires_at,
                title="🎉 Student Access Granted!",
                message=(
                    f"Your student verification was approved! You now have "
                    f"{access_code.tier.upper()} access for {self.access_duration_months} months."
                ),
            )

        return SubmissionResult(
            success=True,
            request_id=request_id,
            auto_approved=auto_approved,
            tier=access_code.tier,
        )

    def _discard(self, request_id: str) -> None:
        try:
            self.store.delete(ACCESS_REQUESTS_COLLECTION, request_id)
        except StoreError as e:
            logger.error(f"Failed to discard access request {request_id}: {e}")

    def _release(self, code_id: str) -> None:
        try:
            self.repository.release_usage(code_id)
        except StoreError as e:
            logger.error(f"Failed to release a use of access code {code_id}: {e}")

    def _notify_approved(self, access_request: AccessRequest, expires_at: datetime, title: str, message: str) -> None:
        """Tell the requester about a committed approval."""
        try:
            self.user_service.notify(
                access_request.user_id,
                NotificationType.ACCESS_APPROVED.value,
                title,
                message,
                metadata={
                    "request_id": access_request.id,
                    "tier": access_request.code_tier,
                    "expires_at": expires_at.isoformat(),
                },
            )
        except StoreError as e:
            logger.warning(f"Approval notification for {access_request.id} not delivered: {e}")

    # =====================
    # Admin review
    # =====================

    def get(self, request_id: str) -> Optional[AccessRequest]:
        doc = self.store.get(ACCESS_REQUESTS_COLLECTION, request_id)
        return AccessRequest.from_dict(doc) if doc else None

    def _process(self, request_id: str, changes: dict) -> AccessRequest:
        """Apply a pending -> processed transition exactly once."""
        try:
            doc = self.store.update_if(
                ACCESS_REQUESTS_COLLECTION,
                request_id,
                expected={"status": RequestStatus.PENDING.value},
                changes=changes,
            )
        except DocumentNotFoundError:
            raise RequestNotFoundError(f"Access request {request_id} not found")
        if doc is None:
            current = self.get(request_id)
            status = current.status if current else "processed"
            raise RequestAlreadyProcessedError(f"Access request {request_id} is already {status}")
        return AccessRequest.from_dict(doc)

    def approve(self, request_id: str, admin_id: str) -> AccessRequest:
        """
        Approve a pending request and upgrade the user's tier.

        Raises:
            RequestNotFoundError: If the request does not exist
            RequestAlreadyProcessedError: If the request is not pending
        """
        now = self.clock()
        expires_at = add_months(now, self.access_duration_months)

        approved = self._process(request_id, {
            "status": RequestStatus.APPROVED.value,
            "processed_at": now,
            "processed_by": admin_id,
            "access_expires_at": expires_at,
        })

        try:
            self.user_service.grant_free_access(approved.user_id, approved.code_tier, expires_at)
        except StoreError:
            # Put the request back in the queue so it can be approved again
            self.store.update_if(
                ACCESS_REQUESTS_COLLECTION,
                request_id,
                expected={"status": RequestStatus.APPROVED.value, "processed_by": admin_id},
                changes={
                    "status": RequestStatus.PENDING.value,
                    "processed_at": None,
                    "processed_by": None,
                    "access_expires_at": None,
                },
            )
            raise

        self._notify_approved(
            approved,
            expires_at,
            title="🎉 Free Access Approved!",
            message=(
                f"Your request for free access has been approved! You now have "
                f"{approved.code_tier.upper()} access for {self.access_duration_months} months."
            ),
        )
        logger.info(f"Access request {request_id} approved by {admin_id}")
        return approved

    def deny(self, request_id: str, admin_id: str, reason: str) -> AccessRequest:
        """
        Deny a pending request with a reason shown to the user.

        Raises:
            ValueError: If no reason is given
            RequestNotFoundError: If the request does not exist
            RequestAlreadyProcessedError: If the request is not pending
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValueError("A denial reason is required")

        denied = self._process(request_id, {
            "status": RequestStatus.DENIED.value,
            "denial_reason": reason,
            "processed_at": self.clock(),
            "processed_by": admin_id,
        })

        self.user_service.notify(
            denied.user_id,
            NotificationType.ACCESS_DENIED.value,
            "❌ Free Access Request Denied",
            f"Your request for free access was not approved. Reason: {reason}",
            metadata={"request_id": request_id},
        )
        logger.info(f"Access request {request_id} denied by {admin_id}")
        return denied

    def list_all(self, status: Optional[str] = None) -> List[AccessRequest]:
        """All requests newest first, optionally filtered by status."""
        filters = [("status", "==", status)] if status else []
        docs = self.store.query(
            ACCESS_REQUESTS_COLLECTION,
            filters=filters,
            order_by="created_at",
            descending=True,
        )
        return [AccessRequest.from_dict(d) for d in docs]

    def list_pending(self) -> List[AccessRequest]:
        return self.list_all(RequestStatus.PENDING.value)

    def list_for_user(self, user_id: str) -> List[AccessRequest]:
        docs = self.store.query(
            ACCESS_REQUESTS_COLLECTION,
            filters=[("user_id", "==", user_id)],
            order_by="created_at",
            descending=True,
        )
        return [AccessRequest.from_dict(d) for d in docs]

    def purge_processed(self, retention_days: int) -> int:
        """Delete approved or denied requests processed more than ``retention_days`` ago."""
        cutoff = self.clock() - timedelta(days=retention_days)
        docs = self.store.query(
            ACCESS_REQUESTS_COLLECTION,
            filters=[
                ("status", "!=", RequestStatus.PENDING.value),
                ("processed_at", "<", cutoff),
            ],
        )
        purged = sum(1 for d in docs if self.store.delete(ACCESS_REQUESTS_COLLECTION, d["id"]))
        if purged:
            logger.info(f"Purged {purged} access requests processed before {cutoff.isoformat()}")
        return purged
