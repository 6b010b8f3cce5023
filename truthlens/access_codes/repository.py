"""
Store accessor for access-code documents.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from truthlens.store import DocumentStore
from truthlens.utils import ensure_aware, now_local
from .models import AccessCode, AccessCodeTier, AccessCodeType, canonicalize_code

logger = logging.getLogger(__name__)

ACCESS_CODES_COLLECTION = "access_codes"


class AccessCodeRepository:
    """Reads and writes access codes. Every lookup hits the store."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = now_local):
        self.store = store
        self.clock = clock

    def find_active(self, code: str) -> Optional[AccessCode]:
        """Return the active code matching ``code`` case-insensitively, if any."""
        docs = self.store.query(
            ACCESS_CODES_COLLECTION,
            filters=[
                ("code", "==", canonicalize_code(code)),
                ("active", "==", True),
            ],
            limit=1,
        )
        return AccessCode.from_dict(docs[0]) if docs else None

    def get(self, code_id: str) -> Optional[AccessCode]:
        doc = self.store.get(ACCESS_CODES_COLLECTION, code_id)
        return AccessCode.from_dict(doc) if doc else None

    def increment_usage(self, code_id: str, usage_limit: int) -> bool:
        """
        Atomically consume one use of a code.

        For limited codes the increment only happens while ``used_count`` is
        below ``usage_limit``, so concurrent redemptions cannot overshoot.

        Returns:
            True if a use was recorded, False if the limit was already reached
        """
        if usage_limit > 0:
            new_count = self.store.increment_if(
                ACCESS_CODES_COLLECTION, code_id, "used_count", below=usage_limit
            )
            if new_count is None:
                logger.info(f"Usage limit reached for access code {code_id}")
                return False
        else:
            new_count = self.store.increment(ACCESS_CODES_COLLECTION, code_id, "used_count")

        logger.info(f"Access code {code_id} used_count -> {new_count}")
        return True

    def release_usage(self, code_id: str) -> None:
        """Give back a use consumed by a redemption that could not be completed."""
        new_count = self.store.increment(ACCESS_CODES_COLLECTION, code_id, "used_count", -1)
        logger.info(f"Access code {code_id} use released, used_count -> {new_count}")

    # =====================
    # Admin methods
    # =====================

    def create(
        self,
        code: str,
        tier: str,
        code_type: str,
        usage_limit: int,
        expires_at: Optional[datetime],
        admin_id: str,
    ) -> AccessCode:
        """
        Create a new active access code.

        Raises:
            ValueError: On an empty code, unknown tier/type, or a duplicate code
        """
        code = (code or "").strip()
        if not code:
            raise ValueError("Access code cannot be empty")
        if not AccessCodeTier.is_valid(tier):
            raise ValueError(f"Unknown tier: {tier}")
        if not AccessCodeType.is_valid(code_type):
            raise ValueError(f"Unknown code type: {code_type}")

        canonical = canonicalize_code(code)
        if self.store.count(ACCESS_CODES_COLLECTION, [("code", "==", canonical)]):
            raise ValueError(f"Access code {canonical} already exists")

        access_code = AccessCode(
            id="",
            code=canonical,
            tier=tier,
            type=code_type,
            usage_limit=int(usage_limit),
            used_count=0,
            expires_at=ensure_aware(expires_at),
            active=True,
            created_by=admin_id,
            created_at=self.clock(),
        )
        access_code.id = self.store.add(ACCESS_CODES_COLLECTION, access_code.to_dict())
        logger.info(f"Created access code {canonical} ({tier}/{code_type}) by {admin_id}")
        return access_code

    def list_all(self) -> List[AccessCode]:
        """All codes, newest first."""
        docs = self.store.query(ACCESS_CODES_COLLECTION, order_by="created_at", descending=True)
        return [AccessCode.from_dict(d) for d in docs]

    def set_active(self, code_id: str, active: bool) -> AccessCode:
        doc = self.store.update(ACCESS_CODES_COLLECTION, code_id, {"active": bool(active)})
        logger.info(f"Access code {code_id} active -> {active}")
        return AccessCode.from_dict(doc)

    def delete(self, code_id: str) -> bool:
        deleted = self.store.delete(ACCESS_CODES_COLLECTION, code_id)
        if deleted:
            logger.info(f"Deleted access code {code_id}")
        return deleted

    def purge_expired(self, retention_days: int) -> int:
        """Delete codes that expired more than ``retention_days`` ago. Returns the count."""
        cutoff = self.clock() - timedelta(days=retention_days)
        docs = self.store.query(ACCESS_CODES_COLLECTION, filters=[("expires_at", "<", cutoff)])
        purged = sum(1 for d in docs if self.store.delete(ACCESS_CODES_COLLECTION, d["id"]))
        if purged:
            logger.info(f"Purged {purged} access codes expired before {cutoff.isoformat()}")
        return purged
