"""
Access code validation.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from truthlens.store import StoreError
from truthlens.utils import now_local
from .models import (
    AccessCode,
    ValidationResult,
    REASON_INVALID,
    REASON_EXPIRED,
    REASON_USAGE_LIMIT,
)
from .repository import AccessCodeRepository

logger = logging.getLogger(__name__)


class AccessCodeValidator:
    """
    Validates submitted codes against activation, expiry and usage rules.

    Rules are checked in a fixed order and the first failing rule decides the
    reason a caller sees:

    1. no active code matches -> invalid or inactive
    2. expiry strictly in the past -> expired
    3. limited code with used_count >= usage_limit -> usage limit reached

    Validation never consumes a use; see ``AccessCodeRepository.increment_usage``.
    """

    def __init__(
        self,
        repository: AccessCodeRepository,
        fail_closed: bool = True,
        clock: Callable[[], datetime] = now_local,
    ):
        """
        Args:
            repository: Access code store accessor
            fail_closed: Report store faults as an internal-error denial.
                When False, ``StoreError`` propagates to the caller.
            clock: Source of the current time
        """
        self.repository = repository
        self.fail_closed = fail_closed
        self.clock = clock

    def validate(self, code: str) -> ValidationResult:
        """Validate a code without consuming it."""
        result, _ = self.resolve(code)
        return result

    def resolve(self, code: str) -> Tuple[ValidationResult, Optional[AccessCode]]:
        """
        Validate a code and also return the record it resolved to.

        Raises:
            ValueError: If ``code`` is not a non-empty string
        """
        if not isinstance(code, str) or not code:
            raise ValueError("Access code must be a non-empty string")

        try:
            access_code = self.repository.find_active(code)
        except StoreError as e:
            if not self.fail_closed:
                raise
            logger.error(f"Access code validation error: {e}")
            return ValidationResult.internal(), None

        if access_code is None:
            return ValidationResult.failure(REASON_INVALID), None

        if access_code.is_expired(self.clock()):
            return ValidationResult.failure(REASON_EXPIRED), access_code

        if access_code.is_exhausted():
            return ValidationResult.failure(REASON_USAGE_LIMIT), access_code

        return ValidationResult.success(access_code), access_code
