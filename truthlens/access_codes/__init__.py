"""
Access codes: storage, validation and admin management.
"""

from .models import AccessCode, AccessCodeTier, AccessCodeType, ValidationResult
from .repository import AccessCodeRepository
from .validator import AccessCodeValidator

__all__ = [
    "AccessCode",
    "AccessCodeTier",
    "AccessCodeType",
    "ValidationResult",
    "AccessCodeRepository",
    "AccessCodeValidator",
]
