"""
Access requests: redeeming access codes and admin review.
"""

from .models import (
    AccessRequest,
    AccessRequestSubmission,
    AccessRequestError,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
    RequestStatus,
    SubmissionResult,
)
from .services import AccessRequestService
from .factory import create_access_requests_module

__all__ = [
    "AccessRequest",
    "AccessRequestSubmission",
    "AccessRequestError",
    "RequestAlreadyProcessedError",
    "RequestNotFoundError",
    "RequestStatus",
    "SubmissionResult",
    "AccessRequestService",
    "create_access_requests_module",
]
