"""
Factory for creating the access request module.
"""
from datetime import datetime
from typing import Any, Callable, Dict

from truthlens.access_codes.repository import AccessCodeRepository
from truthlens.access_codes.validator import AccessCodeValidator
from truthlens.store import DocumentStore
from truthlens.user_management.services import UserService
from truthlens.utils import now_local
from .services import AccessRequestService
from .routes import create_access_request_routes


def create_access_requests_module(
    store: DocumentStore,
    repository: AccessCodeRepository,
    validator: AccessCodeValidator,
    user_service: UserService,
    access_duration_months: int = 3,
    clock: Callable[[], datetime] = now_local,
) -> Dict[str, Any]:
    """Create and configure access request components."""
    service = AccessRequestService(
        store,
        repository,
        validator,
        user_service,
        access_duration_months=access_duration_months,
        clock=clock,
    )

    blueprint = create_access_request_routes(service, user_service)

    return {
        "service": service,
        "blueprint": blueprint,
    }
