"""
Factory for creating the access code module.
"""
from datetime import datetime
from typing import Any, Callable, Dict

from truthlens.store import DocumentStore
from truthlens.user_management.services import UserService
from truthlens.utils import now_local
from .repository import AccessCodeRepository
from .validator import AccessCodeValidator
from .routes import create_access_code_routes


def create_access_codes_module(
    store: DocumentStore,
    user_service: UserService,
    fail_closed: bool = True,
    clock: Callable[[], datetime] = now_local,
) -> Dict[str, Any]:
    """Create and configure access code components."""
    repository = AccessCodeRepository(store, clock=clock)
    validator = AccessCodeValidator(repository, fail_closed=fail_closed, clock=clock)

    blueprint = create_access_code_routes(repository, validator, user_service)

    return {
        "blueprint": blueprint,
        "repository": repository,
        "validator": validator,
    }
