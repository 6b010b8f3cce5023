"""
Factory for creating user management module.
"""
from datetime import datetime
from typing import Callable, List

from truthlens.store import DocumentStore
from truthlens.utils import now_local
from .services import UserService
from .routes import create_user_routes


def create_user_management_module(
    store: DocumentStore,
    admin_user_ids: List[str],
    clock: Callable[[], datetime] = now_local,
) -> dict:
    """Create user management module with service and routes.

    Args:
        store: Document store holding user and notification documents
        admin_user_ids: List of admin user IDs

    Returns:
        Dictionary containing the service and blueprint
    """
    user_service = UserService(store, admin_user_ids, clock=clock)

    blueprint = create_user_routes(user_service)

    return {
        "service": user_service,
        "blueprint": blueprint
    }
