"""
Factory for creating quota management components.
"""

from datetime import datetime
from typing import Callable, Dict, Optional

from truthlens.store import DocumentStore
from truthlens.user_management.services import UserService
from truthlens.utils import now_local
from .models import QuotaConfig
from .manager import QuotaManager
from .routes import create_quota_routes


def create_quota_module(
    store: DocumentStore,
    user_service: UserService,
    fail_open: bool = True,
    daily_scan_limits: Optional[Dict[str, int]] = None,
    clock: Callable[[], datetime] = now_local,
) -> dict:
    """
    Create quota management module.

    Args:
        store: Document store holding the action history
        user_service: Resolves the caller and their tier
        fail_open: Allow actions when the history count cannot be read
        daily_scan_limits: Per-tier overrides of the daily scan limit
        clock: Source of the current time

    Returns:
        Dictionary with:
        - manager: QuotaManager instance
        - config: QuotaConfig instance
        - blueprint: Flask blueprint
    """
    config = QuotaConfig(
        fail_open=fail_open,
        daily_scan_limits=daily_scan_limits or {},
    )

    manager = QuotaManager(store=store, config=config, clock=clock)

    return {
        "manager": manager,
        "config": config,
        "blueprint": create_quota_routes(manager, user_service),
    }
