"""
User identity, subscriptions and notifications.
"""

from .factory import create_user_management_module

__all__ = ["create_user_management_module"]
