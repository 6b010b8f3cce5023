"""
Basic import tests to verify the core functionality.
"""

import pytest


def test_store_imports():
    """Test that the document store can be imported."""
    from truthlens.store import DocumentStore, StoreError, DocumentNotFoundError, create_document_store

    assert callable(create_document_store)
    assert issubclass(DocumentNotFoundError, StoreError)
    assert DocumentStore is not None


def test_subsystem_factories_import():
    """Test that every subsystem exposes its factory."""
    from truthlens.access_codes.factory import create_access_codes_module
    from truthlens.access_requests import create_access_requests_module
    from truthlens.quota.factory import create_quota_module
    from truthlens.uploads import create_uploads_module
    from truthlens.user_management import create_user_management_module

    for factory in (
        create_access_codes_module,
        create_access_requests_module,
        create_quota_module,
        create_uploads_module,
        create_user_management_module,
    ):
        assert callable(factory)


def test_app_factory_imports():
    """Test that the application factory and logging setup can be imported."""
    from truthlens.main import create_app
    from truthlens.logging_config import setup_logging, stop_logging

    assert callable(create_app)
    assert callable(setup_logging)
    assert callable(stop_logging)


def test_time_helpers():
    """Test month arithmetic used for access grants."""
    from datetime import datetime
    from truthlens.utils import add_months, parse_datetime, start_of_day

    assert add_months(datetime(2026, 1, 31, 9, 30), 1) == datetime(2026, 2, 28, 9, 30)
    assert add_months(datetime(2026, 11, 15), 3) == datetime(2027, 2, 15)
    assert start_of_day(datetime(2026, 5, 1, 17, 45, 3)) == datetime(2026, 5, 1)
    assert parse_datetime("2026-01-01T00:00:00Z").utcoffset().total_seconds() == 0
    assert parse_datetime("") is None
    with pytest.raises(ValueError):
        parse_datetime("not a date")
