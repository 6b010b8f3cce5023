"""
Tests for access code storage and validation.
"""
import threading
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from truthlens.access_codes import AccessCodeRepository, AccessCodeValidator
from truthlens.access_codes.models import (
    AccessCode,
    REASON_EXPIRED,
    REASON_INTERNAL,
    REASON_INVALID,
    REASON_USAGE_LIMIT,
)
from truthlens.access_codes.repository import ACCESS_CODES_COLLECTION
from truthlens.store import DocumentStore, StoreError

NOW = datetime(2026, 3, 15, 12, 0).astimezone()


def fixed_clock():
    return NOW


def seed_code(store, code="STUDENT2026", tier="pro", code_type="student",
              usage_limit=0, used_count=0, expires_at=None, active=True):
    """Write an access code document directly, bypassing admin validation."""
    return store.add(ACCESS_CODES_COLLECTION, {
        "code": code,
        "tier": tier,
        "type": code_type,
        "usage_limit": usage_limit,
        "used_count": used_count,
        "expires_at": expires_at,
        "active": active,
        "created_by": "admin1",
        "created_at": NOW - timedelta(days=1),
    })


class TestAccessCodeValidator:
    """Validation rules and their order."""

    @pytest.fixture
    def store(self, tmp_path):
        return DocumentStore(tmp_path)

    @pytest.fixture
    def validator(self, store):
        return AccessCodeValidator(AccessCodeRepository(store, clock=fixed_clock), clock=fixed_clock)

    def test_valid_code_returns_public_fields_only(self, store, validator):
        code_id = seed_code(store)

        result = validator.validate("STUDENT2026")

        assert result.valid is True
        assert result.to_dict() == {
            "valid": True,
            "codeData": {"id": code_id, "code": "STUDENT2026", "tier": "pro", "type": "student"},
        }

    def test_lookup_is_case_insensitive(self, store, validator):
        seed_code(store)

        assert validator.validate("student2026").valid is True

    @pytest.mark.parametrize("code", ["UNKNOWN", "STUDENT", "student2027"])
    def test_unknown_codes_are_invalid(self, store, validator, code):
        seed_code(store)

        result = validator.validate(code)
        assert result.valid is False
        assert result.reason == REASON_INVALID

    def test_inactive_code_is_invalid(self, store, validator):
        seed_code(store, active=False)

        assert validator.validate("STUDENT2026").reason == REASON_INVALID

    def test_expired_code_reports_expired_even_with_uses_left(self, store, validator):
        seed_code(store, usage_limit=10, used_count=0, expires_at=NOW - timedelta(seconds=1))

        result = validator.validate("STUDENT2026")
        assert result.valid is False
        assert result.reason == REASON_EXPIRED

    def test_expiry_equal_to_now_is_still_valid(self, store, validator):
        seed_code(store, expires_at=NOW)

        assert validator.validate("STUDENT2026").valid is True

    def test_expired_takes_precedence_over_usage_limit(self, store, validator):
        seed_code(store, usage_limit=3, used_count=3, expires_at=NOW - timedelta(days=1))

        assert validator.validate("STUDENT2026").reason == REASON_EXPIRED

    def test_exhausted_code(self, store, validator):
        seed_code(store, usage_limit=3, used_count=3)

        result = validator.validate("STUDENT2026")
        assert result.valid is False
        assert result.reason == REASON_USAGE_LIMIT

    @pytest.mark.parametrize("used_count", [0, 3, 1000])
    def test_unlimited_code_is_valid_for_any_usage(self, store, validator, used_count):
        seed_code(store, usage_limit=0, used_count=used_count, expires_at=NOW + timedelta(days=30))

        assert validator.validate("STUDENT2026").valid is True

    def test_validation_does_not_consume_uses(self, store, validator):
        code_id = seed_code(store, usage_limit=3, used_count=1)

        validator.validate("STUDENT2026")
        validator.validate("STUDENT2026")

        assert store.get(ACCESS_CODES_COLLECTION, code_id)["used_count"] == 1

    @pytest.mark.parametrize("code", ["", None, 123])
    def test_malformed_input_raises(self, validator, code):
        with pytest.raises(ValueError):
            validator.validate(code)

    def test_store_fault_fails_closed_by_default(self, store, validator):
        seed_code(store)

        with patch.object(store, "query", side_effect=StoreError("unavailable")):
            result = validator.validate("STUDENT2026")

        assert result.valid is False
        assert result.internal_error is True
        assert result.reason == REASON_INTERNAL
        assert result.to_dict() == {"valid": False, "error": REASON_INTERNAL}

    def test_store_fault_propagates_when_not_fail_closed(self, store):
        validator = AccessCodeValidator(AccessCodeRepository(store), fail_closed=False, clock=fixed_clock)

        with patch.object(store, "query", side_effect=StoreError("unavailable")):
            with pytest.raises(StoreError):
                validator.validate("STUDENT2026")

    def test_resolve_returns_the_record(self, store, validator):
        code_id = seed_code(store, usage_limit=5, used_count=2)

        result, access_code = validator.resolve("STUDENT2026")
        assert result.valid is True
        assert isinstance(access_code, AccessCode)
        assert access_code.id == code_id
        assert access_code.usage_limit == 5


class TestAccessCodeRepository:
    """Admin operations and the usage counter."""

    @pytest.fixture
    def store(self, tmp_path):
        return DocumentStore(tmp_path)

    @pytest.fixture
    def repository(self, store):
        return AccessCodeRepository(store, clock=fixed_clock)

    def test_create_canonicalizes_code(self, repository):
        access_code = repository.create("summer-pass", "plus", "general", 10, None, "admin1")

        assert access_code.code == "SUMMER-PASS"
        assert access_code.active is True
        assert access_code.used_count == 0
        assert access_code.created_at == NOW
        assert repository.find_active("Summer-Pass").id == access_code.id

    def test_create_rejects_duplicates(self, repository):
        repository.create("PASS", "plus", "general", 0, None, "admin1")

        with pytest.raises(ValueError, match="already exists"):
            repository.create("pass", "pro", "general", 0, None, "admin1")

    @pytest.mark.parametrize("code,tier,code_type", [
        ("", "plus", "general"),
        ("PASS", "free", "general"),
        ("PASS", "plus", "staff"),
    ])
    def test_create_rejects_bad_input(self, repository, code, tier, code_type):
        with pytest.raises(ValueError):
            repository.create(code, tier, code_type, 0, None, "admin1")

    def test_create_treats_naive_expiry_as_local(self, repository):
        access_code = repository.create("PASS", "plus", "general", 0, datetime(2026, 12, 31, 23, 59), "admin1")

        assert access_code.expires_at.tzinfo is not None

    def test_list_all_newest_first(self, store, repository):
        seed_code(store, code="OLD")
        repository.create("NEW", "plus", "general", 0, None, "admin1")

        assert [c.code for c in repository.list_all()] == ["NEW", "OLD"]

    def test_set_active_toggles_lookup(self, store, repository):
        code_id = seed_code(store)

        repository.set_active(code_id, False)
        assert repository.find_active("STUDENT2026") is None

        repository.set_active(code_id, True)
        assert repository.find_active("STUDENT2026").id == code_id

    def test_delete(self, store, repository):
        code_id = seed_code(store)

        assert repository.delete(code_id) is True
        assert repository.get(code_id) is None
        assert repository.delete(code_id) is False

    def test_increment_usage_limited(self, store, repository):
        code_id = seed_code(store, usage_limit=2, used_count=1)

        assert repository.increment_usage(code_id, 2) is True
        assert repository.increment_usage(code_id, 2) is False
        assert repository.get(code_id).used_count == 2

    def test_increment_usage_unlimited(self, store, repository):
        code_id = seed_code(store, usage_limit=0, used_count=41)

        assert repository.increment_usage(code_id, 0) is True
        assert repository.get(code_id).used_count == 42

    def test_concurrent_redemptions_stop_at_limit(self, store, repository):
        limit = 4
        code_id = seed_code(store, usage_limit=limit)
        barrier = threading.Barrier(10)
        outcomes = []

        def redeem():
            barrier.wait()
            outcomes.append(repository.increment_usage(code_id, limit))

        threads = [threading.Thread(target=redeem) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count(True) == limit
        assert repository.get(code_id).used_count == limit

    def test_purge_expired_respects_retention(self, store, repository):
        old = seed_code(store, code="OLD", expires_at=NOW - timedelta(days=400))
        recent = seed_code(store, code="RECENT", expires_at=NOW - timedelta(days=10))
        forever = seed_code(store, code="FOREVER", expires_at=None)

        assert repository.purge_expired(365) == 1
        assert repository.get(old) is None
        assert repository.get(recent) is not None
        assert repository.get(forever) is not None
