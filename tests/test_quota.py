"""
Tests for tier-based daily quotas.
"""
import threading
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from truthlens.quota import QuotaAction, QuotaConfig, QuotaManager, UserTier, get_tier_features
from truthlens.quota.manager import HISTORY_COLLECTION
from truthlens.store import DocumentStore, StoreError

NOW = datetime(2026, 3, 15, 12, 0).astimezone()


class Clock:

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestTierFeatures:

    def test_daily_scan_limits(self):
        assert get_tier_features("free").daily_scan_limit == 5
        assert get_tier_features("plus").daily_scan_limit == 20
        assert get_tier_features("pro").daily_scan_limit == -1
        assert get_tier_features("ultimate").daily_scan_limit == -1

    def test_unknown_tier_resolves_to_free(self):
        assert UserTier.resolve("platinum") is UserTier.FREE
        assert get_tier_features(None) == get_tier_features(UserTier.FREE)


class TestQuotaManager:

    def setup_method(self):
        self.clock = Clock(NOW)

    @pytest.fixture
    def store(self, tmp_path):
        return DocumentStore(tmp_path)

    @pytest.fixture
    def manager(self, store):
        return QuotaManager(store, QuotaConfig(), clock=self.clock)

    def _scan(self, manager, uid="user1", count=1):
        for i in range(count):
            manager.record_action(uid, QuotaAction.SCAN, {"barcode": f"0000{i}"})

    def test_new_user_has_full_quota(self, manager):
        result = manager.check_limit("user1", "free")

        assert result.allowed is True
        assert result.remaining == 5
        assert result.limit == 5
        assert result.message == "5 daily scans remaining"

    def test_free_user_with_four_scans_has_one_left(self, manager):
        self._scan(manager, count=4)

        result = manager.check_limit("user1", "free")

        assert (result.allowed, result.remaining, result.limit) == (True, 1, 5)
        assert result.message == "1 daily scan remaining"

    def test_limit_reached(self, manager):
        self._scan(manager, count=5)

        result = manager.check_limit("user1", "free")

        assert result.allowed is False
        assert result.remaining == 0
        assert result.reason == "daily_limit"
        assert result.message == "Daily limit reached"

    def test_remaining_never_negative(self, manager):
        self._scan(manager, count=7)

        assert manager.check_limit("user1", "free").remaining == 0

    @pytest.mark.parametrize("tier", ["pro", "ultimate"])
    def test_unlimited_tiers_always_allowed(self, store, manager, tier):
        self._scan(manager, count=30)

        with patch.object(store, "count") as mock_count:
            result = manager.check_limit("user1", tier)

        mock_count.assert_not_called()
        assert result.allowed is True
        assert result.remaining == 9999
        assert result.limit is None
        assert result.message == "Unlimited scans"

    def test_only_todays_actions_count(self, manager):
        self.clock.now = NOW - timedelta(days=1)
        self._scan(manager, count=5)
        self.clock.now = NOW.replace(hour=0, minute=0, second=0)
        self._scan(manager, count=1)
        self.clock.now = NOW

        assert manager.check_limit("user1", "free").remaining == 4

    def test_counts_are_per_user_and_action(self, manager):
        self._scan(manager, uid="user2", count=5)
        manager.record_action("user1", QuotaAction.AI_CHAT)

        assert manager.check_limit("user1", "free").remaining == 5
        assert manager.check_limit("user1", "plus", QuotaAction.AI_CHAT).remaining == 9

    def test_config_overrides_scan_limit(self, store):
        manager = QuotaManager(store, QuotaConfig(daily_scan_limits={"free": 2}), clock=self.clock)
        self._scan(manager, count=2)

        result = manager.check_limit("user1", "free")
        assert (result.allowed, result.limit) == (False, 2)

    def test_store_fault_fails_open_by_default(self, store, manager):
        with patch.object(store, "count", side_effect=StoreError("unavailable")):
            result = manager.check_limit("user1", "free")

        assert (result.allowed, result.remaining, result.limit) == (True, 1, 5)

    def test_store_fault_denies_when_fail_closed(self, store):
        manager = QuotaManager(store, QuotaConfig(fail_open=False), clock=self.clock)

        with patch.object(store, "count", side_effect=StoreError("unavailable")):
            result = manager.check_limit("user1", "free")

        assert (result.allowed, result.remaining, result.limit) == (False, 0, 5)
        assert result.reason == "quota_unavailable"

    def test_record_action_writes_history(self, store, manager):
        entry_id = manager.record_action("user1", QuotaAction.SCAN, {"barcode": "123"})

        entry = store.get(HISTORY_COLLECTION, entry_id)
        assert entry["user_id"] == "user1"
        assert entry["type"] == "scan"
        assert entry["payload"] == {"barcode": "123"}
        assert entry["created_at"] == NOW

    def test_consume_records_only_when_allowed(self, store, manager):
        self._scan(manager, count=4)

        result, entry_id = manager.consume("user1", "free", QuotaAction.SCAN, {"barcode": "123"})
        assert result.remaining == 1
        assert store.get(HISTORY_COLLECTION, entry_id)["payload"] == {"barcode": "123"}

        result, entry_id = manager.consume("user1", "free", QuotaAction.SCAN, {"barcode": "456"})
        assert result.allowed is False
        assert entry_id is None
        assert manager.count_today("user1") == 5

    def test_concurrent_consume_stops_at_limit(self, manager):
        barrier = threading.Barrier(12)
        recorded = []

        def scan(i):
            barrier.wait()
            _, entry_id = manager.consume("user1", "free", QuotaAction.SCAN, {"barcode": str(i)})
            recorded.append(entry_id)

        threads = [threading.Thread(target=scan, args=(i,)) for i in range(12)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(1 for entry_id in recorded if entry_id) == 5
        assert manager.count_today("user1") == 5

    def test_result_to_dict(self, manager):
        data = manager.check_limit("user1", "plus").to_dict()

        assert data["allowed"] is True
        assert data["remaining"] == 20
        assert data["limit"] == 20
        assert data["tier"] == "plus"


class TestQuotaConfig:

    def test_from_dict_defaults(self):
        config = QuotaConfig.from_dict({})
        assert config.fail_open is True
        assert config.daily_scan_limits == {}
