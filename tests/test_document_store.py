"""
Tests for the JSON-file document store.
"""
import json
import threading
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from truthlens.store import DocumentStore, DocumentNotFoundError, StoreError


class TestDocumentStore:
    """Document CRUD, queries and counters."""

    @pytest.fixture
    def store(self, tmp_path):
        return DocumentStore(tmp_path / "store")

    def test_add_and_get(self, store):
        doc_id = store.add("items", {"name": "apple", "count": 1})

        doc = store.get("items", doc_id)
        assert doc == {"id": doc_id, "name": "apple", "count": 1}

    def test_get_missing_returns_none(self, store):
        assert store.get("items", "nope") is None

    def test_returned_documents_are_copies(self, store):
        doc_id = store.add("items", {"tags": ["a"]})
        doc = store.get("items", doc_id)
        doc["tags"].append("b")

        assert store.get("items", doc_id)["tags"] == ["a"]

    def test_datetimes_round_trip(self, store):
        when = datetime(2026, 1, 2, 3, 4, 5).astimezone()
        doc_id = store.add("items", {"when": when, "nested": {"at": when}})

        doc = store.get("items", doc_id)
        assert doc["when"] == when
        assert doc["nested"]["at"] == when

    def test_persisted_as_json_file(self, tmp_path):
        store = DocumentStore(tmp_path)
        doc_id = store.add("items", {"name": "apple"})

        raw = json.loads((tmp_path / "items.json").read_text(encoding="utf-8"))
        assert raw[doc_id] == {"name": "apple"}

        # A fresh handle sees the same data
        assert DocumentStore(tmp_path).get("items", doc_id)["name"] == "apple"

    def test_update_merges_fields(self, store):
        doc_id = store.add("items", {"name": "apple", "count": 1})

        updated = store.update("items", doc_id, {"count": 2})
        assert updated == {"id": doc_id, "name": "apple", "count": 2}

    def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.update("items", "missing", {"count": 1})

    def test_update_with_upsert_creates(self, store):
        store.update("users", "u1", {"tier": "plus"}, upsert=True)
        assert store.get("users", "u1") == {"id": "u1", "tier": "plus"}

    def test_update_if_applies_only_when_expected_matches(self, store):
        doc_id = store.add("requests", {"status": "pending"})

        assert store.update_if("requests", doc_id, {"status": "pending"}, {"status": "approved"})["status"] == "approved"
        assert store.update_if("requests", doc_id, {"status": "pending"}, {"status": "denied"}) is None
        assert store.get("requests", doc_id)["status"] == "approved"

    def test_update_if_missing_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.update_if("requests", "missing", {"status": "pending"}, {"status": "approved"})

    def test_delete(self, store):
        doc_id = store.add("items", {"name": "apple"})

        assert store.delete("items", doc_id) is True
        assert store.delete("items", doc_id) is False
        assert store.get("items", doc_id) is None


class TestDocumentStoreQueries:
    """Filtering, ordering and counting."""

    def setup_method(self):
        self.base = datetime(2026, 5, 1, 12, 0).astimezone()

    @pytest.fixture
    def store(self, tmp_path):
        store = DocumentStore(tmp_path)
        for i, user in enumerate(["a", "a", "b", "a"]):
            store.add("history", {
                "user_id": user,
                "type": "scan",
                "created_at": self.base + timedelta(hours=i),
            })
        store.add("history", {"user_id": "a", "type": "ai_chat"})
        return store

    def test_equality_filters(self, store):
        results = store.query("history", [("user_id", "==", "a"), ("type", "==", "scan")])
        assert len(results) == 3

    def test_range_filter_on_datetimes(self, store):
        results = store.query("history", [("created_at", ">=", self.base + timedelta(hours=2))])
        assert len(results) == 2

    def test_range_filter_skips_missing_values(self, store):
        results = store.query("history", [("created_at", "<", self.base + timedelta(days=1))])
        assert all(r["type"] == "scan" for r in results)

    def test_order_by_and_limit(self, store):
        results = store.query("history", [("type", "==", "scan")], order_by="created_at", descending=True, limit=2)
        assert [r["created_at"] for r in results] == [self.base + timedelta(hours=3), self.base + timedelta(hours=2)]

    def test_missing_sort_values_last(self, store):
        results = store.query("history", order_by="created_at")
        assert results[-1]["type"] == "ai_chat"

    def test_count(self, store):
        assert store.count("history", [("user_id", "==", "a")]) == 4
        assert store.count("history", [("user_id", "==", "nobody")]) == 0
        assert store.count("empty") == 0

    def test_unknown_operator_raises(self, store):
        with pytest.raises(ValueError):
            store.query("history", [("user_id", "~", "a")])


class TestDocumentStoreCounters:
    """Atomic increments."""

    @pytest.fixture
    def store(self, tmp_path):
        return DocumentStore(tmp_path)

    def test_increment(self, store):
        doc_id = store.add("codes", {"used_count": 0})

        assert store.increment("codes", doc_id, "used_count") == 1
        assert store.increment("codes", doc_id, "used_count", amount=2) == 3

    def test_increment_missing_document_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.increment("codes", "missing", "used_count")

    def test_increment_if_stops_at_bound(self, store):
        doc_id = store.add("codes", {"used_count": 1})

        assert store.increment_if("codes", doc_id, "used_count", below=2) == 2
        assert store.increment_if("codes", doc_id, "used_count", below=2) is None
        assert store.get("codes", doc_id)["used_count"] == 2

    def test_concurrent_increment_if_never_overshoots(self, store):
        doc_id = store.add("codes", {"used_count": 0})
        limit = 5
        barrier = threading.Barrier(12)
        results = []

        def worker():
            barrier.wait()
            results.append(store.increment_if("codes", doc_id, "used_count", below=limit))

        threads = [threading.Thread(target=worker) for _ in range(12)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(r for r in results if r is not None) == [1, 2, 3, 4, 5]
        assert results.count(None) == 7
        assert store.get("codes", doc_id)["used_count"] == limit


class TestDocumentStoreFaults:
    """Persistence failures surface as StoreError."""

    def test_corrupt_collection_raises_store_error(self, tmp_path):
        (tmp_path / "items.json").write_text("{not json", encoding="utf-8")
        store = DocumentStore(tmp_path)

        with pytest.raises(StoreError):
            store.get("items", "x")

    def test_write_failure_raises_store_error(self, tmp_path):
        store = DocumentStore(tmp_path)

        with patch("truthlens.store.document_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreError):
                store.add("items", {"name": "apple"})

    def test_document_not_found_is_a_store_error(self):
        assert issubclass(DocumentNotFoundError, StoreError)
