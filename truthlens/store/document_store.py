"""
JSON-file document store.

Each collection lives in its own ``<collection>.json`` file under the store
directory, keyed by generated document id. Every call goes through one
process-wide lock, so ``increment`` and ``increment_if`` are atomic with
respect to all other store operations in the process.
"""

import copy
import json
import logging
import operator
import os
import uuid
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .errors import StoreError, DocumentNotFoundError

logger = logging.getLogger(__name__)

# (field, operator, value)
Filter = Tuple[str, str, Any]

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_DATETIME_KEY = "$datetime"


def _encode(value: Any) -> Any:
    """Convert a document into JSON-safe data, tagging datetimes."""
    if isinstance(value, datetime):
        return {_DATETIME_KEY: value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    """Inverse of :func:`_encode`."""
    if isinstance(value, dict):
        if len(value) == 1 and _DATETIME_KEY in value:
            return datetime.fromisoformat(value[_DATETIME_KEY])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def _matches(doc: Dict[str, Any], filters: Iterable[Filter]) -> bool:
    for field, op, expected in filters:
        compare = _OPERATORS.get(op)
        if compare is None:
            raise ValueError(f"Unsupported filter operator: {op}")
        actual = doc.get(field)
        # Missing values never satisfy a range filter
        if actual is None and op not in ("==", "!="):
            return False
        try:
            if not compare(actual, expected):
                return False
        except TypeError:
            return False
    return True


class DocumentStore:
    """Collections of JSON documents persisted under ``store_dir``."""

    def __init__(self, store_dir: Path):
        """
        Initialize the store.

        Args:
            store_dir: Directory holding one JSON file per collection
        """
        self.store_dir = Path(store_dir)
        self._lock = RLock()
        self.store_dir.mkdir(parents=True, exist_ok=True)

    # =====================
    # Persistence helpers
    # =====================

    def _collection_file(self, collection: str) -> Path:
        return self.store_dir / f"{collection}.json"

    def _load(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Load all documents of a collection."""
        path = self._collection_file(collection)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading collection {collection}: {e}")
            raise StoreError(f"Failed to load collection '{collection}'") from e
        return {doc_id: _decode(doc) for doc_id, doc in raw.items()}

    def _save(self, collection: str, docs: Dict[str, Dict[str, Any]]) -> None:
        """Write a collection atomically (temp file + rename)."""
        path = self._collection_file(collection)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(_encode(docs), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError) as e:
            logger.error(f"Error saving collection {collection}: {e}")
            raise StoreError(f"Failed to save collection '{collection}'") from e

    @staticmethod
    def _with_id(doc_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        result = copy.deepcopy(doc)
        result["id"] = doc_id
        return result

    # =====================
    # Document operations
    # =====================

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a new document and return its generated id."""
        doc_id = uuid.uuid4().hex
        with self._lock:
            docs = self._load(collection)
            docs[doc_id] = {k: v for k, v in copy.deepcopy(data).items() if k != "id"}
            self._save(collection, docs)
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or replace the document stored under ``doc_id``."""
        with self._lock:
            docs = self._load(collection)
            docs[doc_id] = {k: v for k, v in copy.deepcopy(data).items() if k != "id"}
            self._save(collection, docs)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the document (with its ``id``), or None."""
        with self._lock:
            doc = self._load(collection).get(doc_id)
        return self._with_id(doc_id, doc) if doc is not None else None

    def update(
        self,
        collection: str,
        doc_id: str,
        changes: Dict[str, Any],
        upsert: bool = False,
    ) -> Dict[str, Any]:
        """
        Merge ``changes`` into an existing document.

        Args:
            collection: Collection name
            doc_id: Document id
            changes: Top-level fields to overwrite
            upsert: Create the document when it does not exist

        Returns:
            The updated document

        Raises:
            DocumentNotFoundError: If the document is missing and upsert is False
        """
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                if not upsert:
                    raise DocumentNotFoundError(collection, doc_id)
                docs[doc_id] = {}
            docs[doc_id].update({k: v for k, v in copy.deepcopy(changes).items() if k != "id"})
            self._save(collection, docs)
            return self._with_id(doc_id, docs[doc_id])

    def update_if(
        self,
        collection: str,
        doc_id: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Atomically merge ``changes`` only if every field in ``expected`` matches.

        Returns:
            The updated document, or None if a precondition failed

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            doc = docs[doc_id]
            if any(doc.get(field) != value for field, value in expected.items()):
                return None
            doc.update({k: v for k, v in copy.deepcopy(changes).items() if k != "id"})
            self._save(collection, docs)
            return self._with_id(doc_id, doc)

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                return False
            del docs[doc_id]
            self._save(collection, docs)
            return True

    # =====================
    # Queries
    # =====================

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return documents matching every filter.

        Args:
            collection: Collection name
            filters: ``(field, op, value)`` tuples; ops are ==, !=, <, <=, >, >=
            order_by: Optional field to sort on (missing values sort last)
            descending: Reverse the sort order
            limit: Maximum number of documents to return
        """
        filters = list(filters)
        with self._lock:
            docs = self._load(collection)
        results = [self._with_id(doc_id, doc) for doc_id, doc in docs.items() if _matches(doc, filters)]

        if order_by:
            present = [d for d in results if d.get(order_by) is not None]
            missing = [d for d in results if d.get(order_by) is None]
            present.sort(key=lambda d: d[order_by], reverse=descending)
            results = present + missing

        if limit is not None:
            results = results[:limit]
        return results

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        """Count matching documents without copying them."""
        filters = list(filters)
        with self._lock:
            docs = self._load(collection)
        return sum(1 for doc in docs.values() if _matches(doc, filters))

    # =====================
    # Atomic counters
    # =====================

    def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to a numeric field and return the new value."""
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            new_value = int(docs[doc_id].get(field) or 0) + amount
            docs[doc_id][field] = new_value
            self._save(collection, docs)
            return new_value

    def increment_if(
        self,
        collection: str,
        doc_id: str,
        field: str,
        below: int,
        amount: int = 1,
    ) -> Optional[int]:
        """
        Atomically increment a field only while its current value is below a bound.

        Returns:
            The new value, or None if the current value had already reached ``below``
        """
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            current = int(docs[doc_id].get(field) or 0)
            if current >= below:
                return None
            docs[doc_id][field] = current + amount
            self._save(collection, docs)
            return current + amount


def create_document_store(store_dir: Path) -> DocumentStore:
    """Create the store handle owned by the application."""
    store = DocumentStore(store_dir)
    logger.info(f"Document store ready at {store.store_dir}")
    return store
