"""
Document store used by every subsystem for persistence.
"""

from .errors import StoreError, DocumentNotFoundError
from .document_store import DocumentStore, create_document_store

__all__ = ["StoreError", "DocumentNotFoundError", "DocumentStore", "create_document_store"]
