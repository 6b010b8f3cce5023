"""
Exceptions raised by the document store.
"""


class StoreError(Exception):
    """The backing store could not be read or written."""


class DocumentNotFoundError(StoreError):
    """A document addressed by id does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document '{doc_id}' not found in '{collection}'")
        self.collection = collection
        self.doc_id = doc_id
