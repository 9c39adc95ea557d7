# backend/services/store.py

"""
Document-store contract shared by every synchronizer.

Paths are "collection/document" strings. Subscriptions deliver
`callback(snapshot, error)` where exactly one of the two is set;
collection subscriptions deliver a list of snapshots instead of one.
"""

import threading
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Snapshot:
    path: str
    exists: bool
    data: dict = field(default_factory=dict)

    @property
    def id(self):
        return self.path.rsplit("/", 1)[-1]

    def get(self, key, default=None):
        return self.data.get(key, default)


class Subscription:
    """
    Handle for a live subscription. Releasing it is idempotent and can be
    done through `close()` or by using the handle as a context manager.
    """

    def __init__(self, release):
        self._release = release
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class DocumentStore:
    """
    Subscribable document store. Implementations: FirestoreStore, MemoryStore.
    """

    def subscribe(self, path, callback):
        raise NotImplementedError

    def subscribe_collection(self, collection, callback, order_by=None, descending=False):
        raise NotImplementedError

    def set(self, path, fields):
        """Full replace of the document."""
        raise NotImplementedError

    def update(self, path, fields):
        """Partial update; the document must exist."""
        raise NotImplementedError

    def delete(self, path):
        raise NotImplementedError

    def get(self, collection, filters=None, order_by=None, descending=False):
        """One-shot read of a collection. `filters` is a list of (field, op, value)."""
        raise NotImplementedError

    def new_id(self, collection):
        raise NotImplementedError

    def close(self):
        """Release store-level resources. Subscriptions are closed separately."""


def document_path(collection, document_id):
    return f"{collection}/{document_id}"
