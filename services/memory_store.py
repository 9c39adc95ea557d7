# backend/services/memory_store.py

import copy
import itertools
import threading
import uuid

from google.api_core import exceptions as google_exceptions

from services.store import DocumentStore, Snapshot, Subscription
from utils.time import parse_timestamp

_OPS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
}


class MemoryStore(DocumentStore):
    """
    Process-local DocumentStore.

    Writes notify subscribers synchronously on the writing thread, in write
    order. Ordered collection reads leave out documents lacking the order
    field, as Firestore does.
    """

    def __init__(self):
        self._docs = {}
        self._doc_subs = {}
        self._collection_subs = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    # ---- reads ----
    def snapshot(self, path):
        with self._lock:
            if path in self._docs:
                return Snapshot(path=path, exists=True, data=copy.deepcopy(self._docs[path]))
            return Snapshot(path=path, exists=False)

    def get(self, collection, filters=None, order_by=None, descending=False):
        with self._lock:
            snapshots = self._collection_snapshots(collection, order_by, descending)
        for field_name, op, value in filters or []:
            compare = _OPS[op]
            snapshots = [s for s in snapshots if compare(s.get(field_name), value)]
        return snapshots

    # ---- subscriptions ----
    def subscribe(self, path, callback):
        key = next(self._ids)
        with self._lock:
            self._doc_subs.setdefault(path, {})[key] = callback
            callback(self.snapshot(path), None)

        def release():
            with self._lock:
                self._doc_subs.get(path, {}).pop(key, None)

        return Subscription(release)

    def subscribe_collection(self, collection, callback, order_by=None, descending=False):
        key = next(self._ids)
        with self._lock:
            self._collection_subs.setdefault(collection, {})[key] = (callback, order_by, descending)
            callback(self._collection_snapshots(collection, order_by, descending), None)

        def release():
            with self._lock:
                self._collection_subs.get(collection, {}).pop(key, None)

        return Subscription(release)

    def fail(self, path, error):
        """Deliver a transport error to every subscriber of `path`."""
        with self._lock:
            for callback in list(self._doc_subs.get(path, {}).values()):
                callback(None, error)
            collection = path.split("/", 1)[0]
            for callback, _, _ in list(self._collection_subs.get(collection, {}).values()):
                callback(None, error)

    # ---- writes ----
    def set(self, path, fields):
        with self._lock:
            self._docs[path] = copy.deepcopy(dict(fields))
            self._notify(path)

    def update(self, path, fields):
        with self._lock:
            if path not in self._docs:
                raise google_exceptions.NotFound(f"No document to update: {path}")
            self._docs[path].update(copy.deepcopy(dict(fields)))
            self._notify(path)

    def delete(self, path):
        with self._lock:
            self._docs.pop(path, None)
            self._notify(path)

    def new_id(self, collection):
        return uuid.uuid4().hex[:20]

    # ---- internals ----
    def _collection_snapshots(self, collection, order_by=None, descending=False):
        prefix = collection + "/"
        snapshots = [
            self.snapshot(path)
            for path in self._docs
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]
        if not order_by:
            return snapshots

        present = [s for s in snapshots if s.get(order_by) is not None]
        present.sort(key=lambda s: _sort_key(s.get(order_by)), reverse=descending)
        return present

    def _notify(self, path):
        for callback in list(self._doc_subs.get(path, {}).values()):
            callback(self.snapshot(path), None)

        collection = path.split("/", 1)[0]
        for callback, order_by, descending in list(self._collection_subs.get(collection, {}).values()):
            callback(self._collection_snapshots(collection, order_by, descending), None)


def _sort_key(value):
    ts = parse_timestamp(value)
    if ts is not None:
        return ts.timestamp()
    return value
