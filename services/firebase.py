# backend/services/firebase.py

import os
import threading

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from services.store import DocumentStore, Snapshot, Subscription

_firestore = None

# ===============================
# Document Paths
# ===============================
STATUS_PATH = "system_status/status"
HEARTBEAT_PATH = "system_status/bridge_heartbeat"
LIVE_EVENT_PATH = "system_status/live_event"
COMMAND_PATH = "system_commands/command"
HISTORY_COLLECTION = "history"
SESSIONS_COLLECTION = "sessions"


def init_firebase():
    """
    Initialize Firebase Admin SDK
    Uses environment variables (Render safe)
    """
    global _firestore

    if firebase_admin._apps:
        if _firestore is None:
            _firestore = firestore.client()
        return

    firebase_config = {
        "type": "service_account",
        "project_id": os.getenv("FIREBASE_PROJECT_ID"),
        "private_key_id": os.getenv("FIREBASE_PRIVATE_KEY_ID"),
        "private_key": os.getenv("FIREBASE_PRIVATE_KEY", "").replace("\\n", "\n"),
        "client_email": os.getenv("FIREBASE_CLIENT_EMAIL"),
        "client_id": os.getenv("FIREBASE_CLIENT_ID"),
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        "client_x509_cert_url": os.getenv("FIREBASE_CLIENT_CERT_URL"),
    }

    cred = credentials.Certificate(firebase_config)
    firebase_admin.initialize_app(cred)

    _firestore = firestore.client()

    print("✅ Firebase initialized (Firestore)")


# ===============================
# Firestore
# ===============================
def get_firestore():
    if not _firestore:
        raise RuntimeError("Firestore not initialized")
    return _firestore


def _to_snapshot(doc):
    return Snapshot(
        path=doc.reference.path,
        exists=doc.exists,
        data=(doc.to_dict() or {}) if doc.exists else {},
    )


# ===============================
# Store Adapter
# ===============================
class _Watched:
    """A live watch plus what is needed to reopen it."""

    def __init__(self, label, open_watch, callback):
        self.label = label
        self.open_watch = open_watch
        self.callback = callback
        self.watch = open_watch()


class FirestoreStore(DocumentStore):
    """
    DocumentStore backed by Firestore watches.

    Snapshot callbacks arrive on the SDK's watch thread. The SDK tears a
    watch down after a non-retryable RPC error without telling its callback,
    so a supervisor thread checks `watch.is_active` every
    `watch_check_interval` seconds: a dead watch is reported to its callback
    as ServiceUnavailable and then reopened.
    """

    def __init__(self, client=None, watch_check_interval=5.0):
        self._db = client or get_firestore()
        self.watch_check_interval = watch_check_interval
        self._watched = {}
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._supervisor = None

    def subscribe(self, path, callback):
        def on_snapshot(docs, changes, read_time):
            try:
                if docs:
                    snapshot = _to_snapshot(docs[0])
                else:
                    snapshot = Snapshot(path=path, exists=False)
            except Exception as e:
                callback(None, e)
                return
            callback(snapshot, None)

        return self._watch(path, lambda: self._db.document(path).on_snapshot(on_snapshot), callback)

    def subscribe_collection(self, collection, callback, order_by=None, descending=False):
        query = self._query(collection, order_by=order_by, descending=descending)

        def on_snapshot(docs, changes, read_time):
            try:
                snapshots = [_to_snapshot(doc) for doc in docs]
            except Exception as e:
                callback(None, e)
                return
            callback(snapshots, None)

        return self._watch(collection, lambda: query.on_snapshot(on_snapshot), callback)

    def check_watches(self):
        """Report and reopen every watch the SDK has closed underneath us."""
        with self._lock:
            watched = list(self._watched.items())

        for key, entry in watched:
            if entry.watch.is_active:
                continue

            print(f"WARNING: Firestore watch on {entry.label} closed, reopening")
            entry.callback(None, google_exceptions.ServiceUnavailable(f"Watch on {entry.label} closed"))
            try:
                watch = entry.open_watch()
            except Exception as e:
                print(f"ERROR reopening watch on {entry.label}: {e}")
                continue

            with self._lock:
                if key in self._watched:
                    entry.watch = watch
                    watch = None
            if watch is not None:
                # Released while reopening.
                watch.unsubscribe()

    def close(self):
        self._stopping.set()
        if self._supervisor is not None:
            self._supervisor.join(timeout=1.0)
            self._supervisor = None

    def _watch(self, label, open_watch, callback):
        entry = _Watched(label, open_watch, callback)
        key = id(entry)
        with self._lock:
            self._watched[key] = entry
            self._ensure_supervisor()

        def release():
            with self._lock:
                self._watched.pop(key, None)
            entry.watch.unsubscribe()

        return Subscription(release)

    def _ensure_supervisor(self):
        if self.watch_check_interval is None or self._supervisor is not None:
            return
        self._supervisor = threading.Thread(target=self._supervise, name="firestore-watch-supervisor", daemon=True)
        self._supervisor.start()

    def _supervise(self):
        while not self._stopping.wait(self.watch_check_interval):
            try:
                self.check_watches()
            except Exception as e:
                print(f"ERROR checking Firestore watches: {e}")

    def set(self, path, fields):
        self._db.document(path).set(fields)

    def update(self, path, fields):
        self._db.document(path).update(fields)

    def delete(self, path):
        self._db.document(path).delete()

    def get(self, collection, filters=None, order_by=None, descending=False):
        query = self._query(collection, filters, order_by, descending)
        return [_to_snapshot(doc) for doc in query.stream()]

    def new_id(self, collection):
        return self._db.collection(collection).document().id

    def _query(self, collection, filters=None, order_by=None, descending=False):
        query = self._db.collection(collection)
        for field_name, op, value in filters or []:
            query = query.where(filter=FieldFilter(field_name, op, value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        return query
