# backend/app.py

import atexit
import os
from datetime import timedelta

from flask import Flask
from dotenv import load_dotenv

from routes.api import api_bp
from routes.history import history_bp
from routes.profile import profile_bp
from services.history import HistoryAggregator
from services.identity import FirebaseIdentity
from services.monitor import HomeMonitor
from services.state import UpdateQueue

# Load environment variables from .env file
load_dotenv()


def _build_store(backend):
    if backend == "memory":
        from services.memory_store import MemoryStore
        return MemoryStore()

    from services.firebase import init_firebase, FirestoreStore
    init_firebase()
    return FirestoreStore()


def create_app(store=None, identity=None):
    app = Flask(__name__)

    # ===============================
    # Config
    # ===============================
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["STORE_BACKEND"] = os.getenv("STORE_BACKEND", "firestore")
    app.config["HEARTBEAT_TIMEOUT_SECONDS"] = float(os.getenv("HEARTBEAT_TIMEOUT_SECONDS", "30"))
    app.config["LIVE_EVENT_WINDOW"] = int(os.getenv("LIVE_EVENT_WINDOW", "5"))
    app.config["TIMER_PERIOD_SECONDS"] = float(os.getenv("TIMER_PERIOD_SECONDS", "1.0"))

    # ===============================
    # Store + Synchronizers
    # ===============================
    if store is None:
        store = _build_store(app.config["STORE_BACKEND"])

    monitor = HomeMonitor(
        store,
        heartbeat_threshold=timedelta(seconds=app.config["HEARTBEAT_TIMEOUT_SECONDS"]),
        window_size=app.config["LIVE_EVENT_WINDOW"],
        timer_period=app.config["TIMER_PERIOD_SECONDS"],
    ).start()

    history_queue = UpdateQueue(name="history-owner")
    history = HistoryAggregator(store, history_queue)
    history.start()

    def shutdown():
        history.close()
        history_queue.close()
        monitor.close()
        store.close()

    atexit.register(shutdown)

    app.extensions["store"] = store
    app.extensions["home_monitor"] = monitor
    app.extensions["history"] = history
    app.extensions["identity"] = identity or FirebaseIdentity()
    app.extensions["shutdown"] = shutdown

    # ===============================
    # Register Blueprints
    # ===============================
    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(history_bp, url_prefix="/api")
    app.register_blueprint(profile_bp, url_prefix="/api")

    # ===============================
    # Health Check
    # ===============================
    @app.route("/health")
    def health():
        return {
            "status": "RUNNING",
            "service": "Rehab Companion Backend",
            "store": app.config["STORE_BACKEND"],
            "bridge_online": monitor.heartbeat.online.value,
        }

    return app


# ===============================
# Render / Local Run
# ===============================
if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
