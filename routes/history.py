# backend/routes/history.py

from flask import Blueprint, jsonify, current_app
from services.stats import get_weekly_event_counts

history_bp = Blueprint("history", __name__)


# ===============================
# Session History (grouped by day)
# ===============================
@history_bp.route("/history", methods=["GET"])
def session_history():
    groups = current_app.extensions["history"].groups.value
    return jsonify({"groups": [g.to_dict() for g in groups]})


@history_bp.route("/history/<session_id>", methods=["DELETE"])
def delete_session(session_id):
    deleted = current_app.extensions["history"].delete_session(session_id)
    if not deleted:
        return jsonify({"error": "Could not delete session", "id": session_id}), 502
    return jsonify({"status": "DELETED", "id": session_id})


# ===============================
# Weekly Event Stats
# ===============================
@history_bp.route("/stats/weekly", methods=["GET"])
def weekly_stats():
    store = current_app.extensions["store"]
    return jsonify({"last_7_days": get_weekly_event_counts(store)})
