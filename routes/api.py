# backend/routes/api.py

from flask import Blueprint, request, jsonify, current_app
from services.control import VALID_COMMANDS

api_bp = Blueprint("api", __name__)


def _monitor():
    return current_app.extensions["home_monitor"]


# ===============================
# GET: Home State
# ===============================
@api_bp.route("/state", methods=["GET"])
def get_state():
    """
    Status flags, bridge liveness, gauge, recent events and session timer
    """
    return jsonify(_monitor().snapshot().to_dict())


# ===============================
# POST: Arm / Disarm
# ===============================
@api_bp.route("/arm", methods=["POST"])
def arm():
    sent = _monitor().commands.arm()
    return jsonify({"status": "OK", "is_armed": True, "sent": sent})


@api_bp.route("/disarm", methods=["POST"])
def disarm():
    sent = _monitor().commands.disarm()
    return jsonify({"status": "OK", "is_armed": False, "sent": sent})


# ===============================
# POST: Sessions
# ===============================
@api_bp.route("/session/start", methods=["POST"])
def start_session():
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or not data.get("limb"):
        return jsonify({"error": "Missing limb"}), 400

    session_id = _monitor().commands.start_session(str(data["limb"]))
    return jsonify({"status": "OK", "session_id": session_id})


@api_bp.route("/session/stop", methods=["POST"])
def stop_session():
    sent = _monitor().commands.stop_session()
    return jsonify({"status": "OK", "sent": sent})


# ===============================
# POST: Calibration
# ===============================
@api_bp.route("/calibrate", methods=["POST"])
def calibrate():
    """
    Last command wins; the bridge does not acknowledge
    """
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or "command" not in data:
        return jsonify({"error": "Missing calibration command"}), 400

    command = str(data["command"]).upper()

    if command not in VALID_COMMANDS:
        return jsonify({
            "error": "Invalid command",
            "allowed": VALID_COMMANDS
        }), 400

    sent = _monitor().commands.calibrate(command)
    return jsonify({"status": "OK", "command": command, "sent": sent})


# ===============================
# POST: Manual LED / Buzzer
# ===============================
def _read_switch():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("on"), bool):
        return None
    return data["on"]


@api_bp.route("/led", methods=["POST"])
def set_led():
    on = _read_switch()
    if on is None:
        return jsonify({"error": "Missing boolean 'on'"}), 400

    sent = _monitor().commands.set_led(on)
    return jsonify({"status": "OK", "led_on": on, "sent": sent})


@api_bp.route("/buzzer", methods=["POST"])
def set_buzzer():
    on = _read_switch()
    if on is None:
        return jsonify({"error": "Missing boolean 'on'"}), 400

    sent = _monitor().commands.set_buzzer(on)
    return jsonify({"status": "OK", "buzzer_on": on, "sent": sent})
