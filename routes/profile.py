# backend/routes/profile.py

from flask import Blueprint, request, jsonify, current_app
from firebase_admin import auth

profile_bp = Blueprint("profile", __name__)


@profile_bp.route("/profile", methods=["GET"])
def profile():
    user = current_app.extensions["identity"].current_user()
    if user is None:
        return jsonify({"signed_in": False, "user": None})
    return jsonify({"signed_in": True, "user": user.to_dict()})


@profile_bp.route("/sign-in", methods=["POST"])
def sign_in():
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or not data.get("id_token"):
        return jsonify({"error": "Missing id_token"}), 400

    try:
        user = current_app.extensions["identity"].sign_in(data["id_token"])
    except (ValueError, auth.InvalidIdTokenError, auth.UserNotFoundError) as e:
        print(f"Warning: Sign-in rejected: {e}")
        return jsonify({"error": "Invalid credentials"}), 401

    return jsonify({"signed_in": True, "user": user.to_dict()})


@profile_bp.route("/sign-out", methods=["POST"])
def sign_out():
    current_app.extensions["identity"].sign_out()
    return jsonify({"signed_in": False})
