"""
Noticeboard API Routes

Thin handlers: parse the request, call the core, wrap the result in the
``{success, data, message, pagination}`` envelope.
"""

from flask import Blueprint, g, jsonify, request

from ..core.broadcasts import DEFAULT_SORT, DEFAULT_STATUS, broadcast_view, stats_view
from ..errors import ValidationError
from ..utils.formatting import now_us
from .middleware import get_board, require_auth

api = Blueprint("api", __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError.single("body", "Request body must be a JSON object")
    return data


@api.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


# === Auth ===

@api.route("/auth/register", methods=["POST"])
def register():
    body = _json_body()
    user, token = get_board().auth.register(
        body.get("username"), body.get("email"), body.get("password")
    )
    return jsonify({
        "success": True,
        "token": token,
        "user": user,
        "message": "Registration successful",
    }), 201


@api.route("/auth/login", methods=["POST"])
def login():
    body = _json_body()
    user, token = get_board().auth.login(body.get("email"), body.get("password"))
    return jsonify({
        "success": True,
        "token": token,
        "user": user,
        "message": "Login successful",
    }), 200


@api.route("/auth/me", methods=["GET"])
@require_auth
def get_me():
    return jsonify({"success": True, "data": get_board().auth.get_profile(g.identity.id)}), 200


@api.route("/auth/me", methods=["PUT"])
@require_auth
def update_me():
    profile = get_board().auth.update_profile(g.identity.id, _json_body())
    return jsonify({
        "success": True,
        "data": profile,
        "message": "Profile updated successfully",
    }), 200


# === Broadcasts ===

@api.route("/broadcasts", methods=["GET"])
def list_broadcasts():
    args = request.args
    broadcasts, pagination = get_board().broadcasts.list_broadcasts(
        type=args.get("type"),
        urgency=args.get("urgency"),
        status=args.get("status", DEFAULT_STATUS),
        search=args.get("search"),
        sort=args.get("sort", DEFAULT_SORT),
        page=args.get("page", 1),
        limit=args.get("limit")
    )
    at_us = now_us()
    return jsonify({
        "success": True,
        "data": [broadcast_view(b, at_us) for b in broadcasts],
        "pagination": pagination.to_dict(),
    }), 200


@api.route("/broadcasts/<int:broadcast_id>", methods=["GET"])
def get_broadcast(broadcast_id: int):
    broadcast = get_board().broadcasts.get_broadcast(broadcast_id)
    return jsonify({"success": True, "data": broadcast_view(broadcast)}), 200


@api.route("/broadcasts", methods=["POST"])
@require_auth
def create_broadcast():
    broadcast = get_board().broadcasts.create_broadcast(_json_body(), g.identity.id)
    return jsonify({
        "success": True,
        "data": broadcast_view(broadcast),
        "message": "Broadcast created successfully",
    }), 201


@api.route("/broadcasts/<int:broadcast_id>", methods=["PUT"])
@require_auth
def update_broadcast(broadcast_id: int):
    broadcast = get_board().broadcasts.update_broadcast(
        broadcast_id, g.identity, _json_body()
    )
    return jsonify({
        "success": True,
        "data": broadcast_view(broadcast),
        "message": "Broadcast updated successfully",
    }), 200


@api.route("/broadcasts/<int:broadcast_id>", methods=["DELETE"])
@require_auth
def delete_broadcast(broadcast_id: int):
    get_board().broadcasts.delete_broadcast(broadcast_id, g.identity)
    return jsonify({"success": True, "message": "Broadcast deleted successfully"}), 200


@api.route("/broadcasts/stats/summary", methods=["GET"])
def broadcast_stats():
    stats = get_board().broadcasts.summary_stats()
    return jsonify({"success": True, "data": stats_view(stats)}), 200
