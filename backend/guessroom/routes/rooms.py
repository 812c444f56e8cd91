from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game import snapshots

bp = Blueprint("rooms", __name__)


def _ctx():
    return current_app.extensions["guessroom"]


@bp.get("/rooms")
def list_rooms():
    ctx = _ctx()
    with ctx.lock:
        rooms = [snapshots.room_summary(r) for r in ctx.directory.list_rooms()]
    return jsonify({"rooms": rooms})


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    ctx = _ctx()
    with ctx.lock:
        room = ctx.directory.get_room(room_id)
        if not room:
            return jsonify({"error": "room_not_found"}), 404
        payload = snapshots.room_state(room, ctx.engine.get_round(room_id))
    return jsonify(payload)
