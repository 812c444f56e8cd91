from __future__ import annotations

import logging
from typing import Iterable

from flask_socketio import SocketIO

from ..game import snapshots
from ..game.models import Room, RoundState, User

logger = logging.getLogger(__name__)


class BroadcastGateway:
    """The only path from game state to connected clients.

    Socket.IO rooms double as broadcast audiences: a game room's audience is
    the Socket.IO room named after its id, and every connection is its own
    Socket.IO room named after its session id. The gateway never mutates game
    state; it only builds snapshots and emits them.
    """

    def __init__(self, socketio: SocketIO | None, namespace: str = "/") -> None:
        self._socketio = socketio
        self._namespace = namespace

    # -- transport primitives ---------------------------------------------

    def _emit(self, event: str, payload: dict, to: str | None = None, skip_sid: str | None = None) -> None:
        self._socketio.emit(event, payload, to=to, skip_sid=skip_sid, namespace=self._namespace)

    def join_audience(self, user_id: str, room_id: str) -> None:
        self._socketio.server.enter_room(user_id, room_id, namespace=self._namespace)

    def leave_audience(self, user_id: str, room_id: str) -> None:
        self._socketio.server.leave_room(user_id, room_id, namespace=self._namespace)

    def close_audience(self, room_id: str) -> None:
        self._socketio.close_room(room_id, namespace=self._namespace)

    # -- broadcasts ---------------------------------------------------------

    def broadcast_user_list(self, users: Iterable[User]) -> None:
        self._emit("user:list", {"users": [snapshots.user_snapshot(u) for u in users]})

    def broadcast_room_list(self, rooms: Iterable[Room]) -> None:
        self._emit("room:list", {"rooms": [snapshots.room_summary(r) for r in rooms]})

    def broadcast_room_state(self, room: Room, state: RoundState | None = None) -> None:
        self._emit("room:state", snapshots.room_state(room, state), to=room.id)

    def broadcast_round_state(self, state: RoundState) -> None:
        self._emit("round:state", snapshots.round_public_state(state), to=state.room_id)

    def send_secret_word(self, state: RoundState) -> None:
        if not state.drawer_id or not state.secret_word:
            return
        self._emit(
            "round:word",
            {"roomId": state.room_id, "round": state.round_number, "word": state.secret_word},
            to=state.drawer_id,
        )

    def to_room(self, room_id: str, event: str, payload: dict, skip: str | None = None) -> None:
        self._emit(event, dict(payload), to=room_id, skip_sid=skip)

    def to_user(self, user_id: str, event: str, payload: dict) -> None:
        self._emit(event, dict(payload), to=user_id)
