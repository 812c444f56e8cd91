from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..context import GameContext
from ..game import snapshots
from ..game.errors import GameError
from ..utils.ip import get_client_ip
from .events import ChatText, CreateRoom, DrawStroke, JoinRoom, LetterGuess, ProfileSubmit, RoomRef

logger = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, ctx: GameContext) -> None:
    def _run(error_event: str, parse: Callable[[Any], Any], data: Any, op: Callable[[Any], dict | None]) -> dict:
        """Parse, apply under the game lock, and turn refusals into acks.

        A refused operation only ever answers the sender.
        """
        sid = request.sid
        try:
            msg = parse(data)
            with ctx.lock:
                result = op(msg)
        except GameError as exc:
            logger.debug("rejected sid=%s event=%s code=%s", sid, error_event, exc.code)
            if exc.notify:
                emit(error_event, {"error": exc.code})
            return {"ok": False, "error": exc.code}
        return {"ok": True, **(result or {})}

    @socketio.on("connect")
    def on_connect():
        logger.info("connect sid=%s ip=%s", request.sid, get_client_ip(request))
        with ctx.lock:
            emit("room:list", {"rooms": [snapshots.room_summary(r) for r in ctx.directory.list_rooms()]})
            emit("user:list", {"users": [snapshots.user_snapshot(u) for u in ctx.registry.list_users()]})

    @socketio.on("user:profile")
    def user_profile(data):
        def op(msg: ProfileSubmit) -> dict:
            user = ctx.registry.register(request.sid, msg.name, msg.attributes)
            for room in ctx.directory.rooms_of(user.id):
                ctx.directory.broadcast_state(room.id)
            ctx.gateway.broadcast_user_list(ctx.registry.list_users())
            return {"user": snapshots.user_snapshot(user)}

        return _run("room:error", ProfileSubmit.parse, data, op)

    @socketio.on("room:list")
    def room_list(data=None):
        def op(_msg) -> dict:
            return {"rooms": [snapshots.room_summary(r) for r in ctx.directory.list_rooms()]}

        return _run("room:error", lambda d: d, data, op)

    @socketio.on("room:create")
    def room_create(data):
        def op(msg: CreateRoom) -> dict:
            room = ctx.directory.create_room(request.sid, msg.name, msg.password, msg.variant)
            return {"room": snapshots.room_state(room)}

        return _run("room:error", CreateRoom.parse, data, op)

    @socketio.on("room:join")
    def room_join(data):
        def op(msg: JoinRoom) -> dict:
            room = ctx.directory.join_room(request.sid, msg.room_id, msg.password)
            return {"room": snapshots.room_state(room, ctx.engine.get_round(room.id))}

        return _run("room:error", JoinRoom.parse, data, op)

    @socketio.on("room:leave")
    def room_leave(data):
        def op(msg: RoomRef) -> None:
            ctx.directory.leave_room(request.sid, msg.room_id)

        return _run("room:error", RoomRef.parse, data, op)

    @socketio.on("room:terminate")
    def room_terminate(data):
        def op(msg: RoomRef) -> None:
            ctx.directory.terminate_room(msg.room_id, request.sid)

        return _run("room:error", RoomRef.parse, data, op)

    @socketio.on("game:start")
    def game_start(data):
        def op(msg: RoomRef) -> None:
            ctx.engine.start_game(msg.room_id, request.sid)

        return _run("game:error", RoomRef.parse, data, op)

    @socketio.on("game:stop")
    def game_stop(data):
        def op(msg: RoomRef) -> None:
            ctx.engine.stop_game(msg.room_id, request.sid)

        return _run("game:error", RoomRef.parse, data, op)

    @socketio.on("game:sync")
    def game_sync(data):
        def op(msg: RoomRef) -> dict:
            payload = ctx.engine.sync(msg.room_id, request.sid)
            return {"round": payload["room"]["round"], "strokes": payload["strokes"]}

        return _run("game:error", RoomRef.parse, data, op)

    def _guess_or_chat(data):
        def op(msg: ChatText) -> dict:
            correct = ctx.engine.submit_guess(msg.room_id, request.sid, msg.text, to=msg.to)
            return {"correct": correct}

        return _run("game:error", ChatText.parse, data, op)

    socketio.on_event("guess:submit", _guess_or_chat)
    socketio.on_event("chat:message", _guess_or_chat)

    @socketio.on("draw:stroke")
    def draw_stroke(data):
        def op(msg: DrawStroke) -> None:
            ctx.engine.submit_draw_stroke(msg.room_id, request.sid, msg.stroke)

        return _run("game:error", DrawStroke.parse, data, op)

    @socketio.on("draw:clear")
    def draw_clear(data):
        def op(msg: RoomRef) -> None:
            ctx.engine.clear_canvas(msg.room_id, request.sid)

        return _run("game:error", RoomRef.parse, data, op)

    @socketio.on("guess:letter")
    def guess_letter(data):
        def op(msg: LetterGuess) -> dict:
            hit = ctx.engine.submit_letter_guess(msg.room_id, request.sid, msg.letter)
            return {"hit": hit}

        return _run("game:error", LetterGuess.parse, data, op)

    @socketio.on("disconnect")
    def on_disconnect(*_args):
        sid = request.sid
        logger.info("disconnect sid=%s", sid)
        with ctx.lock:
            user = ctx.registry.remove(sid)
            for room in ctx.directory.rooms_of(sid):
                ctx.directory.leave_room(sid, room.id)
            if user is not None:
                ctx.gateway.broadcast_user_list(ctx.registry.list_users())
