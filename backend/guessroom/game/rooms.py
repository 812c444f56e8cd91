from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from .errors import CapacityError, NotFoundError, PreconditionError, ValidationError
from .models import VARIANTS, Room
from .registry import ConnectionRegistry, validate_name

if TYPE_CHECKING:
    from ..realtime.gateway import BroadcastGateway
    from .engine import RoundEngine

logger = logging.getLogger(__name__)

MAX_PASSWORD_LEN = 64


class RoomDirectory:
    """Owns every Room: creation, membership, host election and teardown."""

    def __init__(self, registry: ConnectionRegistry, gateway: BroadcastGateway) -> None:
        self._registry = registry
        self._gateway = gateway
        self._rooms: dict[str, Room] = {}
        self._engine: RoundEngine | None = None

    def bind_engine(self, engine: RoundEngine) -> None:
        self._engine = engine

    # -- lookups ------------------------------------------------------------

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def require_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise NotFoundError("room_not_found")
        return room

    def list_rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def rooms_of(self, user_id: str) -> list[Room]:
        return [r for r in self._rooms.values() if user_id in r.members]

    # -- operations ---------------------------------------------------------

    def create_room(self, host_id: str, name: str, password: str | None = None, variant: str = "drawing") -> Room:
        host = self._registry.get(host_id)
        if host is None:
            raise PreconditionError("profile_required")
        if not validate_name(name):
            raise ValidationError("invalid_room_name")
        if variant not in VARIANTS:
            raise ValidationError("unknown_variant")
        if password is not None and len(password) > MAX_PASSWORD_LEN:
            raise ValidationError("invalid_password")

        code = uuid.uuid4().hex
        while code in self._rooms:
            code = uuid.uuid4().hex

        room = Room(
            id=code,
            name=name.strip(),
            host_id=host_id,
            variant=variant,
            password=password or None,
        )
        room.members[host_id] = host
        self._rooms[code] = room
        logger.info("room created id=%s variant=%s host=%s", code, variant, host_id)

        self._gateway.join_audience(host_id, code)
        self._gateway.broadcast_room_state(room)
        self._gateway.broadcast_room_list(self.list_rooms())
        return room

    def join_room(self, user_id: str, room_id: str, password: str | None = None) -> Room:
        user = self._registry.get(user_id)
        if user is None:
            raise PreconditionError("profile_required")

        room = self.require_room(room_id)
        if user_id in room.members:
            raise PreconditionError("already_member")
        if room.password and password != room.password:
            raise PreconditionError("wrong_password")
        if room.in_progress:
            raise CapacityError("already_in_progress")
        if len(room.members) >= room.rules.max_players:
            raise CapacityError("room_full")

        room.members[user_id] = user
        logger.info("room join id=%s user=%s members=%d", room_id, user_id, len(room.members))

        self._gateway.join_audience(user_id, room_id)
        self._broadcast(room)
        return room

    def leave_room(self, user_id: str, room_id: str) -> Room | None:
        """Remove a member. Returns the room, or None when it was torn down."""
        room = self.require_room(room_id)
        if user_id not in room.members:
            raise PreconditionError("not_in_room")

        order = room.member_ids()
        index = order.index(user_id)
        del room.members[user_id]
        self._gateway.leave_audience(user_id, room_id)
        logger.info("room leave id=%s user=%s members=%d", room_id, user_id, len(room.members))

        if not room.members:
            self._close(room, reason="empty")
            return None

        # Short-handed teardown is per variant and only while a game runs;
        # lobby rooms and word-guess rooms wait for more players.
        rules = room.rules
        if room.in_progress and rules.close_when_short and len(room.members) < rules.min_players:
            self._close(room, reason="insufficient_players")
            return None

        host_changed = False
        if room.host_id == user_id:
            remaining = room.member_ids()
            room.host_id = remaining[index % len(remaining)]
            host_changed = True
            logger.info("host re-elected room=%s host=%s", room_id, room.host_id)

        if room.in_progress and self._engine is not None:
            self._engine.member_left(room, user_id)

        if host_changed:
            self._gateway.to_room(
                room_id,
                "room:host_changed",
                {"roomId": room_id, "hostId": room.host_id, "previousHostId": user_id},
            )
        self._broadcast(room)
        return room

    def terminate_room(self, room_id: str, requested_by: str) -> None:
        room = self.require_room(room_id)
        if requested_by != room.host_id:
            raise PreconditionError("only_host")
        self._close(room, reason="terminated")

    def mark_in_progress(self, room_id: str, in_progress: bool) -> None:
        # Callers broadcast once their own mutation is complete.
        room = self.require_room(room_id)
        room.in_progress = in_progress

    def broadcast_state(self, room_id: str) -> None:
        room = self._rooms.get(room_id)
        if room is not None:
            self._broadcast(room)

    # -- internals ----------------------------------------------------------

    def _round_of(self, room: Room):
        return self._engine.get_round(room.id) if self._engine is not None else None

    def _broadcast(self, room: Room) -> None:
        self._gateway.broadcast_room_state(room, self._round_of(room))
        self._gateway.broadcast_room_list(self.list_rooms())

    def _close(self, room: Room, reason: str) -> None:
        if self._engine is not None:
            self._engine.discard(room.id)
        self._rooms.pop(room.id, None)
        logger.info("room closed id=%s reason=%s", room.id, reason)

        self._gateway.to_room(room.id, "room:terminated", {"roomId": room.id, "reason": reason})
        self._gateway.close_audience(room.id)
        self._gateway.broadcast_room_list(self.list_rooms())
