from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock

from flask_socketio import SocketIO

from .game.engine import GameSettings, RoundEngine
from .game.registry import ConnectionRegistry
from .game.rooms import RoomDirectory
from .game.scheduler import TaskScheduler
from .realtime.gateway import BroadcastGateway


@dataclass
class GameContext:
    """Process-wide game state, created once per app and handed to handlers."""

    registry: ConnectionRegistry
    directory: RoomDirectory
    engine: RoundEngine
    gateway: BroadcastGateway
    scheduler: TaskScheduler
    # Serializes every handler and timer callback into one logical sequence.
    lock: RLock = field(default_factory=RLock)


def build_context(
    socketio: SocketIO,
    settings: GameSettings,
    gateway: BroadcastGateway | None = None,
    scheduler: TaskScheduler | None = None,
    lock: RLock | None = None,
) -> GameContext:
    lock = lock or RLock()
    gateway = gateway or BroadcastGateway(socketio)
    scheduler = scheduler or TaskScheduler(socketio, lock)

    registry = ConnectionRegistry()
    directory = RoomDirectory(registry, gateway)
    engine = RoundEngine(directory, registry, gateway, scheduler, settings=settings)
    return GameContext(
        registry=registry,
        directory=directory,
        engine=engine,
        gateway=gateway,
        scheduler=scheduler,
        lock=lock,
    )
