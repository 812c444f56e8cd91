import os
import random
import sys
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

import pytest

# Ensure the repository root (containing the `backend` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from backend.guessroom.config import Config
from backend.guessroom.game.engine import GameSettings, RoundEngine
from backend.guessroom.game.registry import ConnectionRegistry
from backend.guessroom.game.rooms import RoomDirectory
from backend.guessroom.realtime.gateway import BroadcastGateway
from backend.guessroom.server import create_app


@dataclass
class Emission:
    event: str
    payload: dict
    to: Any = None
    skip_sid: Any = None


class RecordingGateway(BroadcastGateway):
    """Gateway that records emissions instead of talking to Socket.IO."""

    def __init__(self):
        super().__init__(socketio=None)
        self.sent: list[Emission] = []
        self.audiences: dict[str, set] = defaultdict(set)

    def _emit(self, event, payload, to=None, skip_sid=None):
        self.sent.append(Emission(event, payload, to, skip_sid))

    def join_audience(self, user_id, room_id):
        self.audiences[room_id].add(user_id)

    def leave_audience(self, user_id, room_id):
        self.audiences[room_id].discard(user_id)

    def close_audience(self, room_id):
        self.audiences.pop(room_id, None)

    def events(self, name: str) -> list[Emission]:
        return [e for e in self.sent if e.event == name]

    def last(self, name: str) -> Emission:
        found = self.events(name)
        assert found, f"no {name!r} emitted"
        return found[-1]

    def clear(self):
        self.sent.clear()


@dataclass
class Task:
    room_id: str
    generation: int
    delay: float
    callback: Callable[[], None]


class ManualScheduler:
    """Scheduler whose tasks only run when a test fires them."""

    def __init__(self):
        self.tasks: dict[str, Task] = {}
        self.history: list[Task] = []

    def schedule(self, room_id, generation, delay, callback):
        task = Task(room_id, generation, delay, callback)
        self.tasks[room_id] = task
        self.history.append(task)

    def cancel(self, room_id):
        self.tasks.pop(room_id, None)

    def pending(self, room_id):
        task = self.tasks.get(room_id)
        return task.generation if task else None

    def fire(self, room_id):
        task = self.tasks.pop(room_id)
        task.callback()
        return task


class Game:
    def __init__(self, settings=None, word_lists=None, scheduler=None):
        self.registry = ConnectionRegistry()
        self.gateway = RecordingGateway()
        self.scheduler = scheduler or ManualScheduler()
        self.directory = RoomDirectory(self.registry, self.gateway)
        self.engine = RoundEngine(
            self.directory,
            self.registry,
            self.gateway,
            self.scheduler,
            settings=settings or GameSettings(),
            word_lists=word_lists or {"drawing": ["apple"], "word-guess": ["kitten"]},
            rng=random.Random(7),
            clock=lambda: 1000.0,
        )

    def connect(self, *user_ids):
        for uid in user_ids:
            self.registry.register(uid, f"name-{uid}")

    def disconnect(self, user_id):
        self.registry.remove(user_id)
        for room in self.directory.rooms_of(user_id):
            self.directory.leave_room(user_id, room.id)

    def room(self, host, *others, variant="drawing", password=None):
        self.connect(host, *others)
        room = self.directory.create_room(host, "table", password=password, variant=variant)
        for uid in others:
            self.directory.join_room(uid, room.id, password=password)
        return room

    def started(self, host, *others, variant="drawing"):
        room = self.room(host, *others, variant=variant)
        self.engine.start_game(room.id, host)
        return room, self.engine.get_round(room.id)


@pytest.fixture()
def game():
    return Game()


@pytest.fixture()
def make_game():
    return Game


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def app_socketio(scheduler):
    return create_app(TestConfig, scheduler=scheduler)


@pytest.fixture()
def flask_app(app_socketio):
    return app_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def player(app_socketio):
    """Factory: a connected Socket.IO test client with a submitted profile."""
    app, socketio = app_socketio
    clients = []

    def _connect(name):
        sio_client = socketio.test_client(app, flask_test_client=app.test_client())
        ack = sio_client.emit("user:profile", {"name": name}, callback=True)
        assert ack["ok"] is True
        sio_client.user_id = ack["user"]["id"]
        sio_client.get_received()
        clients.append(sio_client)
        return sio_client

    yield _connect
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except Exception:
            pass
