from __future__ import annotations

import logging
from threading import RLock
from typing import Callable

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)


class TaskScheduler:
    """One pending delayed task per room, keyed by (room_id, generation).

    Scheduling a task for a room replaces whatever was pending for it. When a
    background task wakes up it only runs if its generation is still the
    pending one for the room, and it runs under the shared game lock.
    """

    def __init__(self, socketio: SocketIO, lock: RLock) -> None:
        self._socketio = socketio
        self._lock = lock
        self._pending: dict[str, int] = {}

    def schedule(self, room_id: str, generation: int, delay: float, callback: Callable[[], None]) -> None:
        with self._lock:
            self._pending[room_id] = generation
        self._socketio.start_background_task(self._run, room_id, generation, delay, callback)

    def cancel(self, room_id: str) -> None:
        with self._lock:
            self._pending.pop(room_id, None)

    def pending(self, room_id: str) -> int | None:
        with self._lock:
            return self._pending.get(room_id)

    def _run(self, room_id: str, generation: int, delay: float, callback: Callable[[], None]) -> None:
        self._socketio.sleep(max(0.0, delay))
        with self._lock:
            if self._pending.get(room_id) != generation:
                logger.debug("[timer-skip] room=%s generation=%s superseded", room_id, generation)
                return
            del self._pending[room_id]
            logger.debug("[timer-fire] room=%s generation=%s", room_id, generation)
            try:
                callback()
            except Exception:
                logger.exception("[timer-error] room=%s generation=%s", room_id, generation)
