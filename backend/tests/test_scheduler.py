import logging
from threading import RLock

from backend.guessroom.game.scheduler import TaskScheduler


class FakeSocketIO:
    """Collects background tasks instead of starting them."""

    def __init__(self):
        self.tasks = []
        self.sleeps = []

    def start_background_task(self, target, *args):
        self.tasks.append((target, args))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run(self, index):
        target, args = self.tasks[index]
        target(*args)


def _scheduler():
    sio = FakeSocketIO()
    return sio, TaskScheduler(sio, RLock())


def test_task_runs_once_and_clears_pending():
    sio, scheduler = _scheduler()
    calls = []

    scheduler.schedule("r1", 4, 2.5, lambda: calls.append("fired"))
    assert scheduler.pending("r1") == 4

    sio.run(0)

    assert calls == ["fired"]
    assert sio.sleeps == [2.5]
    assert scheduler.pending("r1") is None


def test_negative_delay_sleeps_zero():
    sio, scheduler = _scheduler()
    scheduler.schedule("r1", 1, -3, lambda: None)
    sio.run(0)
    assert sio.sleeps == [0.0]


def test_rescheduling_supersedes_earlier_task():
    sio, scheduler = _scheduler()
    calls = []

    scheduler.schedule("r1", 1, 5, lambda: calls.append(1))
    scheduler.schedule("r1", 2, 5, lambda: calls.append(2))
    assert scheduler.pending("r1") == 2

    sio.run(0)
    assert calls == []
    assert scheduler.pending("r1") == 2

    sio.run(1)
    assert calls == [2]


def test_cancelled_task_does_not_run():
    sio, scheduler = _scheduler()
    calls = []

    scheduler.schedule("r1", 1, 5, lambda: calls.append(1))
    scheduler.cancel("r1")
    sio.run(0)

    assert calls == []
    assert scheduler.pending("r1") is None


def test_rooms_are_independent():
    sio, scheduler = _scheduler()
    calls = []

    scheduler.schedule("r1", 1, 5, lambda: calls.append("r1"))
    scheduler.schedule("r2", 1, 5, lambda: calls.append("r2"))
    scheduler.cancel("r2")
    sio.run(0)
    sio.run(1)

    assert calls == ["r1"]


def test_failing_callback_is_logged(caplog):
    sio, scheduler = _scheduler()

    def boom():
        raise RuntimeError("boom")

    scheduler.schedule("r1", 3, 0, boom)
    with caplog.at_level(logging.ERROR):
        sio.run(0)

    assert "[timer-error] room=r1 generation=3" in caplog.text
    assert scheduler.pending("r1") is None


# -- with the round engine -----------------------------------------------------


def test_old_game_timer_does_not_touch_restarted_game(make_game):
    sio, scheduler = _scheduler()
    game = make_game(scheduler=scheduler)
    room, first = game.started("u1", "u2")
    old_task = len(sio.tasks) - 1

    game.engine.stop_game(room.id, "u1")
    game.engine.start_game(room.id, "u1")
    state = game.engine.get_round(room.id)
    assert state is not first
    assert state.generation != first.generation

    sio.run(old_task)

    assert state.is_active is True
    assert state.phase == "active"
    assert scheduler.pending(room.id) == state.generation

    # The new game's own deadline still fires.
    sio.run(len(sio.tasks) - 1)
    assert state.phase == "resolved"


def test_generations_never_repeat_across_games(make_game):
    sio, scheduler = _scheduler()
    game = make_game(scheduler=scheduler)
    room, first = game.started("u1", "u2")
    seen = {first.generation}

    for _ in range(3):
        game.engine.stop_game(room.id, "u1")
        game.engine.start_game(room.id, "u1")
        generation = game.engine.get_round(room.id).generation
        assert generation not in seen
        seen.add(generation)
