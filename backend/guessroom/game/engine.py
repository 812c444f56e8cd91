from __future__ import annotations

import copy
import itertools
import json
import logging
import random
import time
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Mapping

from . import snapshots
from .errors import PreconditionError, ValidationError
from .models import Room, RoundState
from .registry import ConnectionRegistry
from .words import pick_word, words_for

if TYPE_CHECKING:
    from ..realtime.gateway import BroadcastGateway
    from .rooms import RoomDirectory
    from .scheduler import TaskScheduler

logger = logging.getLogger(__name__)

MAX_TEXT_LEN = 200
MAX_STROKE_BYTES = 16_384


@dataclass(frozen=True)
class GameSettings:
    round_duration_sec: float = 60
    turn_duration_sec: float = 20
    reveal_delay_sec: float = 3
    points_guesser: int = 10
    points_drawer: int = 5
    win_score: int = 50
    max_incorrect_guesses: int = 6
    max_strokes: int = 5000

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> GameSettings:
        return cls(
            round_duration_sec=int(config.get("ROUND_DURATION_SEC", 60)),
            turn_duration_sec=int(config.get("TURN_DURATION_SEC", 20)),
            reveal_delay_sec=int(config.get("REVEAL_DELAY_SEC", 3)),
            points_guesser=int(config.get("POINTS_GUESSER", 10)),
            points_drawer=int(config.get("POINTS_DRAWER", 5)),
            win_score=int(config.get("WIN_SCORE", 50)),
            max_incorrect_guesses=int(config.get("MAX_INCORRECT_GUESSES", 6)),
            max_strokes=int(config.get("MAX_STROKES", 5000)),
        )


def normalize_guess(text: str) -> str:
    return text.strip().lower()


def _clean_text(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("invalid_text")
    if len(text) > MAX_TEXT_LEN:
        raise ValidationError("text_too_long")
    return text


class RoundEngine:
    """Per-room game state: rotation, words, timers, guesses and scores.

    Reads Room membership from the directory and asks the directory for every
    Room change. Every method expects to be called from the single game
    sequence (the caller holds the context lock).
    """

    def __init__(
        self,
        directory: RoomDirectory,
        registry: ConnectionRegistry,
        gateway: BroadcastGateway,
        scheduler: TaskScheduler,
        settings: GameSettings | None = None,
        word_lists: Mapping[str, list[str]] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = directory
        self._registry = registry
        self._gateway = gateway
        self._scheduler = scheduler
        self.settings = settings or GameSettings()
        self._word_lists = dict(word_lists or {})
        self._rng = rng or random.Random()
        self._clock = clock
        self._rounds: dict[str, RoundState] = {}
        # Shared by every room and game; a generation is never handed out twice.
        self._generations = itertools.count(1)
        directory.bind_engine(self)

    def get_round(self, room_id: str) -> RoundState | None:
        return self._rounds.get(room_id)

    # -- game lifecycle -----------------------------------------------------

    def start_game(self, room_id: str, requested_by: str) -> RoundState:
        room = self._directory.require_room(room_id)
        if requested_by != room.host_id:
            raise PreconditionError("only_host")
        if room.in_progress or room_id in self._rounds:
            raise PreconditionError("already_in_progress")

        rules = room.rules
        order = room.member_ids()
        if len(order) < rules.min_players:
            raise PreconditionError("not_enough_players")

        state = RoundState(
            room_id=room_id,
            turn_based=rules.turn_based,
            scores={pid: 0 for pid in order},
            player_order=order,
            turn_cursor=-1,
        )
        self._rounds[room_id] = state
        self._directory.mark_in_progress(room_id, True)
        logger.info("game started room=%s variant=%s players=%d", room_id, room.variant, len(order))

        self.advance_turn(room_id)
        self._directory.broadcast_state(room_id)
        return state

    def stop_game(self, room_id: str, requested_by: str) -> None:
        room = self._directory.require_room(room_id)
        if requested_by != room.host_id:
            raise PreconditionError("only_host")
        state = self._rounds.get(room_id)
        if state is None:
            raise PreconditionError("no_game")
        self._end_game(room, state, reason="stopped")

    def discard(self, room_id: str) -> None:
        """Drop all round state for a room that is going away."""
        self._scheduler.cancel(room_id)
        state = self._rounds.pop(room_id, None)
        if state is not None:
            self._bump(state)
            state.is_active = False
            logger.info("round state cleared room=%s", room_id)

    # -- rounds ---------------------------------------------------------------

    def advance_turn(self, room_id: str) -> None:
        state = self._rounds.get(room_id)
        room = self._directory.get_room(room_id)
        if state is None or room is None:
            return

        self._scheduler.cancel(room_id)
        self._bump(state)

        rules = room.rules
        live = [pid for pid in room.member_ids() if self._registry.is_connected(pid)]
        if len(live) < rules.min_players:
            self._end_game(room, state, reason="insufficient_players")
            return

        cursor = self._next_cursor(state, live)
        state.player_order = live
        state.turn_cursor = cursor
        state.drawer_id = live[cursor]

        words = self._word_lists.get(room.variant) or words_for(room.variant)
        used = state.used_words if rules.tracks_used_words else None
        state.secret_word = pick_word(words, used, self._rng)

        state.round_number += 1
        state.phase = "active"
        state.is_active = True
        state.correct_guessers = set()
        state.strokes = []
        state.guessed_letters = []
        state.incorrect_guesses = 0

        if rules.turn_based:
            state.current_turn_player_id = self._next_guesser(state, state.drawer_id)
            duration = self.settings.turn_duration_sec
            action = "turn_deadline"
        else:
            state.current_turn_player_id = None
            duration = self.settings.round_duration_sec
            action = "round_deadline"

        state.round_deadline = self._clock() + duration
        self._schedule(state, duration, action)
        logger.info(
            "round started room=%s round=%d drawer=%s generation=%d",
            room_id, state.round_number, state.drawer_id, state.generation,
        )

        if not rules.turn_based:
            self._gateway.to_room(room_id, "draw:clear", {"roomId": room_id})
        self._gateway.broadcast_round_state(state)
        self._gateway.send_secret_word(state)

    def handle_turn_timeout(self, room_id: str) -> None:
        state = self._rounds.get(room_id)
        room = self._directory.get_room(room_id)
        if state is None or room is None or not state.is_active or not state.turn_based:
            return
        logger.info("turn timed out room=%s player=%s", room_id, state.current_turn_player_id)
        self._pass_turn(state)

    # -- player input -------------------------------------------------------

    def submit_guess(self, room_id: str, user_id: str, text: Any, to: str | None = None) -> bool:
        """Score ``text`` as a guess, or relay it as chat.

        Returns True only when the text was a correct guess.
        """
        room = self._directory.require_room(room_id)
        if user_id not in room.members:
            raise PreconditionError("not_in_room")
        text = _clean_text(text)

        state = self._rounds.get(room_id)
        if state is None or not state.is_active or not state.secret_word:
            self.relay_chat(room, user_id, text, to)
            return False

        if self._leaks_word(room, state, user_id, text):
            self._gateway.to_user(
                user_id,
                "chat:message",
                {"roomId": room_id, "from": "system", "text": "Message withheld: it contains the word."},
            )
            return False

        if to is not None or state.turn_based or user_id == state.drawer_id:
            self.relay_chat(room, user_id, text, to)
            return False

        if normalize_guess(text) != normalize_guess(state.secret_word):
            self.relay_chat(room, user_id, text)
            return False

        state.correct_guessers.add(user_id)
        self._award(state, user_id, self.settings.points_guesser)
        self._award(state, state.drawer_id, self.settings.points_drawer)
        logger.info("correct guess room=%s round=%d by=%s", room_id, state.round_number, user_id)
        self._gateway.to_room(
            room_id,
            "guess:correct",
            {"roomId": room_id, "round": state.round_number, "by": user_id, "scores": dict(state.scores)},
        )

        winner = self._winner(state)
        if winner is not None:
            self._resolve_round(room, state, reason="guessed")
        elif set(state.guessers()) <= state.correct_guessers:
            self._resolve_round(room, state, reason="all_guessed")
        else:
            self._gateway.broadcast_round_state(state)
        return True

    def relay_chat(self, room: Room, user_id: str, text: str, to: str | None = None) -> None:
        sender = room.members.get(user_id)
        payload = {
            "roomId": room.id,
            "from": user_id,
            "name": sender.display_name if sender else None,
            "attributes": dict(sender.attributes) if sender else {},
            "text": text,
            "to": to,
        }
        if to is None:
            self._gateway.to_room(room.id, "chat:message", payload)
            return
        if to not in room.members:
            raise PreconditionError("recipient_not_in_room")
        self._gateway.to_user(to, "chat:message", payload)
        if to != user_id:
            self._gateway.to_user(user_id, "chat:message", payload)

    def submit_draw_stroke(self, room_id: str, user_id: str, stroke: Any) -> None:
        room = self._directory.require_room(room_id)
        state = self._require_drawer(room, user_id)

        if not isinstance(stroke, dict) or not stroke:
            raise ValidationError("invalid_stroke")
        try:
            size = len(json.dumps(stroke))
        except (TypeError, ValueError):
            raise ValidationError("invalid_stroke") from None
        if size > MAX_STROKE_BYTES:
            raise ValidationError("stroke_too_large")
        if len(state.strokes) >= self.settings.max_strokes:
            raise ValidationError("stroke_log_full")

        entry = copy.deepcopy(stroke)
        state.strokes.append(entry)
        self._gateway.to_room(
            room_id,
            "draw:stroke",
            {
                "roomId": room_id,
                "round": state.round_number,
                "seq": len(state.strokes) - 1,
                "stroke": copy.deepcopy(entry),
            },
            skip=user_id,
        )

    def clear_canvas(self, room_id: str, user_id: str) -> None:
        room = self._directory.require_room(room_id)
        state = self._require_drawer(room, user_id)
        state.strokes = []
        self._gateway.to_room(room_id, "draw:clear", {"roomId": room_id, "round": state.round_number})

    def submit_letter_guess(self, room_id: str, user_id: str, letter: Any) -> bool:
        """Apply one letter guess. Returns True when the letter is in the word."""
        room = self._directory.require_room(room_id)
        if not isinstance(letter, str):
            raise ValidationError("invalid_letter")
        ch = letter.strip().lower()
        if len(ch) != 1 or not ch.isascii() or not ch.isalpha():
            raise ValidationError("invalid_letter")

        state = self._rounds.get(room_id)
        if state is None or not state.is_active or not state.turn_based:
            raise PreconditionError("round_inactive")
        if user_id != state.current_turn_player_id:
            raise PreconditionError("not_your_turn")
        if ch in state.guessed_letters:
            raise PreconditionError("letter_already_guessed")

        state.guessed_letters.append(ch)
        hit = ch in (state.secret_word or "")
        if not hit:
            state.incorrect_guesses += 1
        masked = state.masked_word() or ""

        self._gateway.to_room(
            room_id,
            "guess:letter",
            {
                "roomId": room_id,
                "round": state.round_number,
                "by": user_id,
                "letter": ch,
                "hit": hit,
                "wordHint": masked,
                "incorrectGuesses": state.incorrect_guesses,
                "maxIncorrectGuesses": self.settings.max_incorrect_guesses,
            },
        )

        if hit and "_" not in masked:
            self._award(state, user_id, self.settings.points_guesser)
            self._resolve_round(room, state, reason="solved", solver_id=user_id)
        elif not hit and state.incorrect_guesses >= self.settings.max_incorrect_guesses:
            self._award(state, state.drawer_id, self.settings.points_drawer)
            self._resolve_round(room, state, reason="lost")
        elif hit:
            # A hit keeps the turn; only the turn clock restarts.
            self._pass_turn(state, next_player=user_id)
        else:
            self._pass_turn(state)
        return hit

    def sync(self, room_id: str, user_id: str) -> dict:
        """Full replay payload for a member: room, round and stroke log."""
        room = self._directory.require_room(room_id)
        if user_id not in room.members:
            raise PreconditionError("not_in_room")

        state = self._rounds.get(room_id)
        payload = {
            "roomId": room_id,
            "room": snapshots.room_state(room, state),
            "strokes": snapshots.stroke_log(state) if state else [],
        }
        self._gateway.to_user(user_id, "game:sync", payload)
        if state is not None and state.is_active and state.drawer_id == user_id:
            self._gateway.send_secret_word(state)
        return payload

    # -- membership -----------------------------------------------------------

    def member_left(self, room: Room, user_id: str) -> None:
        """Called by the directory after ``user_id`` left ``room``."""
        state = self._rounds.get(room.id)
        if state is None:
            return

        was_drawer = state.drawer_id == user_id
        was_turn = state.current_turn_player_id == user_id
        successor = self._next_guesser(state, user_id) if was_turn else None
        if successor == user_id:
            successor = None

        self._drop_from_order(state, user_id)
        state.correct_guessers.discard(user_id)

        if len(state.player_order) < room.rules.min_players:
            self._end_game(room, state, reason="insufficient_players")
            return
        if not state.is_active:
            return

        if was_drawer:
            self._resolve_round(room, state, reason="drawer_left", delay=0)
        elif was_turn:
            self._pass_turn(state, next_player=successor)
        elif room.rules.tracks_guessers and set(state.guessers()) <= state.correct_guessers:
            self._resolve_round(room, state, reason="all_guessed")
        else:
            self._gateway.broadcast_round_state(state)

    # -- internals ------------------------------------------------------------

    def _bump(self, state: RoundState) -> None:
        state.generation = next(self._generations)

    def _schedule(self, state: RoundState, delay: float, action: str) -> None:
        generation = state.generation
        self._scheduler.schedule(
            state.room_id,
            generation,
            delay,
            partial(self._on_timer, state.room_id, generation, action),
        )

    def _on_timer(self, room_id: str, generation: int, action: str) -> None:
        state = self._rounds.get(room_id)
        room = self._directory.get_room(room_id)
        if state is None or room is None or state.generation != generation:
            logger.debug("stale timer ignored room=%s generation=%s action=%s", room_id, generation, action)
            return

        if action == "round_deadline":
            self._resolve_round(room, state, reason="timeout")
        elif action == "turn_deadline":
            self.handle_turn_timeout(room_id)
        elif action == "next_round":
            self.advance_turn(room_id)

    def _require_drawer(self, room: Room, user_id: str) -> RoundState:
        state = self._rounds.get(room.id)
        if state is None or not state.is_active or state.turn_based:
            raise PreconditionError("round_inactive")
        if user_id != state.drawer_id:
            raise PreconditionError("not_drawer")
        return state

    def _leaks_word(self, room: Room, state: RoundState, user_id: str, text: str) -> bool:
        knows_word = user_id == state.drawer_id or (
            room.rules.tracks_guessers and user_id in state.correct_guessers
        )
        if not knows_word or not state.secret_word:
            return False
        return normalize_guess(state.secret_word) in normalize_guess(text)

    @staticmethod
    def _next_cursor(state: RoundState, live: list[str]) -> int:
        old = state.player_order
        if state.turn_cursor < 0 or not old:
            return 0
        for step in range(1, len(old) + 1):
            candidate = old[(state.turn_cursor + step) % len(old)]
            if candidate in live:
                return live.index(candidate)
        return 0

    @staticmethod
    def _next_guesser(state: RoundState, after: str | None) -> str | None:
        order = state.player_order
        start = order.index(after) if after in order else -1
        for step in range(1, len(order) + 1):
            candidate = order[(start + step) % len(order)]
            if candidate != state.drawer_id:
                return candidate
        return None

    @staticmethod
    def _drop_from_order(state: RoundState, user_id: str) -> None:
        if user_id not in state.player_order:
            return
        idx = state.player_order.index(user_id)
        state.player_order.pop(idx)
        if not state.player_order:
            state.turn_cursor = -1
        elif idx <= state.turn_cursor:
            # Keep the cursor on a valid index whose successor is the next drawer.
            state.turn_cursor = (state.turn_cursor - 1) % len(state.player_order)

    def _pass_turn(self, state: RoundState, next_player: str | None = None) -> None:
        if next_player is None:
            next_player = self._next_guesser(state, state.current_turn_player_id)

        self._scheduler.cancel(state.room_id)
        self._bump(state)
        state.current_turn_player_id = next_player
        state.round_deadline = self._clock() + self.settings.turn_duration_sec
        self._schedule(state, self.settings.turn_duration_sec, "turn_deadline")
        self._gateway.broadcast_round_state(state)

    @staticmethod
    def _award(state: RoundState, player_id: str | None, points: int) -> None:
        # Only players of this game ever get a score entry.
        if player_id is not None and player_id in state.scores:
            state.scores[player_id] += points

    def _winner(self, state: RoundState) -> str | None:
        if not state.scores:
            return None
        best = max(state.scores, key=lambda pid: state.scores[pid])
        if state.scores[best] >= self.settings.win_score:
            return best
        return None

    def _resolve_round(
        self,
        room: Room,
        state: RoundState,
        reason: str,
        delay: float | None = None,
        solver_id: str | None = None,
    ) -> None:
        self._scheduler.cancel(room.id)
        self._bump(state)
        state.is_active = False
        state.phase = "resolved"
        state.current_turn_player_id = None
        state.round_deadline = None
        logger.info("round resolved room=%s round=%d reason=%s", room.id, state.round_number, reason)

        self._gateway.to_room(
            room.id,
            "round:end",
            {
                "roomId": room.id,
                "round": state.round_number,
                "reason": reason,
                "word": state.secret_word,
                "drawerId": state.drawer_id,
                "solverId": solver_id,
                "scores": dict(state.scores),
            },
        )

        winner = self._winner(state)
        if winner is not None:
            self._end_game(room, state, reason="score_reached", winner_id=winner)
            return

        if delay is None:
            delay = self.settings.reveal_delay_sec
        if delay <= 0:
            self.advance_turn(room.id)
            return

        state.round_deadline = self._clock() + delay
        self._schedule(state, delay, "next_round")
        self._gateway.broadcast_round_state(state)

    def _end_game(self, room: Room, state: RoundState, reason: str, winner_id: str | None = None) -> None:
        self._scheduler.cancel(room.id)
        self._bump(state)
        state.is_active = False
        state.phase = "ended"
        self._rounds.pop(room.id, None)
        self._directory.mark_in_progress(room.id, False)
        logger.info("game over room=%s reason=%s winner=%s", room.id, reason, winner_id)

        self._gateway.to_room(
            room.id,
            "game:over",
            {
                "roomId": room.id,
                "reason": reason,
                "winnerId": winner_id,
                "scores": dict(state.scores),
                "rounds": state.round_number,
            },
        )
        self._directory.broadcast_state(room.id)
