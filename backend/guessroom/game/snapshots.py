"""Value snapshots of rooms and rounds.

Everything returned here is a fresh copy: later mutations of the live
objects never change a payload that was already handed to the transport.
"""
from __future__ import annotations

import copy

from .models import Room, RoundState, User


def user_snapshot(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.display_name,
        "attributes": dict(user.attributes),
    }


def room_summary(room: Room) -> dict:
    host = room.members.get(room.host_id)
    return {
        "id": room.id,
        "name": room.name,
        "hostId": room.host_id,
        "hostName": host.display_name if host else None,
        "variant": room.variant,
        "memberCount": len(room.members),
        "maxPlayers": room.rules.max_players,
        "hasPassword": bool(room.password),
        "inProgress": room.in_progress,
    }


def round_public_state(state: RoundState) -> dict:
    payload = {
        "roomId": state.room_id,
        "phase": state.phase,
        "isActive": state.is_active,
        "round": state.round_number,
        "drawerId": state.drawer_id,
        "currentTurnPlayerId": state.current_turn_player_id,
        "roundDeadline": state.round_deadline,
        "scores": dict(state.scores),
        "playerOrder": list(state.player_order),
        "turnCursor": state.turn_cursor,
        "correctGuessers": sorted(state.correct_guessers),
        "wordHint": None,
    }

    if state.secret_word:
        if state.turn_based:
            payload["wordHint"] = state.masked_word()
            payload["guessedLetters"] = list(state.guessed_letters)
            payload["incorrectGuesses"] = state.incorrect_guesses
        else:
            payload["wordHint"] = "".join(" " if ch == " " else "_" for ch in state.secret_word)

    if state.phase in ("resolved", "ended") and state.secret_word:
        payload["word"] = state.secret_word

    return payload


def room_state(room: Room, state: RoundState | None = None) -> dict:
    payload = room_summary(room)
    payload["members"] = [user_snapshot(u) for u in room.members.values()]
    payload["round"] = round_public_state(state) if state else None
    return payload


def stroke_log(state: RoundState) -> list[dict]:
    return copy.deepcopy(state.strokes)
