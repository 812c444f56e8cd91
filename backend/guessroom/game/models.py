from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


Variant = Literal["drawing", "word-guess"]
RoundPhase = Literal["lobby", "active", "resolved", "ended"]


@dataclass(frozen=True)
class VariantRules:
    name: str
    min_players: int
    max_players: int
    # Letter-by-letter guessing with a rotating current-turn player.
    turn_based: bool = False
    tracks_used_words: bool = False
    tracks_guessers: bool = False
    # Tear the whole room down when a running game drops below min_players.
    close_when_short: bool = True


VARIANTS: dict[str, VariantRules] = {
    "drawing": VariantRules(
        name="drawing",
        min_players=2,
        max_players=12,
        tracks_used_words=True,
        tracks_guessers=True,
        close_when_short=True,
    ),
    "word-guess": VariantRules(
        name="word-guess",
        min_players=2,
        max_players=4,
        turn_based=True,
        close_when_short=False,
    ),
}


def rules_for(variant: str) -> VariantRules:
    return VARIANTS[variant]


@dataclass
class User:
    id: str
    display_name: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Room:
    id: str
    name: str
    host_id: str
    variant: Variant = "drawing"
    password: str | None = None
    in_progress: bool = False
    # Insertion ordered; membership order drives host re-election.
    members: dict[str, User] = field(default_factory=dict)

    @property
    def rules(self) -> VariantRules:
        return rules_for(self.variant)

    def member_ids(self) -> list[str]:
        return list(self.members.keys())


@dataclass
class RoundState:
    room_id: str
    turn_based: bool = False
    phase: RoundPhase = "lobby"
    is_active: bool = False
    generation: int = 0
    round_number: int = 0
    drawer_id: str | None = None
    current_turn_player_id: str | None = None
    secret_word: str | None = None
    round_deadline: float | None = None
    scores: dict[str, int] = field(default_factory=dict)
    player_order: list[str] = field(default_factory=list)
    turn_cursor: int = -1
    used_words: set[str] = field(default_factory=set)
    correct_guessers: set[str] = field(default_factory=set)
    strokes: list[dict] = field(default_factory=list)
    guessed_letters: list[str] = field(default_factory=list)
    incorrect_guesses: int = 0

    def guessers(self) -> list[str]:
        return [pid for pid in self.player_order if pid != self.drawer_id]

    def masked_word(self) -> str | None:
        if not self.secret_word:
            return None
        return "".join(ch if ch in self.guessed_letters else "_" for ch in self.secret_word)
