"""Inbound Socket.IO payloads as explicit message types.

Each message parses a raw payload and raises ``ValidationError`` instead of
letting a missing or mistyped field flow into the game.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..game.errors import ValidationError


def _payload(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("invalid_payload")
    return data


def _str(data: dict, key: str, required: bool = True, max_len: int = 200) -> str | None:
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationError("invalid_payload", f"missing field {key!r}")
        return None
    if not isinstance(value, str):
        raise ValidationError("invalid_payload", f"field {key!r} must be a string")
    if not value.strip():
        if required:
            raise ValidationError("invalid_payload", f"field {key!r} is empty")
        return None
    if len(value) > max_len:
        raise ValidationError("invalid_payload", f"field {key!r} is too long")
    return value


@dataclass(frozen=True)
class ProfileSubmit:
    name: str
    attributes: dict | None

    @classmethod
    def parse(cls, data: Any) -> ProfileSubmit:
        d = _payload(data)
        attributes = d.get("attributes")
        if attributes is None:
            # Older clients send nickname/age/gender flat.
            attributes = {k: d[k] for k in ("age", "gender") if k in d} or None
        key = "name" if d.get("name") is not None else "nickname"
        return cls(name=_str(d, key, max_len=64), attributes=attributes)


@dataclass(frozen=True)
class CreateRoom:
    name: str
    password: str | None
    variant: str

    @classmethod
    def parse(cls, data: Any) -> CreateRoom:
        d = _payload(data)
        return cls(
            name=_str(d, "name", max_len=64),
            password=_str(d, "password", required=False, max_len=128),
            variant=_str(d, "variant", required=False, max_len=32) or "drawing",
        )


@dataclass(frozen=True)
class JoinRoom:
    room_id: str
    password: str | None

    @classmethod
    def parse(cls, data: Any) -> JoinRoom:
        d = _payload(data)
        return cls(
            room_id=_str(d, "roomId", max_len=64).strip(),
            password=_str(d, "password", required=False, max_len=128),
        )


@dataclass(frozen=True)
class RoomRef:
    """Payload of every event that only names a room."""

    room_id: str

    @classmethod
    def parse(cls, data: Any) -> RoomRef:
        d = _payload(data)
        return cls(room_id=_str(d, "roomId", max_len=64).strip())


@dataclass(frozen=True)
class ChatText:
    room_id: str
    text: str
    to: str | None

    @classmethod
    def parse(cls, data: Any) -> ChatText:
        d = _payload(data)
        return cls(
            room_id=_str(d, "roomId", max_len=64).strip(),
            text=_str(d, "text", max_len=200),
            to=_str(d, "to", required=False, max_len=64),
        )


@dataclass(frozen=True)
class DrawStroke:
    room_id: str
    stroke: dict

    @classmethod
    def parse(cls, data: Any) -> DrawStroke:
        d = _payload(data)
        stroke = d.get("stroke")
        if not isinstance(stroke, dict):
            raise ValidationError("invalid_stroke")
        return cls(room_id=_str(d, "roomId", max_len=64).strip(), stroke=stroke)


@dataclass(frozen=True)
class LetterGuess:
    room_id: str
    letter: str

    @classmethod
    def parse(cls, data: Any) -> LetterGuess:
        d = _payload(data)
        return cls(
            room_id=_str(d, "roomId", max_len=64).strip(),
            letter=_str(d, "letter", max_len=8),
        )
