from __future__ import annotations

import logging
from typing import Any

from .errors import ValidationError
from .models import User

logger = logging.getLogger(__name__)

MAX_ATTRIBUTES = 8


def validate_name(name: str) -> bool:
    n = (name or "").strip()
    if not n:
        return False
    if len(n) > 24:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def _clean_attributes(raw: Any) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("invalid_attributes")

    cleaned: dict[str, Any] = {}
    for key, value in raw.items():
        if len(cleaned) >= MAX_ATTRIBUTES:
            break
        if not isinstance(key, str) or not key.strip():
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            continue
        if isinstance(value, str):
            value = value.strip()[:64]
        cleaned[key.strip()[:32]] = value
    return cleaned


class ConnectionRegistry:
    """Live connections that have submitted a profile."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def register(self, connection_id: str, display_name: str, attributes: Any = None) -> User:
        if not validate_name(display_name):
            raise ValidationError("invalid_name")
        cleaned = _clean_attributes(attributes)

        user = self._users.get(connection_id)
        if user is None:
            user = User(id=connection_id, display_name=display_name.strip(), attributes=cleaned)
            self._users[connection_id] = user
            logger.info("profile registered id=%s name=%s", connection_id, user.display_name)
        else:
            # Rooms hold the same object, so renames show up there too.
            user.display_name = display_name.strip()
            user.attributes = cleaned
        return user

    def remove(self, connection_id: str) -> User | None:
        return self._users.pop(connection_id, None)

    def get(self, connection_id: str) -> User | None:
        return self._users.get(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._users

    def list_users(self) -> list[User]:
        return list(self._users.values())
