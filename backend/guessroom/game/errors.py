from __future__ import annotations


class GameError(Exception):
    """Refusal of a single operation; existing state is left untouched.

    ``code`` is the machine readable reason sent back to the client, and
    ``notify`` controls whether the sender gets an error event on top of the
    acknowledgement.
    """

    default_code = "game_error"
    notify = True

    def __init__(self, code: str | None = None, message: str = "") -> None:
        self.code = code or self.default_code
        super().__init__(message or self.code)


class ValidationError(GameError):
    default_code = "invalid_payload"
    notify = False


class PreconditionError(GameError):
    default_code = "not_allowed"


class CapacityError(GameError):
    default_code = "room_full"


class NotFoundError(GameError):
    default_code = "room_not_found"
    notify = False
