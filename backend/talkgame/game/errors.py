"""Domain errors raised by lobby operations.

Every error carries a user-presentable message. ``kind`` names the failure
category and ``status_code`` is what the HTTP layer answers with.
"""

from __future__ import annotations


class GameError(Exception):
    kind = "invalid_operation"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(GameError):
    kind = "not_found"


class LobbyNotFoundError(NotFoundError):
    kind = "lobby_not_found"
    status_code = 404

    def __init__(self, code: str):
        self.code = code
        super().__init__("Game not found.")


class AuthorizationError(GameError):
    kind = "forbidden"


class ConflictError(GameError):
    kind = "conflict"


class ResourceExhaustedError(GameError):
    kind = "exhausted"


class InvalidInputError(GameError):
    kind = "invalid_input"
