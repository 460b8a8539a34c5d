# engine_py/src/cinco_vidas_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class StructuralError(GameError):
    """An invariant was already broken upstream; not recoverable by retrying."""
    def __init__(self, message: str):
        super().__init__(INTERNAL_ERROR, message)


# Specific error codes
ROOM_FULL = "ROOM_FULL"
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
NOT_HOST = "NOT_HOST"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
WRONG_PHASE = "WRONG_PHASE"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
ALREADY_JOINED = "ALREADY_JOINED"
ALREADY_ELIMINATED = "ALREADY_ELIMINATED"
INVALID_PREDICTION = "INVALID_PREDICTION"
FORBIDDEN_PREDICTION = "FORBIDDEN_PREDICTION"
INVALID_CARD = "INVALID_CARD"
ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
SESSION_CLOSED = "SESSION_CLOSED"
INTERNAL_ERROR = "INTERNAL_ERROR"


# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
