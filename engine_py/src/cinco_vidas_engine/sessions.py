"""
Session registry: room codes and session lifecycle.
"""

import logging
import random
from typing import Dict, Iterable, Optional

from .constants import PHASE_GAME_OVER, PHASE_LOBBY, ROOM_CODE_CHARS, ROOM_CODE_LENGTH
from .errors import INTERNAL_ERROR, ROOM_NOT_FOUND, raise_error
from .models import GameState
from .rules import RuleConfig
from .session import GameSession

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 1000


def generate_room_code(existing: Iterable[str] = (), rng: Optional[random.Random] = None) -> str:
    """Random fixed-length code not already in use."""
    rng = rng or random.SystemRandom()
    taken = set(existing)
    for _ in range(MAX_CODE_ATTEMPTS):
        code = ''.join(rng.choice(ROOM_CODE_CHARS) for _ in range(ROOM_CODE_LENGTH))
        if code not in taken:
            return code
    raise_error(INTERNAL_ERROR, "Could not allocate a room code")


def is_finished(state: GameState) -> bool:
    """
    A session is done once nobody can come back to it: a lobby with no
    human seats left, or a finished match with no human still connected.
    """
    humans = [p for p in state.players if not p.is_bot]
    if state.phase == PHASE_LOBBY:
        return not humans
    if state.phase == PHASE_GAME_OVER:
        return not any(p.is_connected for p in humans)
    return False


class SessionManager:
    """Owns every live session; sessions share nothing with each other."""

    def __init__(self, scheduler_factory=None, rng: Optional[random.Random] = None):
        self.sessions: Dict[str, GameSession] = {}
        self.scheduler_factory = scheduler_factory
        self.rng = rng

    def create_session(self, rules: Optional[RuleConfig] = None) -> GameSession:
        code = generate_room_code(self.sessions.keys(), self.rng)
        scheduler = self.scheduler_factory() if self.scheduler_factory else None
        session = GameSession(code, rules=rules, scheduler=scheduler)
        self.sessions[code] = session
        session.subscribe(self._close_if_finished)
        logger.info(f"Created session {code}")
        return session

    def _close_if_finished(self, session: GameSession, state: GameState):
        if is_finished(state):
            logger.info(f"Session {session.code} finished, closing")
            self.close_session(session.code)

    def get_session(self, code: Optional[str]) -> Optional[GameSession]:
        if not code:
            return None
        return self.sessions.get(code.upper())

    def require_session(self, code: Optional[str]) -> GameSession:
        session = self.get_session(code)
        if session is None:
            raise_error(ROOM_NOT_FOUND, f"Room {code} not found")
        return session

    def close_session(self, code: str):
        session = self.sessions.pop(code.upper(), None)
        if session:
            session.close()

    def close_all(self):
        for code in list(self.sessions):
            self.close_session(code)

    def __len__(self):
        return len(self.sessions)
