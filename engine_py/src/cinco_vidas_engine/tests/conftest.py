"""
Shared fixtures: a hand-driven clock for session timers and state builders.
"""

import itertools
import random

import pytest

from cinco_vidas_engine.constants import PHASE_PREDICTING
from cinco_vidas_engine.engine import add_player, begin_match, create_game
from cinco_vidas_engine.models import Card, GameState, Player
from cinco_vidas_engine.rules import RuleConfig
from cinco_vidas_engine.session import GameSession


class ManualHandle:
    _ids = itertools.count()

    def __init__(self, when, callback, interval=None):
        self.when = when
        self.callback = callback
        self.interval = interval
        self.cancelled = False
        self.seq = next(self._ids)

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose time only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def call_every(self, interval, callback):
        handle = ManualHandle(self.now + interval, callback, interval)
        self.handles.append(handle)
        return handle

    def live(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.live() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self.now = handle.when
            if handle.interval is None:
                handle.cancelled = True
            else:
                handle.when += handle.interval
            handle.callback()
        self.now = target
        self.handles = self.live()

    def run_until(self, predicate, limit=20000, step=0.5):
        for _ in range(limit):
            if predicate():
                return True
            self.advance(step)
        return predicate()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_session(scheduler):
    def factory(rules=None, seed=7, code="TEST"):
        return GameSession(code, rules=rules or RuleConfig(), scheduler=scheduler, rng=random.Random(seed))
    return factory


def seated_state(names):
    """Lobby state with one human per name, the first as host."""
    state = create_game()
    for index, name in enumerate(names):
        result = add_player(state, f"p{index}", name)
        assert result.success
        state = result.state
    return state


def started_state(names, seed=3):
    result = begin_match(seated_state(names), random.Random(seed))
    assert result.success
    return result.state


def card(cid):
    suit, rank = cid.rsplit("_", 1)
    return Card(suit=suit, rank=int(rank))


def predicting_state(num_players, cards_this_round, dealer_index):
    """Hand-built predicting state; seats 0..n-1 with generic hands."""
    players = [
        Player(id=f"p{i}", name=f"Player {i}", seat_index=i, is_host=(i == 0))
        for i in range(num_players)
    ]
    return GameState(
        phase=PHASE_PREDICTING,
        players=players,
        current_round=1,
        cards_this_round=cards_this_round,
        dealer_index=dealer_index,
        active_player_index=(dealer_index + 1) % num_players,
    )
