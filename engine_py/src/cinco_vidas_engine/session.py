"""
Live session orchestration around the round state machine.

A GameSession owns one GameState for the lifetime of a match. Every event
(participant message, timer tick, scheduled continuation) runs to completion
on the event loop before the next one, so no locking is needed within a
session. State changes go through the engine; the session decides when they
happen and publishes a snapshot after each accepted one.
"""

import copy
import logging
import random
import uuid
from typing import Callable, List, Optional

from .bots.base import choose_action
from .constants import (
    PHASE_GAME_OVER, PHASE_LOBBY, PHASE_PLAYING, PHASE_PREDICTING,
    PHASE_SCORING, PHASE_TRICK_RESOLVE, Difficulty,
)
from .engine import (
    EngineResult, abandon_seat, add_player, apply_scores, begin_match,
    create_game, fail_match, make_prediction, migrate_host, play_card,
    remove_player, resolve_trick_state, set_connected, set_turn_timer,
    start_new_round, surrender,
)
from .errors import (
    ACTION_NOT_ALLOWED, GAME_IN_PROGRESS, NOT_ENOUGH_PLAYERS, NOT_HOST,
    PLAYER_NOT_FOUND, SESSION_CLOSED, WRONG_PHASE, StructuralError,
)
from .models import GameState
from .rules import RuleConfig, default_rules
from .scheduler import AsyncioScheduler, TimerSlots
from .serialization import sanitize_state

logger = logging.getLogger(__name__)

TURN_SLOT = "turn"
BOT_SLOT = "bot"
RESOLVE_SLOT = "resolve"
ADVANCE_SLOT = "advance"
GRACE_PREFIX = "grace:"

Subscriber = Callable[['GameSession', GameState], None]


class GameSession:
    def __init__(
        self,
        code: str,
        rules: Optional[RuleConfig] = None,
        scheduler=None,
        rng: Optional[random.Random] = None
    ):
        self.code = code
        self.rules = rules or default_rules
        self.timers = TimerSlots(scheduler or AsyncioScheduler())
        self.rng = rng or random.Random()
        self.state = set_turn_timer(create_game(), self.rules.turn_timeout)
        self.closed = False
        self._subscribers: List[Subscriber] = []
        self._armed_turn = None

    # ------------------------------------------------------------ observers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _publish(self):
        snapshot = copy.deepcopy(self.state)
        for callback in list(self._subscribers):
            callback(self, snapshot)

    def snapshot(self, viewer_id: Optional[str] = None) -> dict:
        return sanitize_state(self.state, viewer_id)

    # ------------------------------------------------------------ plumbing

    def _reject(self, code: str, message: str) -> EngineResult:
        logger.warning(f"[{self.code}] rejected: {message}")
        return EngineResult.error(code, message)

    def _commit(self, result: EngineResult, action: str) -> EngineResult:
        if not result.success:
            logger.warning(f"[{self.code}] {action} rejected: {result.error_message}")
            return result

        self.state = result.state
        logger.info(f"[{self.code}] {action} (v{self.state.version}, {self.state.phase})")
        self._schedule_next()
        self._publish()
        return EngineResult.ok(self.state)

    def _guarded(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap a continuation so it is ignored after close and fails the match cleanly."""
        def run():
            if self.closed:
                return
            try:
                callback()
            except StructuralError as e:
                logger.exception(f"[{self.code}] structural failure: {e.message}")
                self._fail()
        return run

    def _fail(self):
        for slot in (TURN_SLOT, BOT_SLOT, RESOLVE_SLOT, ADVANCE_SLOT):
            self.timers.cancel(slot)
        self._armed_turn = None
        self.state = fail_match(self.state)
        self._publish()

    def _seat(self, player_id: str) -> int:
        return self.state.seat_of(player_id)

    def _is_host(self, player_id: str) -> bool:
        player = self.state.get_player(player_id)
        return bool(player and player.is_host)

    # ------------------------------------------------------------ timers

    def _turn_key(self):
        s = self.state
        predicted = sum(1 for p in s.players if p.has_predicted)
        return (s.phase, s.current_round, s.trick_number, len(s.current_trick),
                s.active_player_index, predicted)

    def _needs_autopilot(self) -> bool:
        player = self.state.active_player()
        return bool(player and not player.is_eliminated and (player.is_bot or not player.is_connected))

    def _schedule_next(self):
        phase = self.state.phase

        if phase in (PHASE_PREDICTING, PHASE_PLAYING):
            key = self._turn_key()
            if key != self._armed_turn:
                self._armed_turn = key
                self._arm_turn()
            elif self._needs_autopilot():
                if not self.timers.pending(BOT_SLOT):
                    self.timers.once(BOT_SLOT, self.rules.bot_think_delay, self._guarded(self._auto_act))
            else:
                self.timers.cancel(BOT_SLOT)
            return

        self._armed_turn = None
        self.timers.cancel(TURN_SLOT)
        self.timers.cancel(BOT_SLOT)

        if phase == PHASE_TRICK_RESOLVE:
            self.timers.once(RESOLVE_SLOT, self.rules.post_trick_pause, self._guarded(self._on_resolve))
        elif phase == PHASE_SCORING and self.state.round_scored and self.rules.auto_advance_rounds:
            self.timers.once(ADVANCE_SLOT, self.rules.round_pause, self._guarded(self._on_advance))
        elif phase == PHASE_GAME_OVER:
            self.timers.cancel(RESOLVE_SLOT)
            self.timers.cancel(ADVANCE_SLOT)

    def _arm_turn(self):
        """Restart the countdown for whoever holds the turn now."""
        self.state = set_turn_timer(self.state, self.rules.turn_timeout)
        self.timers.every(TURN_SLOT, 1.0, self._guarded(self._on_tick))
        if self._needs_autopilot():
            self.timers.once(BOT_SLOT, self.rules.bot_think_delay, self._guarded(self._auto_act))
        else:
            self.timers.cancel(BOT_SLOT)

    def _on_tick(self):
        remaining = max(self.state.turn_timer - 1, 0)
        self.state = set_turn_timer(self.state, remaining)
        if remaining > 0:
            self._publish()
            return

        self.timers.cancel(TURN_SLOT)
        player = self.state.active_player()
        logger.info(f"[{self.code}] turn timer expired for {player.name if player else None}")
        if not self._auto_act():
            self._publish()

    def _auto_act(self) -> bool:
        """Let the decision engine move for the active seat."""
        seat = self.state.active_player_index
        player = self.state.active_player()
        if player is None or player.is_eliminated:
            return False

        if player.is_bot:
            difficulty = player.difficulty or self.rules.bot_difficulty
        else:
            difficulty = self.rules.idle_difficulty

        action = choose_action(self.state, seat, difficulty, self.rng)
        if action is None:
            return False

        if action.type == 'predict':
            result = make_prediction(self.state, seat, action.data['value'])
        else:
            result = play_card(self.state, seat, action.data['index'])

        if not result.success:
            raise StructuralError(
                f"Decision engine chose an illegal {action.type} for seat {seat}: {result.error_message}"
            )
        self._commit(result, f"auto {action.type} {action.data} for {player.name}")
        return True

    def _on_resolve(self):
        result = self._commit(resolve_trick_state(self.state), "resolve trick")
        if result.success and self.state.phase == PHASE_SCORING:
            self._commit(apply_scores(self.state), f"score round {self.state.current_round}")

    def _on_advance(self):
        if self.state.phase == PHASE_SCORING:
            self._commit(start_new_round(self.state, self.rng), "deal next round")

    def _on_grace_expired(self, player_id: str):
        player = self.state.get_player(player_id)
        if player is None or player.is_connected:
            return

        logger.info(f"[{self.code}] grace period expired for {player.name}")
        if self.state.phase == PHASE_LOBBY:
            self._commit(remove_player(self.state, player_id), f"remove {player.name}")
        else:
            self._commit(
                abandon_seat(self.state, player_id, self.rules.forfeit_abandoned_seats),
                f"abandon seat of {player.name}"
            )

    def _act_for_absent_turn_holder(self, player_id: str):
        active = self.state.active_player()
        if active is not None and active.id == player_id and self._needs_autopilot():
            self._guarded(self._auto_act)()

    # ------------------------------------------------------------ roster

    def join(self, player_id: str, name: str, is_bot: bool = False,
             difficulty: Optional[str] = None) -> EngineResult:
        if self.closed:
            return self._reject(SESSION_CLOSED, "Session is closed")
        result = add_player(
            self.state, player_id, name, is_bot, difficulty,
            self.rules.max_players, self.rules.starting_lives
        )
        return self._commit(result, f"{name} joined")

    def add_bot(self, requester_id: str, difficulty: Optional[str] = None) -> EngineResult:
        if not self._is_host(requester_id):
            return self._reject(NOT_HOST, "Only the host can add bots")
        tier = Difficulty(difficulty or self.rules.bot_difficulty).value
        bot_id = f"bot_{uuid.uuid4().hex[:6]}"
        return self.join(bot_id, f"Bot {len(self.state.players) + 1}", is_bot=True, difficulty=tier)

    def leave(self, player_id: str) -> EngineResult:
        """Consented leave."""
        player = self.state.get_player(player_id)
        if player is None:
            return self._reject(PLAYER_NOT_FOUND, "Player not found")
        self.timers.cancel(f"{GRACE_PREFIX}{player_id}")

        if self.state.phase == PHASE_LOBBY:
            return self._commit(remove_player(self.state, player_id), f"{player.name} left")

        result = abandon_seat(self.state, player_id, self.rules.forfeit_abandoned_seats)
        if result.success and player.is_host:
            result = migrate_host(result.state, player_id)
        committed = self._commit(result, f"{player.name} left the match")
        self._act_for_absent_turn_holder(player_id)
        return committed

    def disconnect(self, player_id: str) -> EngineResult:
        """Unconsented disconnect: start the grace period."""
        player = self.state.get_player(player_id)
        if player is None:
            return self._reject(PLAYER_NOT_FOUND, "Player not found")
        if not player.is_connected:
            return self._reject(ACTION_NOT_ALLOWED, "Player already disconnected")

        result = set_connected(self.state, player_id, False)
        if result.success and player.is_host:
            result = migrate_host(result.state, player_id)
        committed = self._commit(result, f"{player.name} disconnected")
        if self.closed:
            return committed

        self.timers.once(
            f"{GRACE_PREFIX}{player_id}",
            self.rules.reconnection_grace,
            self._guarded(lambda: self._on_grace_expired(player_id))
        )
        self._act_for_absent_turn_holder(player_id)
        return committed

    def reconnect(self, player_id: str) -> EngineResult:
        player = self.state.get_player(player_id)
        if player is None:
            return self._reject(PLAYER_NOT_FOUND, "Player not found")
        if player.is_connected:
            return self._reject(ACTION_NOT_ALLOWED, "Player is already connected")

        grace_key = f"{GRACE_PREFIX}{player_id}"
        if not self.timers.pending(grace_key):
            return self._reject(ACTION_NOT_ALLOWED, "Reconnection window has closed")

        self.timers.cancel(grace_key)
        return self._commit(set_connected(self.state, player_id, True), f"{player.name} reconnected")

    # ------------------------------------------------------------ match

    def start_game(self, requester_id: str) -> EngineResult:
        if self.closed:
            return self._reject(SESSION_CLOSED, "Session is closed")
        if not self._is_host(requester_id):
            return self._reject(NOT_HOST, "Only the host can start the game")
        if self.state.phase != PHASE_LOBBY:
            return self._reject(GAME_IN_PROGRESS, "Game already started")

        if len(self.state.players) == 1:
            # Solo start: give the human an opponent
            self.add_bot(requester_id)

        if len(self.state.players) < self.rules.min_players:
            return self._reject(NOT_ENOUGH_PLAYERS, f"Need at least {self.rules.min_players} players")

        return self._commit(begin_match(self.state, self.rng), "match started")

    def predict(self, player_id: str, value: int) -> EngineResult:
        seat = self._seat(player_id)
        if seat < 0:
            return self._reject(PLAYER_NOT_FOUND, "Player not found")
        return self._commit(make_prediction(self.state, seat, value), f"seat {seat} predicted {value}")

    def play_card(self, player_id: str, index: int) -> EngineResult:
        seat = self._seat(player_id)
        if seat < 0:
            return self._reject(PLAYER_NOT_FOUND, "Player not found")
        return self._commit(play_card(self.state, seat, index), f"seat {seat} played card {index}")

    def surrender(self, player_id: str) -> EngineResult:
        seat = self._seat(player_id)
        if seat < 0:
            return self._reject(PLAYER_NOT_FOUND, "Player not found")
        return self._commit(surrender(self.state, seat), f"seat {seat} surrendered")

    def continue_round(self, player_id: str) -> EngineResult:
        """Host skips the scoreboard pause."""
        if not self._is_host(player_id):
            return self._reject(NOT_HOST, "Only the host can continue")
        if self.state.phase != PHASE_SCORING or not self.state.round_scored:
            return self._reject(WRONG_PHASE, "No finished round to continue from")

        self.timers.cancel(ADVANCE_SLOT)
        return self._commit(start_new_round(self.state, self.rng), "deal next round")

    def close(self):
        """Tear down: nothing scheduled for this session runs afterwards."""
        self.closed = True
        self.timers.cancel_all()
        self._subscribers.clear()
        logger.info(f"[{self.code}] session closed")
