"""
Round state machine.

Every change to a GameState goes through one of the functions below. They
validate against the given state and apply the change to a deep copy, so a
rejected action leaves the caller's state untouched.
"""

import copy
import logging
import random
from typing import Optional

from .comparator import resolve_trick
from .constants import (
    MATCH_PHASES, MAX_PLAYERS, MIN_PLAYERS, NO_ACTIVE_SEAT, NO_PREDICTION,
    PHASE_GAME_OVER, PHASE_LOBBY, PHASE_PLAYING, PHASE_PREDICTING,
    PHASE_SCORING, PHASE_TRICK_RESOLVE, STARTING_LIVES, TURN_TIMER_SECONDS,
    cards_for_round, free_color,
)
from .errors import (
    ALREADY_ELIMINATED, ALREADY_JOINED, GAME_IN_PROGRESS, INTERNAL_ERROR,
    NOT_ENOUGH_PLAYERS, PLAYER_NOT_FOUND, ROOM_FULL, WRONG_PHASE,
)
from .models import GameState, PlayedCard, Player
from .scoring import build_round_results, lives_lost, resolve_simultaneous_elimination
from .seating import (
    next_active_seat, next_predictor, pending_predictors, previous_active_seat,
)
from .shuffle import create_and_deal
from .validate import validate_play, validate_prediction_move

logger = logging.getLogger(__name__)


class EngineResult:
    """Outcome of a state machine operation."""

    def __init__(
        self,
        success: bool,
        state: Optional[GameState] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.success = success
        self.state = state
        self.error_code = error_code
        self.error_message = error_message

    @classmethod
    def ok(cls, state: GameState) -> 'EngineResult':
        return cls(success=True, state=state)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'EngineResult':
        return cls(success=False, error_code=error_code, error_message=error_message)


def _next_state(state: GameState) -> GameState:
    new_state = copy.deepcopy(state)
    new_state.version += 1
    return new_state


def create_game() -> GameState:
    return GameState()


# ---------------------------------------------------------------- roster

def add_player(
    state: GameState,
    player_id: str,
    name: str,
    is_bot: bool = False,
    difficulty: Optional[str] = None,
    max_players: int = MAX_PLAYERS,
    starting_lives: int = STARTING_LIVES
) -> EngineResult:
    """Seat a new player. The first human to sit down becomes host."""
    if state.phase != PHASE_LOBBY:
        return EngineResult.error(GAME_IN_PROGRESS, "Game already started")
    if state.get_player(player_id):
        return EngineResult.error(ALREADY_JOINED, "Player already seated")
    if len(state.players) >= max_players:
        return EngineResult.error(ROOM_FULL, "Room is full")

    new_state = _next_state(state)
    new_state.players.append(Player(
        id=player_id,
        name=name,
        seat_index=len(new_state.players),
        lives=starting_lives,
        color=free_color([p.color for p in new_state.players]),
        is_bot=is_bot,
        is_host=not is_bot and new_state.host() is None,
        difficulty=difficulty if is_bot else None
    ))
    return EngineResult.ok(new_state)


def remove_player(state: GameState, player_id: str) -> EngineResult:
    """Remove a seat outright. Only possible before the match starts."""
    if state.phase != PHASE_LOBBY:
        return EngineResult.error(GAME_IN_PROGRESS, "Seats cannot be removed mid-match")
    seat = state.seat_of(player_id)
    if seat < 0:
        return EngineResult.error(PLAYER_NOT_FOUND, "Player not found")

    was_host = state.players[seat].is_host
    new_state = _next_state(state)
    del new_state.players[seat]
    for index, player in enumerate(new_state.players):
        player.seat_index = index

    if was_host:
        _assign_successor_host(new_state, player_id)
    return EngineResult.ok(new_state)


def set_connected(state: GameState, player_id: str, connected: bool) -> EngineResult:
    player = state.get_player(player_id)
    if not player:
        return EngineResult.error(PLAYER_NOT_FOUND, "Player not found")

    new_state = _next_state(state)
    new_state.get_player(player_id).is_connected = connected
    return EngineResult.ok(new_state)


def _assign_successor_host(state: GameState, departing_id: str):
    humans = [p for p in state.players if not p.is_bot and p.id != departing_id]
    successor = next((p for p in humans if p.is_connected), None)
    if successor is None and humans:
        successor = humans[0]
    if successor is None:
        return

    for player in state.players:
        player.is_host = player is successor
    logger.info(f"Host moved from {departing_id} to {successor.id}")


def migrate_host(state: GameState, departing_id: str) -> EngineResult:
    """
    Hand host status to the first connected human other than departing_id,
    or to any other human if none is connected. No-op if departing_id is not host.
    """
    departing = state.get_player(departing_id)
    if departing is None or not departing.is_host:
        return EngineResult.ok(state)

    new_state = _next_state(state)
    _assign_successor_host(new_state, departing_id)
    return EngineResult.ok(new_state)


# ---------------------------------------------------------------- rounds

def begin_match(state: GameState, rng: Optional[random.Random] = None) -> EngineResult:
    """Lock the roster and deal the first round; seat 0 deals first."""
    if state.phase != PHASE_LOBBY:
        return EngineResult.error(GAME_IN_PROGRESS, "Game already started")
    if len(state.players) < MIN_PLAYERS:
        return EngineResult.error(NOT_ENOUGH_PLAYERS, f"Need at least {MIN_PLAYERS} players")

    new_state = copy.deepcopy(state)
    new_state.dealer_index = len(new_state.players) - 1
    return start_new_round(new_state, rng)


def start_new_round(state: GameState, rng: Optional[random.Random] = None) -> EngineResult:
    """
    Rotate the dealer, deal a fresh round and open predictions.

    Args:
        state: State in lobby or scoring phase
        rng: Optional random source for the shuffle

    Returns:
        EngineResult with the state in predicting phase
    """
    if state.phase not in (PHASE_LOBBY, PHASE_SCORING):
        return EngineResult.error(WRONG_PHASE, f"Cannot deal during {state.phase}")
    if state.active_count() < MIN_PLAYERS:
        return EngineResult.error(NOT_ENOUGH_PLAYERS, f"Need at least {MIN_PLAYERS} players")

    new_state = _next_state(state)
    new_state.current_round += 1
    new_state.cards_this_round = cards_for_round(new_state.current_round)
    new_state.dealer_index = next_active_seat(state.dealer_index, new_state.players)

    hands = iter(create_and_deal(
        new_state.active_count(), new_state.cards_this_round, rng
    ))
    for player in new_state.players:
        player.prediction = NO_PREDICTION
        player.tricks_won = 0
        player.hand = [] if player.is_eliminated else next(hands)

    new_state.phase = PHASE_PREDICTING
    new_state.active_player_index = next_active_seat(new_state.dealer_index, new_state.players)
    new_state.current_trick = []
    new_state.trick_number = 1
    new_state.winner_id = None
    new_state.turn_timer = TURN_TIMER_SECONDS
    new_state.round_scored = False
    new_state.round_results = []
    new_state.last_trick_winner = None

    logger.info(
        f"Round {new_state.current_round}: {new_state.cards_this_round} cards, "
        f"dealer seat {new_state.dealer_index}"
    )
    return EngineResult.ok(new_state)


def make_prediction(state: GameState, seat: int, value: int) -> EngineResult:
    """Record the active seat's prediction and pass the turn on."""
    validation = validate_prediction_move(state, seat, value)
    if not validation.valid:
        return EngineResult.error(validation.error_code, validation.error_message)

    new_state = _next_state(state)
    new_state.players[seat].prediction = value
    new_state.turn_timer = TURN_TIMER_SECONDS

    if not pending_predictors(new_state.players):
        # Dealer has spoken; the seat right of the dealer leads the first trick
        new_state.phase = PHASE_PLAYING
        new_state.active_player_index = next_active_seat(new_state.dealer_index, new_state.players)
    else:
        new_state.active_player_index = next_predictor(seat, new_state.players)

    return EngineResult.ok(new_state)


def _trick_complete(state: GameState) -> bool:
    return bool(state.current_trick) and len(state.current_trick) >= state.active_count()


def play_card(state: GameState, seat: int, card_index: int) -> EngineResult:
    """Move a card from the active seat's hand to the trick."""
    validation = validate_play(state, seat, card_index)
    if not validation.valid:
        return EngineResult.error(validation.error_code, validation.error_message)

    new_state = _next_state(state)
    player = new_state.players[seat]
    card = player.hand.pop(card_index)
    new_state.current_trick.append(PlayedCard(player_id=player.id, card=card))

    if _trick_complete(new_state):
        new_state.phase = PHASE_TRICK_RESOLVE
        new_state.active_player_index = NO_ACTIVE_SEAT
        new_state.turn_timer = 0
    else:
        new_state.active_player_index = next_active_seat(seat, new_state.players)
        new_state.turn_timer = TURN_TIMER_SECONDS

    return EngineResult.ok(new_state)


def resolve_trick_state(state: GameState) -> EngineResult:
    """
    Award the completed trick. The winner leads the next trick, or the
    round moves to scoring once every trick has been played.
    """
    if state.phase != PHASE_TRICK_RESOLVE:
        return EngineResult.error(WRONG_PHASE, f"No trick to resolve during {state.phase}")

    new_state = _next_state(state)
    winner = resolve_trick(new_state.current_trick)
    winner_index = new_state.seat_of(winner.player_id)

    new_state.players[winner_index].tricks_won += 1
    new_state.last_trick_winner = winner.player_id
    new_state.current_trick = []
    new_state.active_player_index = winner_index

    if new_state.trick_number >= new_state.cards_this_round:
        new_state.phase = PHASE_SCORING
    else:
        new_state.trick_number += 1
        new_state.phase = PHASE_PLAYING
        new_state.turn_timer = TURN_TIMER_SECONDS

    return EngineResult.ok(new_state)


def apply_scores(state: GameState) -> EngineResult:
    """Charge each active seat |prediction - tricks won| lives and eliminate."""
    if state.phase != PHASE_SCORING:
        return EngineResult.error(WRONG_PHASE, f"Cannot score during {state.phase}")
    if state.round_scored:
        return EngineResult.error(WRONG_PHASE, "Round already scored")

    new_state = _next_state(state)
    candidates = []
    for index, player in enumerate(new_state.players):
        if player.is_eliminated:
            continue
        player.lives -= lives_lost(player.prediction, player.tricks_won)
        candidates.append({"index": index, "lives": player.lives})

    for index in resolve_simultaneous_elimination(candidates):
        new_state.players[index].is_eliminated = True
        new_state.players[index].hand = []
        logger.info(f"{new_state.players[index].name} eliminated with {new_state.players[index].lives} lives")

    new_state.round_results = build_round_results(state, new_state)
    new_state.round_scored = True

    if new_state.active_count() <= 1:
        _finish_match(new_state)
    else:
        _repair_seats(new_state)
    return EngineResult.ok(new_state)


# ---------------------------------------------------------------- forfeits

def _finish_match(state: GameState):
    survivors = state.active_players()
    state.phase = PHASE_GAME_OVER
    state.winner_id = survivors[0].id if len(survivors) == 1 else None
    state.active_player_index = NO_ACTIVE_SEAT
    state.current_trick = []
    state.turn_timer = 0
    logger.info(f"Match over, winner: {state.winner_id}")


def _repair_seats(state: GameState):
    """Keep dealer and active seat pointing at live seats."""
    if 0 <= state.dealer_index < len(state.players) and state.players[state.dealer_index].is_eliminated:
        state.dealer_index = previous_active_seat(state.dealer_index, state.players)
    active = state.active_player_index
    if active != NO_ACTIVE_SEAT and state.players[active].is_eliminated:
        state.active_player_index = next_active_seat(active, state.players)


def _forfeit(state: GameState, seat: int):
    player = state.players[seat]
    was_turn = state.active_player_index == seat

    player.lives = 0
    player.is_eliminated = True
    player.hand = []
    state.current_trick = [pc for pc in state.current_trick if pc.player_id != player.id]

    if state.active_count() <= 1:
        _finish_match(state)
        return

    if state.dealer_index == seat:
        state.dealer_index = previous_active_seat(seat, state.players)

    if state.phase == PHASE_PREDICTING:
        if not pending_predictors(state.players):
            state.phase = PHASE_PLAYING
            state.active_player_index = next_active_seat(state.dealer_index, state.players)
            state.turn_timer = TURN_TIMER_SECONDS
        elif was_turn:
            state.active_player_index = next_predictor(seat, state.players)
            state.turn_timer = TURN_TIMER_SECONDS
    elif state.phase == PHASE_PLAYING:
        if _trick_complete(state):
            state.phase = PHASE_TRICK_RESOLVE
            state.active_player_index = NO_ACTIVE_SEAT
            state.turn_timer = 0
        elif was_turn:
            state.active_player_index = next_active_seat(seat, state.players)
            state.turn_timer = TURN_TIMER_SECONDS
    elif state.phase == PHASE_SCORING:
        _repair_seats(state)


def surrender(state: GameState, seat: int) -> EngineResult:
    """Give up: lives to zero, eliminated, hand discarded."""
    if state.phase not in MATCH_PHASES:
        return EngineResult.error(WRONG_PHASE, "No match in progress")
    if not 0 <= seat < len(state.players):
        return EngineResult.error(PLAYER_NOT_FOUND, f"No seat {seat}")
    if state.players[seat].is_eliminated:
        return EngineResult.error(ALREADY_ELIMINATED, "Player is already eliminated")

    new_state = _next_state(state)
    _forfeit(new_state, seat)
    return EngineResult.ok(new_state)


def abandon_seat(state: GameState, player_id: str, forfeit: bool = True) -> EngineResult:
    """Mark an in-match seat permanently disconnected, forfeiting it if asked."""
    seat = state.seat_of(player_id)
    if seat < 0:
        return EngineResult.error(PLAYER_NOT_FOUND, "Player not found")

    new_state = _next_state(state)
    new_state.players[seat].is_connected = False
    if forfeit and new_state.in_match and not new_state.players[seat].is_eliminated:
        _forfeit(new_state, seat)
    return EngineResult.ok(new_state)


def fail_match(state: GameState, reason: str = INTERNAL_ERROR.lower()) -> GameState:
    """End the match with a generic failure instead of leaving partial state."""
    new_state = _next_state(state)
    new_state.phase = PHASE_GAME_OVER
    new_state.winner_id = None
    new_state.active_player_index = NO_ACTIVE_SEAT
    new_state.turn_timer = 0
    new_state.failure = reason
    return new_state


def set_turn_timer(state: GameState, seconds: int) -> GameState:
    """Countdown updates are not versioned mutations."""
    new_state = copy.deepcopy(state)
    new_state.turn_timer = seconds
    return new_state
