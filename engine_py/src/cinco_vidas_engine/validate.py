"""
Prediction and card play validation.
"""

from typing import List, Optional

from .constants import PHASE_PLAYING, PHASE_PREDICTING
from .errors import (
    ALREADY_ELIMINATED, FORBIDDEN_PREDICTION, INVALID_CARD, INVALID_PREDICTION,
    NOT_YOUR_TURN, PLAYER_NOT_FOUND, WRONG_PHASE,
)
from .models import Card, GameState, PlayedCard


class ValidationResult:
    """Result of move validation."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message

    @classmethod
    def success(cls) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)


def forbidden_value(cards_this_round: int, sum_so_far: int) -> Optional[int]:
    """The value the last predictor may not say, or None if it is out of range."""
    forbidden = cards_this_round - sum_so_far
    if 0 <= forbidden <= cards_this_round:
        return forbidden
    return None


def validate_prediction(
    value: int,
    cards_this_round: int,
    is_last_predictor: bool,
    sum_so_far: int
) -> ValidationResult:
    """
    Validate a prediction value.

    Rules:
    1. The value must be within [0, cards_this_round]
    2. The last predictor may not make the total equal cards_this_round

    Args:
        value: Number of tricks predicted
        cards_this_round: Cards dealt to each seat this round
        is_last_predictor: Whether this seat closes the round's predictions
        sum_so_far: Sum of the predictions already made

    Returns:
        ValidationResult with validation outcome
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return ValidationResult.error(INVALID_PREDICTION, "Prediction must be an integer")

    if value < 0:
        return ValidationResult.error(INVALID_PREDICTION, "Prediction cannot be negative")

    if value > cards_this_round:
        return ValidationResult.error(
            INVALID_PREDICTION,
            f"Cannot predict more than {cards_this_round} tricks"
        )

    if is_last_predictor and sum_so_far + value == cards_this_round:
        return ValidationResult.error(
            FORBIDDEN_PREDICTION,
            f"Predictions cannot add up to {cards_this_round}; you cannot say {value}"
        )

    return ValidationResult.success()


def valid_moves(hand: List[Card], current_trick: List[PlayedCard]) -> List[int]:
    """Every card in hand is playable; there is no obligation to follow suit."""
    return list(range(len(hand)))


def _validate_turn(state: GameState, seat: int, phase: str) -> ValidationResult:
    if state.phase != phase:
        return ValidationResult.error(
            WRONG_PHASE,
            f"Game is not in {phase} phase (current: {state.phase})"
        )

    if not 0 <= seat < len(state.players):
        return ValidationResult.error(PLAYER_NOT_FOUND, f"No seat {seat}")

    if state.players[seat].is_eliminated:
        return ValidationResult.error(ALREADY_ELIMINATED, "Player is eliminated")

    if state.active_player_index != seat:
        return ValidationResult.error(NOT_YOUR_TURN, "Not your turn")

    return ValidationResult.success()


def validate_prediction_move(state: GameState, seat: int, value: int) -> ValidationResult:
    """Validate a prediction attempt against the full game state."""
    from .seating import is_last_predictor

    turn = _validate_turn(state, seat, PHASE_PREDICTING)
    if not turn.valid:
        return turn

    sum_so_far = sum(
        p.prediction for p in state.active_players() if p.has_predicted
    )
    return validate_prediction(
        value,
        state.cards_this_round,
        is_last_predictor(seat, state.players),
        sum_so_far
    )


def validate_play(state: GameState, seat: int, card_index: int) -> ValidationResult:
    """Validate a card play attempt against the full game state."""
    turn = _validate_turn(state, seat, PHASE_PLAYING)
    if not turn.valid:
        return turn

    hand = state.players[seat].hand
    if isinstance(card_index, bool) or not isinstance(card_index, int):
        return ValidationResult.error(INVALID_CARD, "Card index must be an integer")

    if not 0 <= card_index < len(hand):
        return ValidationResult.error(
            INVALID_CARD,
            f"Card index {card_index} out of range (hand has {len(hand)})"
        )

    if card_index not in valid_moves(hand, state.current_trick):
        return ValidationResult.error(INVALID_CARD, "Card cannot be played now")

    return ValidationResult.success()
