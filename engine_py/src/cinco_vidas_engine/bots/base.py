"""
Bot actions and dispatch for seats that act without a human.
"""

import random
from typing import Optional

from ..constants import PHASE_PLAYING, PHASE_PREDICTING, Difficulty
from ..models import GameState
from ..validate import valid_moves
from .heuristics import choose_card, predict_tricks


class BotAction:
    """Represents a bot action."""

    def __init__(self, action_type: str, **kwargs):
        self.type = action_type
        self.data = kwargs

    @classmethod
    def predict(cls, value: int) -> 'BotAction':
        """Create a prediction action."""
        return cls('predict', value=value)

    @classmethod
    def play(cls, index: int) -> 'BotAction':
        """Create a play action."""
        return cls('play', index=index)

    def __repr__(self):
        return f"BotAction({self.type}, {self.data})"


def choose_action(
    state: GameState,
    seat: int,
    difficulty=Difficulty.MEDIUM,
    rng: Optional[random.Random] = None
) -> Optional[BotAction]:
    """
    Choose the move for `seat` in the current state.

    Args:
        state: Current game state
        seat: Seat that has to act
        difficulty: Tier to play at
        rng: Random source for tiers that use one

    Returns:
        BotAction to take, or None if the seat has nothing to do
    """
    if state.active_player_index != seat:
        return None

    player = state.players[seat]
    if player.is_eliminated:
        return None

    if state.phase == PHASE_PREDICTING:
        return BotAction.predict(predict_tricks(
            player.hand,
            state.cards_this_round,
            state.players,
            state.dealer_index,
            seat,
            difficulty,
            rng
        ))

    if state.phase == PHASE_PLAYING:
        legal = valid_moves(player.hand, state.current_trick)
        if not legal:
            return None
        return BotAction.play(choose_card(
            player.hand,
            state.current_trick,
            legal,
            want_to_win=player.tricks_won < player.prediction,
            difficulty=difficulty
        ))

    return None
