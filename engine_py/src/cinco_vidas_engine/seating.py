"""
Turn order around the table, skipping eliminated seats.
"""

from typing import List, Sequence

from .models import Player


def next_active_seat(current_index: int, players: Sequence[Player], direction: int = 1) -> int:
    """
    Advance circularly from current_index to the next non-eliminated seat.

    The walk is bounded by one full lap, so a table with no active seats
    returns the seat it stopped on instead of looping forever.
    """
    n = len(players)
    if n == 0:
        return -1

    nxt = (current_index + direction) % n
    safety = 0
    while players[nxt].is_eliminated and safety < n:
        nxt = (nxt + direction) % n
        safety += 1
    return nxt


def previous_active_seat(current_index: int, players: Sequence[Player]) -> int:
    return next_active_seat(current_index, players, direction=-1)


def prediction_order(dealer_index: int, players: Sequence[Player]) -> List[int]:
    """Active seats starting right of the dealer, dealer last."""
    order = []
    current = dealer_index
    for _ in range(len(players)):
        current = next_active_seat(current, players)
        if current == dealer_index or current in order or players[current].is_eliminated:
            break
        order.append(current)

    if not players[dealer_index].is_eliminated:
        order.append(dealer_index)
    return order


def play_order(dealer_index: int, players: Sequence[Player]) -> List[int]:
    """Play order is fixed and identical to the prediction order."""
    return prediction_order(dealer_index, players)


def pending_predictors(players: Sequence[Player]) -> List[int]:
    """Active seats that have not predicted yet this round."""
    return [
        index for index, player in enumerate(players)
        if not player.is_eliminated and not player.has_predicted
    ]


def is_last_predictor(seat: int, players: Sequence[Player]) -> bool:
    """A seat is last when it is the only active seat still without a prediction."""
    return pending_predictors(players) == [seat]


def next_predictor(seat: int, players: Sequence[Player]) -> int:
    """Next active seat after `seat`, clockwise, that still has to predict."""
    current = seat
    for _ in range(len(players)):
        current = next_active_seat(current, players)
        if not players[current].has_predicted:
            return current
    return -1
