"""
Prediction and card-choice heuristics for seats that act without a human.

Each difficulty tier is a TierStrategy value; the functions below are pure
apart from the random source used by the easy tier.
"""

import math
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..comparator import card_sort_key, compare_cards, resolve_trick
from ..constants import Difficulty
from ..models import Card, PlayedCard, Player
from ..validate import forbidden_value

TOP_RANK = 12
SECOND_RANK = 11
THIRD_RANK = 10

# Forbidden-value escape directions
ESCAPE_RANDOM = "random"
ESCAPE_DOWN_FIRST = "down_first"
ESCAPE_TOWARD_ESTIMATE = "toward_estimate"


@dataclass(frozen=True)
class TierStrategy:
    reads_bookings: bool
    forbidden_escape: str
    burns_high_losers: bool


STRATEGIES = {
    Difficulty.EASY: TierStrategy(
        reads_bookings=False,
        forbidden_escape=ESCAPE_RANDOM,
        burns_high_losers=False
    ),
    Difficulty.MEDIUM: TierStrategy(
        reads_bookings=False,
        forbidden_escape=ESCAPE_DOWN_FIRST,
        burns_high_losers=False
    ),
    Difficulty.HARD: TierStrategy(
        reads_bookings=True,
        forbidden_escape=ESCAPE_TOWARD_ESTIMATE,
        burns_high_losers=True
    ),
}


def get_strategy(difficulty) -> TierStrategy:
    return STRATEGIES[Difficulty(difficulty)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_tricks(hand: Sequence[Card], cards_this_round: int) -> float:
    """Expected tricks from high cards alone."""
    kings = sum(1 for c in hand if c.rank == TOP_RANK)
    horses = sum(1 for c in hand if c.rank == SECOND_RANK)
    sotas = sum(1 for c in hand if c.rank == THIRD_RANK)

    estimate = float(kings)
    # Horses lose to kings; in long rounds that is likely to happen
    estimate += horses if cards_this_round <= 3 else horses * 0.5
    estimate += sotas * 0.25
    return estimate


def booking_adjustment(
    players: Sequence[Player],
    my_seat: int,
    cards_this_round: int
) -> float:
    """
    +0.5 when the seats that already spoke booked fewer tricks than their
    fair share, -0.5 when they booked more, 0 otherwise.
    """
    active = [p for p in players if not p.is_eliminated]
    declared = [
        p for i, p in enumerate(players)
        if i != my_seat and not p.is_eliminated and p.has_predicted
    ]
    if not declared or not active:
        return 0.0

    fair_share = cards_this_round / len(active)
    booked = sum(p.prediction for p in declared)
    expected = fair_share * len(declared)
    if booked < expected - 0.5:
        return 0.5
    if booked > expected + 0.5:
        return -0.5
    return 0.0


def _escape_forbidden(
    prediction: int,
    forbidden: int,
    raw_estimate: float,
    cards_this_round: int,
    strategy: TierStrategy,
    rng: random.Random
) -> int:
    if strategy.forbidden_escape == ESCAPE_TOWARD_ESTIMATE:
        if raw_estimate > forbidden:
            step = 1
        elif raw_estimate < forbidden:
            step = -1
        else:
            step = -1 if prediction > 0 else 1
    elif strategy.forbidden_escape == ESCAPE_DOWN_FIRST:
        step = -1 if prediction > 0 else 1
    else:
        step = rng.choice([-1, 1])

    adjusted = min(max(prediction + step, 0), cards_this_round)
    if adjusted == forbidden:
        adjusted = min(max(prediction - step, 0), cards_this_round)
    return adjusted


def predict_tricks(
    hand: Sequence[Card],
    cards_this_round: int,
    players: Sequence[Player],
    dealer_index: int,
    my_seat: int,
    difficulty=Difficulty.MEDIUM,
    rng: Optional[random.Random] = None
) -> int:
    """
    Choose a legal prediction for my_seat.

    Args:
        hand: Cards held by the seat
        cards_this_round: Cards dealt per seat this round
        players: All seats, with the predictions made so far
        dealer_index: Dealer seat. Unused: the last predictor is whichever
            active seat still holds -1, which stays correct after a dealer
            forfeits mid-round and the dealer seat moves
        my_seat: Seat that is predicting
        difficulty: Tier to play at
        rng: Random source for tiers that use one

    Returns:
        Prediction within [0, cards_this_round] that avoids the forbidden value
    """
    strategy = get_strategy(difficulty)
    rng = rng or random.Random()

    raw = estimate_tricks(hand, cards_this_round)
    if strategy.reads_bookings:
        raw += booking_adjustment(players, my_seat, cards_this_round)

    prediction = min(max(_round_half_up(raw), 0), cards_this_round)

    others_pending = [
        i for i, p in enumerate(players)
        if i != my_seat and not p.is_eliminated and not p.has_predicted
    ]
    if others_pending:
        return prediction

    # Last to speak: the total may not equal the cards dealt
    sum_so_far = sum(
        p.prediction for i, p in enumerate(players)
        if i != my_seat and not p.is_eliminated and p.has_predicted
    )
    forbidden = forbidden_value(cards_this_round, sum_so_far)
    if forbidden is not None and prediction == forbidden:
        prediction = _escape_forbidden(
            prediction, forbidden, raw, cards_this_round, strategy, rng
        )
    return prediction


def choose_card(
    hand: Sequence[Card],
    current_trick: Sequence[PlayedCard],
    legal_indices: List[int],
    want_to_win: bool,
    difficulty=Difficulty.MEDIUM
) -> int:
    """
    Pick the index of the card to play.

    Leading: strongest card while under quota, weakest otherwise.
    Following: win as cheaply as possible while under quota; once the quota
    is met, lose (hard tier burns its highest loser), winning only if forced.
    """
    if not legal_indices:
        raise ValueError("No legal cards to choose from")
    if len(legal_indices) == 1:
        return legal_indices[0]

    strategy = get_strategy(difficulty)

    def key(index):
        return card_sort_key(hand[index])

    if not current_trick:
        return max(legal_indices, key=key) if want_to_win else min(legal_indices, key=key)

    leader = resolve_trick(list(current_trick)).card
    winners = [i for i in legal_indices if compare_cards(hand[i], leader) > 0]
    losers = [i for i in legal_indices if compare_cards(hand[i], leader) <= 0]

    if want_to_win:
        if winners:
            return min(winners, key=key)
        return min(losers, key=key)

    if losers:
        if strategy.burns_high_losers:
            return max(losers, key=key)
        return min(losers, key=key)

    # Every card wins; spend the cheapest
    return min(winners, key=key)
