"""
Card comparison and trick resolution.
"""

from functools import cmp_to_key
from typing import List

from .constants import RANKS, SUIT_HIERARCHY
from .errors import StructuralError
from .models import Card, PlayedCard


def get_rank_index(rank: int) -> int:
    """Get the index of a rank in the ascending ordering."""
    try:
        return RANKS.index(rank)
    except ValueError:
        raise ValueError(f"Invalid rank: {rank}")


def get_suit_strength(suit: str) -> int:
    """Higher is stronger; the first suit of the hierarchy is strongest."""
    try:
        return len(SUIT_HIERARCHY) - 1 - SUIT_HIERARCHY.index(suit)
    except ValueError:
        raise ValueError(f"Invalid suit: {suit}")


def compare_cards(card_a: Card, card_b: Card) -> int:
    """
    Compare two cards by rank, breaking ties with the suit hierarchy.

    Returns:
        < 0 if card_a is weaker than card_b
        0 if they are the same card
        > 0 if card_a is stronger than card_b
    """
    rank_diff = get_rank_index(card_a.rank) - get_rank_index(card_b.rank)
    if rank_diff != 0:
        return rank_diff
    return get_suit_strength(card_a.suit) - get_suit_strength(card_b.suit)


def beats(card_a: Card, card_b: Card) -> bool:
    """Check if card_a is stronger than card_b."""
    return compare_cards(card_a, card_b) > 0


card_sort_key = cmp_to_key(compare_cards)


def sort_cards(cards: List[Card], descending: bool = False) -> List[Card]:
    """Sort cards weakest first (or strongest first)."""
    return sorted(cards, key=card_sort_key, reverse=descending)


def resolve_trick(trick: List[PlayedCard]) -> PlayedCard:
    """
    Find the winning play of a trick.

    Raises:
        StructuralError: If the trick is empty
    """
    if not trick:
        raise StructuralError("Cannot resolve an empty trick")

    winner = trick[0]
    for played in trick[1:]:
        if beats(played.card, winner.card):
            winner = played
    return winner
