"""
Deck creation, shuffling and dealing utilities.
"""

import random
from typing import List, Optional, Tuple

from .constants import DECK_SIZE, RANKS, SUIT_HIERARCHY
from .errors import StructuralError
from .models import Card, GameState


def create_deck() -> List[Card]:
    """Create the 40-card deck, suit hierarchy outer and ranks ascending inner."""
    deck = []
    for suit in SUIT_HIERARCHY:
        for rank in RANKS:
            deck.append(Card(suit=suit, rank=rank))
    return deck


def shuffle_deck(deck: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    Shuffle a deck in place (Fisher-Yates) and return it.

    Args:
        deck: Cards to shuffle
        rng: Optional random source for deterministic shuffling

    Returns:
        The same list, shuffled
    """
    (rng or random).shuffle(deck)
    return deck


def deal_cards(
    deck: List[Card],
    num_hands: int,
    cards_per_hand: int
) -> Tuple[List[List[Card]], List[Card]]:
    """
    Deal consecutive blocks from the front of the deck.

    Args:
        deck: Shuffled deck; left untouched
        num_hands: Number of hands to deal
        cards_per_hand: Cards in each hand

    Returns:
        Tuple of (hands, remaining deck)

    Raises:
        StructuralError: If the deck cannot cover the deal
    """
    needed = num_hands * cards_per_hand
    if num_hands < 0 or cards_per_hand < 0 or needed > len(deck):
        raise StructuralError(
            f"Cannot deal {num_hands}x{cards_per_hand} from a deck of {len(deck)}"
        )

    hands = [
        list(deck[i * cards_per_hand:(i + 1) * cards_per_hand])
        for i in range(num_hands)
    ]
    return hands, list(deck[needed:])


def create_and_deal(
    num_hands: int,
    cards_per_hand: int,
    rng: Optional[random.Random] = None
) -> List[List[Card]]:
    """Shuffle a fresh deck and deal it to the active seats."""
    hands, _ = deal_cards(shuffle_deck(create_deck(), rng), num_hands, cards_per_hand)
    return hands


def validate_deck_integrity(state: GameState) -> bool:
    """
    Check that no card is held or played twice in the current round.

    Args:
        state: Game state to validate

    Returns:
        True if every card in hands and on the table is distinct and genuine
    """
    all_cards = [card.id for player in state.players for card in player.hand]
    all_cards.extend(played.card.id for played in state.current_trick)

    expected = {card.id for card in create_deck()}
    return (
        len(all_cards) == len(set(all_cards)) and
        set(all_cards) <= expected and
        len(all_cards) <= DECK_SIZE
    )
