"""
State serialization and sanitization utilities.
"""

from dataclasses import asdict
from typing import Any, Dict, Optional

from .models import Card, GameState


def serialize_card(card: Card) -> Dict[str, Any]:
    return {"id": card.id, "suit": card.suit, "rank": card.rank}


def sanitize_state(state: GameState, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Sanitize game state for transmission to clients.

    Args:
        state: Game state to sanitize
        viewer_id: ID of the player viewing the state (to show their cards)

    Returns:
        Sanitized state dictionary safe for JSON transmission
    """
    sanitized = {
        "version": state.version,
        "phase": state.phase,
        "current_round": state.current_round,
        "cards_this_round": state.cards_this_round,
        "dealer_index": state.dealer_index,
        "active_player_index": state.active_player_index,
        "current_trick": [
            {"player_id": played.player_id, "card": serialize_card(played.card)}
            for played in state.current_trick
        ],
        "trick_number": state.trick_number,
        "winner_id": state.winner_id,
        "turn_timer": state.turn_timer,
        "last_trick_winner": state.last_trick_winner,
        "round_results": [asdict(result) for result in state.round_results],
        "failure": state.failure,
        "players": [],
    }

    for player in state.players:
        sanitized_player = {
            "id": player.id,
            "name": player.name,
            "lives": player.lives,
            "hand_size": player.hand_size,
            "is_eliminated": player.is_eliminated,
            "is_connected": player.is_connected,
            "prediction": player.prediction,
            "tricks_won": player.tricks_won,
            "seat_index": player.seat_index,
            "color": player.color,
            "is_bot": player.is_bot,
            "is_host": player.is_host,
        }

        # Show full hand only to the viewer
        if player.id == viewer_id:
            sanitized_player["hand"] = [serialize_card(card) for card in player.hand]

        sanitized["players"].append(sanitized_player)

    return sanitized
