"""
Round scoring and elimination.
"""

from typing import Dict, List

from .models import GameState, RoundResult


def lives_lost(prediction: int, tricks_won: int) -> int:
    return abs(prediction - tricks_won)


def resolve_simultaneous_elimination(candidates: List[Dict[str, int]]) -> List[int]:
    """
    Decide which seats are eliminated after a round.

    Among the candidates at or below zero lives, those holding the greatest
    (least negative) value stay alive. If every one of them is tied, all of
    them are eliminated.

    Args:
        candidates: Dicts with "index" and "lives" (lives after scoring)

    Returns:
        Seat indices to mark eliminated
    """
    at_or_below_zero = [c for c in candidates if c["lives"] <= 0]

    if len(at_or_below_zero) <= 1:
        return [c["index"] for c in at_or_below_zero]

    max_lives = max(c["lives"] for c in at_or_below_zero)
    survivors = [c for c in at_or_below_zero if c["lives"] == max_lives]

    if len(survivors) == len(at_or_below_zero):
        return [c["index"] for c in at_or_below_zero]

    return [c["index"] for c in at_or_below_zero if c["lives"] != max_lives]


def build_round_results(before: GameState, after: GameState) -> List[RoundResult]:
    """Scoreboard rows for every seat that played the round."""
    results = []
    for old, new in zip(before.players, after.players):
        if old.is_eliminated:
            continue
        results.append(RoundResult(
            player_id=new.id,
            player_name=new.name,
            prediction=old.prediction,
            tricks_won=old.tricks_won,
            difference=old.prediction - old.tricks_won,
            lives_lost=old.lives - new.lives,
            lives_remaining=new.lives,
            eliminated=new.is_eliminated
        ))
    return results
