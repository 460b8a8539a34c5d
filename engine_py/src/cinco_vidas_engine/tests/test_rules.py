"""
Tests for card ordering, seating order, prediction validation and scoring.
"""

import itertools

import pytest
from pydantic import ValidationError

from cinco_vidas_engine.comparator import beats, compare_cards, resolve_trick, sort_cards
from cinco_vidas_engine.errors import FORBIDDEN_PREDICTION, INVALID_PREDICTION, StructuralError
from cinco_vidas_engine.models import PlayedCard, Player
from cinco_vidas_engine.rules import RuleConfig
from cinco_vidas_engine.scoring import lives_lost, resolve_simultaneous_elimination
from cinco_vidas_engine.seating import (
    is_last_predictor, next_active_seat, next_predictor, pending_predictors,
    prediction_order, previous_active_seat,
)
from cinco_vidas_engine.shuffle import create_deck
from cinco_vidas_engine.validate import forbidden_value, validate_prediction

from conftest import card


def table(n, eliminated=()):
    return [
        Player(id=f"p{i}", name=f"P{i}", seat_index=i, is_eliminated=i in eliminated)
        for i in range(n)
    ]


# Comparator

def test_rank_beats_suit():
    assert beats(card("bastos_12"), card("oros_11"))
    assert beats(card("bastos_1"), card("oros_1")) is False


def test_suit_breaks_rank_tie():
    """Equal ranks are decided by oros > copas > espadas > bastos."""
    assert beats(card("oros_5"), card("copas_5"))
    assert beats(card("copas_5"), card("espadas_5"))
    assert beats(card("espadas_5"), card("bastos_5"))
    assert compare_cards(card("copas_7"), card("copas_7")) == 0


def test_card_order_is_strict_and_total():
    """No two distinct cards of the deck tie, and the order is antisymmetric."""
    for a, b in itertools.combinations(create_deck(), 2):
        assert compare_cards(a, b) != 0
        assert compare_cards(a, b) == -compare_cards(b, a)


def test_resolve_trick_suit_tiebreak():
    trick = [
        PlayedCard(player_id="a", card=card("espadas_5")),
        PlayedCard(player_id="b", card=card("oros_5")),
    ]
    assert resolve_trick(trick).player_id == "b"


def test_resolve_trick_highest_rank_wins():
    trick = [
        PlayedCard(player_id="a", card=card("oros_7")),
        PlayedCard(player_id="b", card=card("bastos_10")),
        PlayedCard(player_id="c", card=card("copas_2")),
    ]
    assert resolve_trick(trick).player_id == "b"


def test_resolve_empty_trick_is_structural():
    with pytest.raises(StructuralError):
        resolve_trick([])


def test_sort_cards():
    cards = [card("oros_3"), card("bastos_12"), card("bastos_3")]
    assert [c.id for c in sort_cards(cards)] == ["bastos_3", "oros_3", "bastos_12"]


# Seating

def test_next_active_seat_skips_eliminated():
    players = table(4, eliminated={1, 2})
    assert next_active_seat(0, players) == 3
    assert next_active_seat(3, players) == 0
    assert previous_active_seat(0, players) == 3
    assert previous_active_seat(3, players) == 0


def test_prediction_order_dealer_last():
    assert prediction_order(3, table(4)) == [0, 1, 2, 3]
    assert prediction_order(1, table(4)) == [2, 3, 0, 1]
    assert prediction_order(3, table(4, eliminated={1})) == [0, 2, 3]


def test_prediction_order_with_eliminated_dealer():
    assert prediction_order(3, table(4, eliminated={3})) == [0, 1, 2]


def test_last_predictor_is_seat_holding_sentinel():
    players = table(3)
    players[0].prediction = 1
    players[1].prediction = 0
    assert pending_predictors(players) == [2]
    assert is_last_predictor(2, players)
    assert not is_last_predictor(1, players)
    assert next_predictor(1, players) == 2


# Prediction validation

def test_forbidden_value():
    assert forbidden_value(5, 4) == 1
    assert forbidden_value(3, 0) == 3
    assert forbidden_value(2, 3) is None


def test_validate_prediction_range():
    assert validate_prediction(0, 3, False, 0).valid
    assert validate_prediction(3, 3, False, 0).valid

    result = validate_prediction(4, 3, False, 0)
    assert result.error_code == INVALID_PREDICTION

    result = validate_prediction(-1, 3, False, 0)
    assert result.error_code == INVALID_PREDICTION

    result = validate_prediction("2", 3, False, 0)
    assert result.error_code == INVALID_PREDICTION


def test_last_predictor_cannot_complete_total():
    result = validate_prediction(1, 5, True, 4)
    assert not result.valid
    assert result.error_code == FORBIDDEN_PREDICTION

    assert validate_prediction(0, 5, True, 4).valid
    assert validate_prediction(2, 5, True, 4).valid
    # Only the last predictor is restricted
    assert validate_prediction(1, 5, False, 4).valid


# Scoring

def test_lives_lost():
    assert lives_lost(2, 2) == 0
    assert lives_lost(0, 3) == 3
    assert lives_lost(4, 1) == 3


def test_single_seat_at_zero_is_eliminated():
    candidates = [{"index": 0, "lives": 0}, {"index": 1, "lives": 3}]
    assert resolve_simultaneous_elimination(candidates) == [0]


def test_simultaneous_elimination_best_survives():
    """The least negative seats stay in when others go lower."""
    candidates = [
        {"index": 0, "lives": -1},
        {"index": 1, "lives": 0},
        {"index": 2, "lives": -3},
        {"index": 3, "lives": 2},
    ]
    assert resolve_simultaneous_elimination(candidates) == [0, 2]


def test_simultaneous_elimination_draw():
    candidates = [
        {"index": 0, "lives": -1},
        {"index": 1, "lives": -1},
        {"index": 2, "lives": 4},
    ]
    assert resolve_simultaneous_elimination(candidates) == [0, 1]


def test_nobody_at_zero():
    assert resolve_simultaneous_elimination([{"index": 0, "lives": 1}]) == []


# Rule configuration

def test_rule_config_defaults():
    rules = RuleConfig()
    assert rules.max_players == 8
    assert rules.turn_timeout == 15
    assert rules.reconnection_grace == 30
    assert rules.forfeit_abandoned_seats


def test_rule_config_bounds():
    with pytest.raises(ValidationError):
        RuleConfig(max_players=9)
    with pytest.raises(ValidationError):
        RuleConfig(min_players=4, max_players=3)
