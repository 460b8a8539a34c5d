"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    NO_ACTIVE_SEAT, NO_PREDICTION, PHASE_LOBBY, MATCH_PHASES,
    STARTING_LIVES, TURN_TIMER_SECONDS, card_id,
)


@dataclass(frozen=True)
class Card:
    suit: str
    rank: int
    id: str = ''

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, 'id', card_id(self.suit, self.rank))


@dataclass
class PlayedCard:
    player_id: str
    card: Card


@dataclass
class Player:
    id: str
    name: str
    seat_index: int
    lives: int = STARTING_LIVES
    hand: List[Card] = field(default_factory=list)
    is_eliminated: bool = False
    is_connected: bool = True
    prediction: int = NO_PREDICTION  # -1 until predicted this round
    tricks_won: int = 0
    color: str = '#FFFFFF'
    is_bot: bool = False
    is_host: bool = False
    difficulty: Optional[str] = None  # bots only

    @property
    def hand_size(self) -> int:
        return len(self.hand)

    @property
    def has_predicted(self) -> bool:
        return self.prediction != NO_PREDICTION


@dataclass
class RoundResult:
    """One seat's outcome for a scored round."""
    player_id: str
    player_name: str
    prediction: int
    tricks_won: int
    difference: int
    lives_lost: int
    lives_remaining: int
    eliminated: bool


@dataclass
class GameState:
    phase: str = PHASE_LOBBY  # lobby|predicting|playing|trickResolve|scoring|gameOver
    players: List[Player] = field(default_factory=list)
    current_round: int = 0
    cards_this_round: int = 0
    dealer_index: int = -1
    active_player_index: int = NO_ACTIVE_SEAT
    current_trick: List[PlayedCard] = field(default_factory=list)
    trick_number: int = 1
    winner_id: Optional[str] = None
    turn_timer: int = TURN_TIMER_SECONDS
    version: int = 0
    round_scored: bool = False
    round_results: List[RoundResult] = field(default_factory=list)
    last_trick_winner: Optional[str] = None
    failure: Optional[str] = None

    @property
    def in_match(self) -> bool:
        return self.phase in MATCH_PHASES

    def active_players(self) -> List[Player]:
        return [p for p in self.players if not p.is_eliminated]

    def active_count(self) -> int:
        return len(self.active_players())

    def seat_of(self, player_id: str) -> int:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return -1

    def get_player(self, player_id: str) -> Optional[Player]:
        seat = self.seat_of(player_id)
        return self.players[seat] if seat >= 0 else None

    def active_player(self) -> Optional[Player]:
        if 0 <= self.active_player_index < len(self.players):
            return self.players[self.active_player_index]
        return None

    def host(self) -> Optional[Player]:
        return next((p for p in self.players if p.is_host), None)
