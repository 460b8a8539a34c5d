"""Game constants and utilities"""

from enum import Enum
from typing import List

# Suits ordered by hierarchy, strongest first
SUIT_HIERARCHY = ['oros', 'copas', 'espadas', 'bastos']

# Ranks in ascending order (the regional deck has no 8 or 9)
RANKS = [1, 2, 3, 4, 5, 6, 7, 10, 11, 12]

RANK_NAMES = {1: 'As', 10: 'Sota', 11: 'Caballo', 12: 'Rey'}

CARDS_PER_ROUND_CYCLE = [5, 4, 3, 2, 1]

DECK_SIZE = len(SUIT_HIERARCHY) * len(RANKS)

STARTING_LIVES = 5
MIN_PLAYERS = 2
MAX_PLAYERS = 8
TURN_TIMER_SECONDS = 15
RECONNECTION_GRACE_SECONDS = 30

ROOM_CODE_CHARS = 'ABCDEFGHJKLMNPQRSTUVWXYZ'  # no I/O
ROOM_CODE_LENGTH = 4

# Presentation pauses (seconds)
POST_TRICK_PAUSE = 1.5
ROUND_PAUSE = 5.0
BOT_THINK_DELAY = 1.5

PLAYER_COLORS = [
    '#E6B800',  # gold
    '#4FC3F7',
    '#EF5350',
    '#66BB6A',
    '#AB47BC',
    '#FF7043',
    '#26C6DA',
    '#EC407A',
]

# Game phases
PHASE_LOBBY = 'lobby'
PHASE_PREDICTING = 'predicting'
PHASE_PLAYING = 'playing'
PHASE_TRICK_RESOLVE = 'trickResolve'
PHASE_SCORING = 'scoring'
PHASE_GAME_OVER = 'gameOver'

MATCH_PHASES = [PHASE_PREDICTING, PHASE_PLAYING, PHASE_TRICK_RESOLVE, PHASE_SCORING]

NO_PREDICTION = -1
NO_ACTIVE_SEAT = -1


class Difficulty(str, Enum):
    """Decision tiers for computer-controlled and idle seats."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def card_id(suit: str, rank: int) -> str:
    return f"{suit}_{rank}"


def parse_card_id(cid: str) -> tuple:
    suit, rank = cid.rsplit('_', 1)
    if suit not in SUIT_HIERARCHY or int(rank) not in RANKS:
        raise ValueError(f"Invalid card id: {cid}")
    return suit, int(rank)


def cards_for_round(round_number: int) -> int:
    """Cards dealt in a round: 5, 4, 3, 2, 1, then the cycle repeats."""
    return CARDS_PER_ROUND_CYCLE[(round_number - 1) % len(CARDS_PER_ROUND_CYCLE)]


def format_card(cid: str) -> str:
    suit, rank = parse_card_id(cid)
    return f"{RANK_NAMES.get(rank, str(rank))} de {suit.capitalize()}"


def free_color(used: List[str]) -> str:
    for color in PLAYER_COLORS:
        if color not in used:
            return color
    return PLAYER_COLORS[len(used) % len(PLAYER_COLORS)]
