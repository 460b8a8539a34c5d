"""
Game rule configuration and validation.
"""

from pydantic import BaseModel, Field, model_validator

from .constants import (
    BOT_THINK_DELAY, MAX_PLAYERS, MIN_PLAYERS, POST_TRICK_PAUSE,
    RECONNECTION_GRACE_SECONDS, ROUND_PAUSE, STARTING_LIVES,
    TURN_TIMER_SECONDS, Difficulty,
)


class RuleConfig(BaseModel):
    """Configuration for game rules and session timing."""

    max_players: int = Field(
        default=MAX_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        description="Seat ceiling for this session"
    )
    min_players: int = Field(
        default=MIN_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        description="Minimum number of seats required to start"
    )
    starting_lives: int = Field(
        default=STARTING_LIVES,
        ge=1,
        le=20,
        description="Lives every seat starts the match with"
    )
    turn_timeout: int = Field(
        default=TURN_TIMER_SECONDS,
        ge=5,
        le=120,
        description="Turn timeout in seconds before the seat is auto-played"
    )
    reconnection_grace: int = Field(
        default=RECONNECTION_GRACE_SECONDS,
        ge=10,
        le=120,
        description="Seconds a disconnected seat may take to reconnect"
    )
    post_trick_pause: float = Field(
        default=POST_TRICK_PAUSE,
        ge=0,
        le=10,
        description="Pause after a completed trick before it is resolved"
    )
    round_pause: float = Field(
        default=ROUND_PAUSE,
        ge=0,
        le=30,
        description="Scoreboard pause before the next round is dealt"
    )
    bot_think_delay: float = Field(
        default=BOT_THINK_DELAY,
        ge=0,
        le=10,
        description="Delay before a computer-controlled or absent seat acts"
    )
    bot_difficulty: Difficulty = Field(
        default=Difficulty.MEDIUM,
        description="Default tier for computer-controlled seats"
    )
    idle_difficulty: Difficulty = Field(
        default=Difficulty.EASY,
        description="Tier used to act for a human whose turn timed out"
    )
    auto_advance_rounds: bool = Field(
        default=True,
        description="Deal the next round automatically after the scoreboard pause"
    )
    forfeit_abandoned_seats: bool = Field(
        default=True,
        description="An abandoned in-match seat is eliminated like a surrender"
    )

    @model_validator(mode='after')
    def check_player_bounds(self) -> 'RuleConfig':
        if self.min_players > self.max_players:
            raise ValueError("min_players cannot exceed max_players")
        return self


default_rules = RuleConfig()
