"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from ..constants import MAX_PLAYERS, MIN_PLAYERS, Difficulty


class EventType(str, Enum):
    """Inbound event types."""
    JOIN = "join"
    START_GAME = "start_game"
    PREDICT = "predict"
    PLAY_CARD = "play_card"
    SURRENDER = "surrender"
    LEAVE = "leave"
    ADD_BOT = "add_bot"
    CONTINUE_ROUND = "continue_round"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    JOIN_SUCCESS = "join_success"
    STATE_FULL = "state_full"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    ROOM_FULL = "ROOM_FULL"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    NOT_HOST = "NOT_HOST"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    WRONG_PHASE = "WRONG_PHASE"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    ALREADY_JOINED = "ALREADY_JOINED"
    ALREADY_ELIMINATED = "ALREADY_ELIMINATED"
    INVALID_PREDICTION = "INVALID_PREDICTION"
    FORBIDDEN_PREDICTION = "FORBIDDEN_PREDICTION"
    INVALID_CARD = "INVALID_CARD"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    SESSION_CLOSED = "SESSION_CLOSED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INTERNAL = "INTERNAL"


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class JoinEvent(BaseEvent):
    """Join (or create, without room_id) a room."""
    type: EventType = EventType.JOIN
    room_id: Optional[str] = Field(default=None, min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=30)
    player_id: Optional[str] = Field(default=None, min_length=1, max_length=50)
    max_players: Optional[int] = Field(default=None, ge=MIN_PLAYERS, le=MAX_PLAYERS)


class StartGameEvent(BaseEvent):
    type: EventType = EventType.START_GAME


class PredictEvent(BaseEvent):
    type: EventType = EventType.PREDICT
    value: int


class PlayCardEvent(BaseEvent):
    type: EventType = EventType.PLAY_CARD
    index: int


class SurrenderEvent(BaseEvent):
    type: EventType = EventType.SURRENDER


class LeaveEvent(BaseEvent):
    type: EventType = EventType.LEAVE


class AddBotEvent(BaseEvent):
    type: EventType = EventType.ADD_BOT
    difficulty: Optional[Difficulty] = None


class ContinueRoundEvent(BaseEvent):
    type: EventType = EventType.CONTINUE_ROUND


class RequestStateEvent(BaseEvent):
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    JoinEvent,
    StartGameEvent,
    PredictEvent,
    PlayCardEvent,
    SurrenderEvent,
    LeaveEvent,
    AddBotEvent,
    ContinueRoundEvent,
    RequestStateEvent,
]

EVENT_MAP = {
    EventType.JOIN: JoinEvent,
    EventType.START_GAME: StartGameEvent,
    EventType.PREDICT: PredictEvent,
    EventType.PLAY_CARD: PlayCardEvent,
    EventType.SURRENDER: SurrenderEvent,
    EventType.LEAVE: LeaveEvent,
    EventType.ADD_BOT: AddBotEvent,
    EventType.CONTINUE_ROUND: ContinueRoundEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
}


# Outbound event models
class JoinSuccessEvent(BaseModel):
    """Join success confirmation event."""
    type: OutboundEventType = OutboundEventType.JOIN_SUCCESS
    player_id: str
    room_id: str
    timestamp: float


class StateFullEvent(BaseModel):
    """Full state event."""
    type: OutboundEventType = OutboundEventType.STATE_FULL
    state: Dict[str, Any]
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


def parse_inbound_event(data: Any) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    try:
        return EVENT_MAP[event_type](**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def error_code_for(code: Optional[str]) -> ErrorCode:
    try:
        return ErrorCode(code)
    except ValueError:
        return ErrorCode.INTERNAL


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_join_success_event(player_id: str, room_id: str) -> JoinSuccessEvent:
    """Create a join success event."""
    return JoinSuccessEvent(player_id=player_id, room_id=room_id, timestamp=time.time())


def create_state_full_event(state: Dict[str, Any]) -> StateFullEvent:
    """Create a full state event."""
    return StateFullEvent(state=state, timestamp=time.time())
