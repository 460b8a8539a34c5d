"""
FastAPI WebSocket server for Cinco Vidas.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Dict, Optional

import orjson
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..errors import ACTION_NOT_ALLOWED, GameError
from ..models import GameState
from ..rules import RuleConfig
from ..serialization import sanitize_state
from ..session import GameSession
from ..sessions import SessionManager
from .events import (
    AddBotEvent, ContinueRoundEvent, ErrorCode, JoinEvent, LeaveEvent,
    PlayCardEvent, PredictEvent, RequestStateEvent, StartGameEvent,
    SurrenderEvent, create_error_event, create_join_success_event,
    create_state_full_event, error_code_for, parse_inbound_event,
)

logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(title="Cinco Vidas Game Engine", version="1.0.0")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state
session_manager = SessionManager()


def encode(event: BaseModel) -> str:
    return orjson.dumps(event.model_dump(mode="json")).decode()


class ConnectionManager:
    """Tracks one socket per seated participant, grouped by room."""

    def __init__(self):
        self.room_connections: Dict[str, Dict[str, WebSocket]] = defaultdict(dict)

    def connect(self, room_id: str, player_id: str, websocket: WebSocket):
        self.room_connections[room_id][player_id] = websocket
        logger.info(f"Player {player_id} connected to room {room_id}")

    def disconnect(self, room_id: str, player_id: str):
        connections = self.room_connections.get(room_id)
        if connections is None:
            return
        connections.pop(player_id, None)
        if not connections:
            del self.room_connections[room_id]
        logger.info(f"Player {player_id} disconnected from room {room_id}")

    def count(self) -> int:
        return sum(len(conns) for conns in self.room_connections.values())

    async def send(self, websocket: WebSocket, event: BaseModel):
        await websocket.send_text(encode(event))

    async def broadcast_state(self, room_id: str, state: GameState):
        """Send each participant their own view of the state."""
        for player_id, websocket in list(self.room_connections.get(room_id, {}).items()):
            try:
                event = create_state_full_event(sanitize_state(state, player_id))
                await self.send(websocket, event)
            except Exception as e:
                logger.error(f"Error broadcasting to {player_id}: {e}")
                self.disconnect(room_id, player_id)


manager = ConnectionManager()


def on_state_change(session: GameSession, state: GameState):
    """Session observer: fan the snapshot out without blocking the session."""
    asyncio.get_running_loop().create_task(manager.broadcast_state(session.code, state))


class ClientContext:
    """What one socket has joined."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.player_id: Optional[str] = None
        self.room_id: Optional[str] = None

    @property
    def joined(self) -> bool:
        return self.player_id is not None

    def session(self) -> GameSession:
        if not self.joined:
            raise GameError(ACTION_NOT_ALLOWED, "Not in a room")
        return session_manager.require_session(self.room_id)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "rooms": len(session_manager),
        "connections": manager.count()
    }


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Main WebSocket endpoint."""
    ctx = ClientContext(websocket)

    try:
        await websocket.accept()
        logger.info("WebSocket connection accepted")

        while True:
            raw_data = await websocket.receive_text()

            try:
                event = parse_inbound_event(orjson.loads(raw_data))
                await handle_event(ctx, event)
            except ValueError as e:
                # Invalid event
                await manager.send(websocket, create_error_event(ErrorCode.INVALID_EVENT, str(e)))
            except GameError as e:
                await manager.send(websocket, create_error_event(error_code_for(e.code), e.message))
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Error handling event: {e}")
                await manager.send(websocket, create_error_event(ErrorCode.INTERNAL, "Internal server error"))

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    finally:
        if ctx.joined:
            manager.disconnect(ctx.room_id, ctx.player_id)
            session = session_manager.get_session(ctx.room_id)
            if session is not None:
                session.disconnect(ctx.player_id)


async def handle_event(ctx: ClientContext, event):
    """Handle an inbound event."""
    if isinstance(event, JoinEvent):
        await handle_join(ctx, event)
    elif isinstance(event, RequestStateEvent):
        await send_state(ctx, ctx.session())
    elif isinstance(event, LeaveEvent):
        await handle_leave(ctx)
    else:
        session = ctx.session()
        if isinstance(event, StartGameEvent):
            result = session.start_game(ctx.player_id)
        elif isinstance(event, PredictEvent):
            result = session.predict(ctx.player_id, event.value)
        elif isinstance(event, PlayCardEvent):
            result = session.play_card(ctx.player_id, event.index)
        elif isinstance(event, SurrenderEvent):
            result = session.surrender(ctx.player_id)
        elif isinstance(event, AddBotEvent):
            result = session.add_bot(ctx.player_id, event.difficulty)
        elif isinstance(event, ContinueRoundEvent):
            result = session.continue_round(ctx.player_id)
        else:
            raise ValueError(f"Unhandled event type: {type(event)}")
        await send_result_error(ctx, result)


async def send_state(ctx: ClientContext, session: GameSession):
    await manager.send(ctx.websocket, create_state_full_event(session.snapshot(ctx.player_id)))


async def send_result_error(ctx: ClientContext, result):
    """Rejected actions are reported to the sender only."""
    if not result.success:
        event = create_error_event(error_code_for(result.error_code), result.error_message)
        await manager.send(ctx.websocket, event)


async def handle_join(ctx: ClientContext, event: JoinEvent):
    """Join an existing room by code, or create one."""
    if ctx.joined:
        raise GameError(ACTION_NOT_ALLOWED, "Already in a room")

    if event.room_id:
        session = session_manager.require_session(event.room_id)
    else:
        rules = RuleConfig(max_players=event.max_players) if event.max_players else None
        session = session_manager.create_session(rules)
        session.subscribe(on_state_change)

    if event.player_id and session.state.get_player(event.player_id):
        player_id = event.player_id
        result = session.reconnect(player_id)
    else:
        player_id = uuid.uuid4().hex[:8]
        result = session.join(player_id, event.name)

    if not result.success:
        await send_result_error(ctx, result)
        if not session.state.players:
            session_manager.close_session(session.code)
        return

    ctx.player_id, ctx.room_id = player_id, session.code
    manager.connect(session.code, player_id, ctx.websocket)
    await manager.send(ctx.websocket, create_join_success_event(player_id, session.code))
    await send_state(ctx, session)


async def handle_leave(ctx: ClientContext):
    session = ctx.session()
    result = session.leave(ctx.player_id)
    if not result.success:
        await send_result_error(ctx, result)
        return

    manager.disconnect(ctx.room_id, ctx.player_id)
    ctx.player_id = ctx.room_id = None
