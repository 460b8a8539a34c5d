"""
WebSocket server and event handling for Cinco Vidas.
"""

from .server import app, session_manager

__all__ = ["app", "session_manager"]
