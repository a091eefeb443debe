"""
Realtime layer: presence, chat delivery and notification fan-out over websockets.
"""

from .hub import RealtimeHub, RealtimeNotInitializedError, get_realtime_hub

__all__ = ["RealtimeHub", "RealtimeNotInitializedError", "get_realtime_hub"]
