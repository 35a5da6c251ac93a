"""
Live match events and their best-effort websocket fan-out.

The match runtime returns one of the event values below; routers hand it to
the dispatcher through FastAPI BackgroundTasks, so the broadcast happens after
the response is written and a failing viewer can never fail the write.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from fastapi import WebSocket

logger = logging.getLogger(__name__)

LANDING_CHANNEL = "landing"


def match_channel(match_id: int) -> str:
    return f"match:{match_id}"


@dataclass(frozen=True)
class MatchStarted:
    match_id: int
    match: Dict[str, Any]

    name = "match:started"

    def payload(self) -> Dict[str, Any]:
        return {"type": self.name, "matchId": self.match_id, "match": self.match}


@dataclass(frozen=True)
class GoalScored:
    match_id: int
    home_goals: int
    away_goals: int
    event: Dict[str, Any]

    name = "match:goal"

    def payload(self) -> Dict[str, Any]:
        return {
            "type": self.name,
            "matchId": self.match_id,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
            "event": self.event,
        }


@dataclass(frozen=True)
class MatchEnded:
    match_id: int
    match: Dict[str, Any]

    name = "match:ended"

    def payload(self) -> Dict[str, Any]:
        return {"type": self.name, "matchId": self.match_id, "match": self.match}


LiveEvent = Union[MatchStarted, GoalScored, MatchEnded]


class LiveEventDispatcher:
    """Keeps websocket viewers per channel and forwards live events to them."""

    def __init__(self):
        # channel -> connected websockets
        self.viewers: Dict[str, List[WebSocket]] = {}

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.viewers.setdefault(channel, []).append(websocket)
        logger.info(f"Viewer connected to {channel} ({len(self.viewers[channel])} total)")

    def disconnect(self, channel: str, websocket: WebSocket) -> None:
        sockets = self.viewers.get(channel)
        if not sockets:
            return
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            del self.viewers[channel]
        logger.info(f"Viewer disconnected from {channel}")

    def viewer_count(self, channel: str) -> int:
        return len(self.viewers.get(channel, []))

    async def dispatch(self, event: LiveEvent) -> None:
        """Send *event* to landing viewers and to viewers of its match. Never raises."""
        message = event.payload()
        for channel in (LANDING_CHANNEL, match_channel(event.match_id)):
            dead = []
            for ws in list(self.viewers.get(channel, [])):
                try:
                    await ws.send_json(message)
                except Exception:
                    logger.exception(f"Dropping viewer on {channel} after failed send of {event.name}")
                    dead.append(ws)
            for ws in dead:
                self.disconnect(channel, ws)


dispatcher = LiveEventDispatcher()


def get_dispatcher() -> LiveEventDispatcher:
    return dispatcher
