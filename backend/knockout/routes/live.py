"""
Live match websockets.

    WS /ws/live                 every match event (landing page)
    WS /ws/matches/{match_id}   events for one match

Viewers only listen; anything they send is ignored.
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from knockout.services.live_events import LANDING_CHANNEL, dispatcher, match_channel

router = APIRouter()


async def _listen(websocket: WebSocket, channel: str) -> None:
    await dispatcher.connect(channel, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        dispatcher.disconnect(channel, websocket)


@router.websocket("/ws/live")
async def live_feed(websocket: WebSocket):
    await _listen(websocket, LANDING_CHANNEL)


@router.websocket("/ws/matches/{match_id}")
async def match_feed(websocket: WebSocket, match_id: int):
    await _listen(websocket, match_channel(match_id))
