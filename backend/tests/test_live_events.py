"""Websocket fan-out of live match events."""
import asyncio

from knockout.services.live_events import (
    LANDING_CHANNEL,
    GoalScored,
    LiveEventDispatcher,
    MatchEnded,
    MatchStarted,
    match_channel,
)


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


def _connect(dispatcher, channel, socket):
    asyncio.run(dispatcher.connect(channel, socket))


def test_payload_shapes():
    started = MatchStarted(match_id=3, match={"id": 3})
    assert started.payload() == {"type": "match:started", "matchId": 3, "match": {"id": 3}}

    goal = GoalScored(match_id=3, home_goals=1, away_goals=0, event={"event_type": "goal_home"})
    assert goal.payload()["type"] == "match:goal"
    assert goal.payload()["home_goals"] == 1

    assert MatchEnded(match_id=3, match={}).payload()["type"] == "match:ended"


def test_dispatch_reaches_landing_and_match_viewers():
    dispatcher = LiveEventDispatcher()
    landing = FakeSocket()
    watching = FakeSocket()
    other = FakeSocket()
    _connect(dispatcher, LANDING_CHANNEL, landing)
    _connect(dispatcher, match_channel(1), watching)
    _connect(dispatcher, match_channel(2), other)
    assert landing.accepted

    asyncio.run(dispatcher.dispatch(MatchStarted(match_id=1, match={"id": 1})))

    assert [m["type"] for m in landing.sent] == ["match:started"]
    assert [m["matchId"] for m in watching.sent] == [1]
    assert other.sent == []


def test_failed_viewer_is_dropped_without_raising():
    dispatcher = LiveEventDispatcher()
    broken = FakeSocket(fail=True)
    healthy = FakeSocket()
    _connect(dispatcher, LANDING_CHANNEL, broken)
    _connect(dispatcher, LANDING_CHANNEL, healthy)

    asyncio.run(dispatcher.dispatch(MatchEnded(match_id=5, match={})))

    assert dispatcher.viewer_count(LANDING_CHANNEL) == 1
    assert len(healthy.sent) == 1


def test_disconnect_cleans_up_channel():
    dispatcher = LiveEventDispatcher()
    socket = FakeSocket()
    _connect(dispatcher, match_channel(9), socket)
    assert dispatcher.viewer_count(match_channel(9)) == 1

    dispatcher.disconnect(match_channel(9), socket)
    dispatcher.disconnect(match_channel(9), socket)
    assert dispatcher.viewer_count(match_channel(9)) == 0
    assert match_channel(9) not in dispatcher.viewers


def test_dispatch_without_viewers():
    asyncio.run(LiveEventDispatcher().dispatch(MatchStarted(match_id=1, match={})))
