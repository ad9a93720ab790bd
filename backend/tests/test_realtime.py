"""Best-effort change broadcast and the WebSocket feed."""
import asyncio

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from dependencies import get_broadcaster, get_db
from routes.realtime import portfolio_changes
from server import app
from services.portfolio_schema import default_portfolio_content
from services.realtime import ContentBroadcaster


class TestBroadcaster:
    def test_fan_out_to_all_subscribers(self):
        broadcaster = ContentBroadcaster()
        first, second = broadcaster.subscribe(), broadcaster.subscribe()
        assert broadcaster.notify_portfolio_changed("owner-1", version=3) == 2
        assert first.get_nowait()["version"] == 3
        assert second.get_nowait()["ownerId"] == "owner-1"

    def test_full_queue_drops_event_without_raising(self):
        broadcaster = ContentBroadcaster(queue_size=1)
        slow = broadcaster.subscribe()
        fast = broadcaster.subscribe()
        broadcaster.publish({"type": "update", "n": 1})
        fast.get_nowait()
        delivered = broadcaster.publish({"type": "update", "n": 2})
        assert delivered == 1
        assert slow.get_nowait()["n"] == 1
        assert slow.empty()

    def test_unsubscribe(self):
        broadcaster = ContentBroadcaster()
        queue = broadcaster.subscribe()
        broadcaster.unsubscribe(queue)
        assert broadcaster.subscriber_count == 0
        assert broadcaster.notify_portfolio_changed("owner-1") == 0

    def test_publish_with_no_subscribers(self):
        assert ContentBroadcaster().publish({"type": "update"}) == 0

    def test_event_shape(self):
        broadcaster = ContentBroadcaster()
        queue = broadcaster.subscribe()
        broadcaster.notify_portfolio_changed("owner-1", version=2, section="projects", change_type="publish")
        event = queue.get_nowait()
        assert set(event) == {"event", "type", "section", "ownerId", "version", "timestamp"}
        assert event["type"] == "publish"


class TestWebSocketFeed:
    def test_connect_and_ping(self, client):
        app.dependency_overrides[get_broadcaster] = lambda: ContentBroadcaster()
        with client.websocket_connect("/api/realtime/portfolio") as ws:
            assert ws.receive_json()["event"] == "connected"
            ws.send_text("ping")
            assert ws.receive_json() == {"event": "pong"}

    def test_save_is_streamed_to_subscribers(self, fake_db, make_user):
        broadcaster = ContentBroadcaster()
        app.dependency_overrides[get_db] = lambda: fake_db
        app.dependency_overrides[get_broadcaster] = lambda: broadcaster
        user, headers = make_user()
        try:
            # Shared event loop for HTTP and WebSocket calls
            with TestClient(app) as client:
                with client.websocket_connect(f"/api/realtime/portfolio?owner_id={user['user_id']}") as ws:
                    assert ws.receive_json()["event"] == "connected"
                    client.put("/api/portfolio/admin", json=default_portfolio_content(), headers=headers)
                    event = ws.receive_json()
            assert event["event"] == "portfolio-changed"
            assert event["ownerId"] == user["user_id"]
            assert event["version"] == 1
            assert "content" not in event
        finally:
            app.dependency_overrides.clear()


class _ScriptedSocket:
    """Minimal WebSocket stand-in: sends after the first can be made to fail."""

    def __init__(self, on_receive, fail_after_first_send=False):
        self.sent = []
        self._on_receive = on_receive
        self._fail_after_first_send = fail_after_first_send

    async def accept(self):
        pass

    async def send_json(self, data):
        if self._fail_after_first_send and self.sent:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def receive_text(self):
        await self._on_receive()
        raise WebSocketDisconnect()


def _other_tasks():
    return [t for t in asyncio.all_tasks() if t is not asyncio.current_task() and not t.done()]


class TestFeedShutdown:
    @pytest.mark.asyncio
    async def test_idle_sender_is_finished_on_disconnect(self):
        broadcaster = ContentBroadcaster()

        async def let_sender_start():
            await asyncio.sleep(0)

        socket = _ScriptedSocket(let_sender_start)
        await portfolio_changes(socket, owner_id=None, broadcaster=broadcaster)

        assert socket.sent == [{"event": "connected", "ownerId": None}]
        assert broadcaster.subscriber_count == 0
        assert _other_tasks() == []

    @pytest.mark.asyncio
    async def test_failed_send_after_disconnect_is_consumed(self):
        broadcaster = ContentBroadcaster()

        async def publish_then_close():
            broadcaster.notify_portfolio_changed("owner-1", version=2)
            for _ in range(3):
                await asyncio.sleep(0)

        socket = _ScriptedSocket(publish_then_close, fail_after_first_send=True)
        await portfolio_changes(socket, owner_id=None, broadcaster=broadcaster)

        assert broadcaster.subscriber_count == 0
        assert _other_tasks() == []
