"""Testes do SocketManager: conexão única, fan-out e isolamento."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from medconnect_client.application.socket_manager import MESSAGE_EVENT, SocketManager
from medconnect_client.domain.chat import ChatMessage, DmMessageData, RoomMessageData

INBOUND = {"roomId": "r1", "senderId": "u2", "username": "Bia", "text": "oi"}


@pytest.fixture
def sio() -> MagicMock:
    client = MagicMock()
    client.connected = False

    async def _connect(*args, **kwargs) -> None:
        client.connected = True

    async def _disconnect() -> None:
        client.connected = False

    client.connect = AsyncMock(side_effect=_connect)
    client.disconnect = AsyncMock(side_effect=_disconnect)
    client.emit = AsyncMock()
    return client


@pytest.fixture
def manager(sio: MagicMock) -> SocketManager:
    return SocketManager(
        "http://rt.test",
        client=sio,
        transports=["websocket"],
        cookie_provider=lambda: "sid=abc",
    )


class TestConnectionLifecycle:
    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.connect()
        await manager.connect()

        sio.connect.assert_awaited_once_with(
            "http://rt.test", headers={"Cookie": "sid=abc"}, transports=["websocket"]
        )
        assert manager.connected is True

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.disconnect()
        sio.disconnect.assert_not_awaited()

        await manager.connect()
        await manager.disconnect()
        await manager.disconnect()

        sio.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_without_cookie(self, sio: MagicMock) -> None:
        manager = SocketManager("http://rt.test", client=sio)
        await manager.connect()
        assert sio.connect.await_args.kwargs["headers"] == {}

    @pytest.mark.asyncio
    async def test_last_unsubscribe_keeps_connection(
        self, manager: SocketManager, sio: MagicMock
    ) -> None:
        await manager.connect()
        unsubscribe = manager.subscribe(lambda msg: None)
        unsubscribe()

        assert manager.connected is True
        sio.disconnect.assert_not_awaited()


class TestFanOut:
    @pytest.mark.asyncio
    async def test_all_subscribers_in_order(self, manager: SocketManager) -> None:
        calls: list[tuple[int, ChatMessage]] = []
        for idx in (1, 2, 3):
            manager.subscribe(lambda msg, idx=idx: calls.append((idx, msg)))

        await manager.dispatch(INBOUND)

        assert [idx for idx, _ in calls] == [1, 2, 3]
        assert calls[0][1].sender_id == "u2"

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_only_that_callback(self, manager: SocketManager) -> None:
        calls: list[int] = []
        manager.subscribe(lambda msg: calls.append(1))
        unsubscribe_2 = manager.subscribe(lambda msg: calls.append(2))
        manager.subscribe(lambda msg: calls.append(3))

        await manager.dispatch(INBOUND)
        unsubscribe_2()
        unsubscribe_2()
        await manager.dispatch(INBOUND)

        assert calls == [1, 2, 3, 1, 3]

    @pytest.mark.asyncio
    async def test_same_handler_registered_twice(self, manager: SocketManager) -> None:
        calls: list[str] = []

        def handler(msg: ChatMessage) -> None:
            calls.append(msg.text)

        first = manager.subscribe(handler)
        manager.subscribe(handler)
        first()
        await manager.dispatch(INBOUND)

        assert calls == ["oi"]

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self, manager: SocketManager) -> None:
        calls: list[int] = []

        def broken(msg: ChatMessage) -> None:
            raise RuntimeError("render bug")

        manager.subscribe(broken)
        manager.subscribe(lambda msg: calls.append(2))
        manager.subscribe(lambda msg: calls.append(3))

        await manager.dispatch(INBOUND)

        assert calls == [2, 3]

    @pytest.mark.asyncio
    async def test_async_subscribers_are_awaited(self, manager: SocketManager) -> None:
        handler = AsyncMock()
        manager.subscribe(handler)

        await manager.dispatch(INBOUND)

        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_malformed_payload_dropped(self, manager: SocketManager) -> None:
        handler = MagicMock()
        manager.subscribe(handler)

        await manager.dispatch({"text": "no sender"})

        handler.assert_not_called()

    def test_single_transport_listener(self, manager: SocketManager, sio: MagicMock) -> None:
        for _ in range(5):
            manager.subscribe(lambda msg: None)

        sio.on.assert_called_once_with(MESSAGE_EVENT, manager.dispatch)
        assert manager.subscriber_count == 5


class TestEmits:
    @pytest.mark.asyncio
    async def test_join_dm_room(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.join_room("r1")
        sio.emit.assert_awaited_once_with("joinDmRoom", "r1")

    @pytest.mark.asyncio
    async def test_join_community_room(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.join_community_room("city-sp", "u1", "Ana")
        sio.emit.assert_awaited_once_with(
            "joinRoom",
            {"event": "joinRoom", "data": {"roomId": "city-sp", "userId": "u1", "username": "Ana"}},
        )

    @pytest.mark.asyncio
    async def test_send_message(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.send_message(
            DmMessageData(room_id="r1", sender_id="u1", receiver_id="u2", username="A", text="hi")
        )
        event, payload = sio.emit.await_args.args
        assert event == "dmMessage"
        assert payload["event"] == "dmMessage"
        assert payload["data"]["receiverId"] == "u2"

    @pytest.mark.asyncio
    async def test_send_message_to_room(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.send_message_to_room(
            RoomMessageData(room_id="city-sp", sender_id="u1", username="A", text="hi")
        )
        event, payload = sio.emit.await_args.args
        assert event == "roomMessage"
        assert payload["data"] == {
            "roomId": "city-sp",
            "senderId": "u1",
            "username": "A",
            "text": "hi",
        }

    @pytest.mark.asyncio
    async def test_emit_connects_lazily(self, manager: SocketManager, sio: MagicMock) -> None:
        await manager.join_room("r1")
        await manager.join_room("r2")
        sio.connect.assert_awaited_once()


class TestTeardown:
    @pytest.mark.asyncio
    async def test_teardown_clears_and_disconnects(
        self, manager: SocketManager, sio: MagicMock
    ) -> None:
        handler = MagicMock()
        manager.subscribe(handler)
        await manager.connect()

        await manager.teardown()
        await manager.dispatch(INBOUND)

        assert manager.subscriber_count == 0
        assert manager.connected is False
        handler.assert_not_called()
