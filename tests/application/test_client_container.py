"""Testes de integração do container MedConnectClient (abas simuladas)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from medconnect_client import create_client
from medconnect_client.application.cache import CacheKeys
from medconnect_client.config.settings import Settings
from medconnect_client.domain.auth import AuthStatus, Role, UserSession
from medconnect_client.domain.chat import ChatSurface
from medconnect_client.domain.errors import AuthError, SessionExpiredError
from medconnect_client.infra.broadcast_memory import InMemoryBroadcastHub
from medconnect_client.infra.storage_memory import InMemoryStorage
from medconnect_client.infra.ui import InMemoryNavigator, LoggingNotifier

USER = {"id": "u1", "name": "Ana", "email": "ana@x.com", "role": "PATIENT"}


def backend(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/user/login":
        return httpx.Response(
            200,
            json={"success": True, "data": {**USER, "token": "jwt"}},
            headers={"set-cookie": "sid=s1; Path=/"},
        )
    if request.url.path == "/api/user/logout":
        return httpx.Response(200, json={"success": True})
    if request.url.path == "/api/patient/fetchAllDoctors":
        return httpx.Response(200, json={"success": True, "data": [{"id": "d1"}]})
    return httpx.Response(401, json={"success": False, "message": "Unauthorized"})


def _socket_client() -> MagicMock:
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
def shared_storage() -> InMemoryStorage:
    return InMemoryStorage(name="origin")


def _tab(settings: Settings, storage: InMemoryStorage, clock, **kwargs):
    navigator = kwargs.pop("navigator", InMemoryNavigator("/dashboard"))
    notifier = kwargs.pop("notifier", LoggingNotifier())
    return create_client(
        settings,
        durable_storage=storage,
        socket_client=kwargs.pop("socket_client", _socket_client()),
        notifier=notifier,
        navigator=navigator,
        transport=httpx.MockTransport(backend),
        guard_clock=clock,
        **kwargs,
    )


class TestCreateClient:
    def test_invalid_configuration_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid configuration"):
            create_client(Settings(durable_storage_backend="redis"))

    @pytest.mark.asyncio
    async def test_start_rehydrates(self, settings, shared_storage, clock) -> None:
        first = _tab(settings, shared_storage, clock)
        first.auth.set_user(UserSession.model_validate(USER))

        tab = _tab(settings, shared_storage, clock)
        await tab.start()

        assert tab.auth.is_ready is True
        assert tab.auth.user is not None
        assert tab.auth.user.role is Role.PATIENT
        await tab.aclose()
        await first.aclose()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_login_then_burst_of_401(self, settings, shared_storage, clock) -> None:
        navigator = InMemoryNavigator("/dashboard")
        notifier = LoggingNotifier()
        socket_client = _socket_client()
        tab = _tab(
            settings,
            shared_storage,
            clock,
            navigator=navigator,
            notifier=notifier,
            socket_client=socket_client,
        )
        await tab.start()

        await tab.auth.login("ana@x.com", "pw")
        await tab.socket.connect()
        assert socket_client.connect.await_args.kwargs["headers"] == {"Cookie": "sid=s1"}
        assert "jwt" not in shared_storage.get_item("auth-storage")

        results = await asyncio.gather(
            *(tab.http.get(f"/api/doctor/{i}") for i in range(5)), return_exceptions=True
        )

        assert all(isinstance(r, Exception) for r in results)
        assert tab.interceptor.recoveries == 1
        assert navigator.history == ["/auth/login"]
        assert notifier.messages == [("error", "Session expired. Please log in again.")]
        assert tab.auth.status == AuthStatus.UNAUTHENTICATED
        assert tab.auth.last_session_expiry is not None
        assert shared_storage.get_item("auth-storage") is None
        assert tab.socket.connected is False
        await tab.aclose()

    @pytest.mark.asyncio
    async def test_login_failure_does_not_trigger_recovery(
        self, settings, shared_storage, clock
    ) -> None:
        def rejecting(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False, "message": "Invalid credentials"})

        navigator = InMemoryNavigator("/auth/login")
        tab = create_client(
            settings,
            durable_storage=shared_storage,
            socket_client=_socket_client(),
            navigator=navigator,
            transport=httpx.MockTransport(rejecting),
            guard_clock=clock,
        )

        with pytest.raises(AuthError, match="Invalid credentials"):
            await tab.auth.login("ana@x.com", "bad")

        assert tab.interceptor.recoveries == 0
        assert navigator.history == []
        await tab.aclose()

    @pytest.mark.asyncio
    async def test_cache_clear_keeps_session(self, settings, shared_storage, clock) -> None:
        navigator = InMemoryNavigator("/dashboard")
        tab = _tab(settings, shared_storage, clock, navigator=navigator)
        await tab.start()
        tab.auth.set_user(UserSession.model_validate(USER))
        tab.cache.set(CacheKeys.DOCTORS_LIST, [1, 2], ttl=5000)

        tab.cache.clear()

        assert tab.auth.user is not None
        assert tab.auth.status == AuthStatus.AUTHENTICATED
        assert navigator.history == []
        await tab.aclose()

    @pytest.mark.asyncio
    async def test_cross_tab_logout(self, settings, shared_storage, clock) -> None:
        hub = InMemoryBroadcastHub()
        nav_b = InMemoryNavigator("/chat")
        tab_a = _tab(settings, shared_storage, clock, hub=hub)
        tab_b = _tab(settings, shared_storage, clock, hub=hub, navigator=nav_b)
        await tab_a.start()
        await tab_b.start()

        await tab_a.auth.login("ana@x.com", "pw")
        tab_b.auth.boot()
        assert tab_b.auth.user is not None

        with pytest.raises(SessionExpiredError):
            await tab_a.http.get("/api/patient/all-appointments")

        assert tab_b.auth.user is None
        assert nav_b.current_path == "/auth/login"
        await tab_a.aclose()
        await tab_b.aclose()

    @pytest.mark.asyncio
    async def test_cached_get_and_history_pager(self, settings, shared_storage, clock) -> None:
        tab = _tab(settings, shared_storage, clock)

        body = await tab.cached_get("/api/patient/fetchAllDoctors", CacheKeys.DOCTORS_LIST)

        assert body["data"] == [{"id": "d1"}]
        assert tab.cache.get(CacheKeys.DOCTORS_LIST) == body
        pager = tab.history_pager(ChatSurface.CITY, "Recife")
        assert pager.ref.limit == settings.chat_history_page_size
        await tab.aclose()
