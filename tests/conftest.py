from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from medconnect_client.config.settings import Settings, get_settings


class FakeClock:
    """Relógio controlado manualmente (segundos ou milissegundos)."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, delta: float) -> None:
        self.now += delta


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(start=1_000.0)


@pytest.fixture()
def clock_factory() -> Callable[[float], FakeClock]:
    return FakeClock


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        api_base_url="http://api.test",
        http_max_retries=0,
        broadcast_backend="memory",
        durable_storage_backend="memory",
    )


@pytest.fixture()
def envelope() -> Callable[..., httpx.Response]:
    """Monta respostas no formato `{success, data, message}`."""

    def _build(
        data: object = None,
        *,
        success: bool = True,
        message: str | None = None,
        status_code: int = 200,
    ) -> httpx.Response:
        body: dict[str, object] = {"success": success, "data": data}
        if message is not None:
            body["message"] = message
        return httpx.Response(status_code, json=body)

    return _build
