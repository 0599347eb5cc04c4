"""Recuperação global de sessão a partir de respostas de erro HTTP."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Literal

import httpx

from medconnect_client.domain.protocols.ui import Navigator, Notifier
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

GuardState = Literal["idle", "handling"]
SessionExpiryHandler = Callable[[str], Awaitable[None]]

SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
FORBIDDEN_MESSAGE = "You do not have permission to perform this action."
SERVER_ERROR_MESSAGE = "Server error. Please try again later."
UNAUTHORIZED_REASON = "api_unauthorized"


class UnauthorizedGuard:
    """Debounce de 401: uma recuperação por rajada.

    Estados: idle --(401)--> handling --(cooldown)--> idle. O retorno ao
    idle é derivado do relógio, sem timers pendentes.
    """

    def __init__(
        self,
        cooldown_seconds: float = 2.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if cooldown_seconds <= 0:
            raise ValueError("cooldown_seconds must be positive")
        self._cooldown = cooldown_seconds
        self._clock = clock or time.monotonic
        self._acquired_at: float | None = None

    @property
    def state(self) -> GuardState:
        if self._acquired_at is None:
            return "idle"
        if self._clock() - self._acquired_at >= self._cooldown:
            return "idle"
        return "handling"

    def try_acquire(self) -> bool:
        """True se este 401 deve disparar a recuperação."""
        if self.state == "handling":
            return False
        self._acquired_at = self._clock()
        return True

    def reset(self) -> None:
        self._acquired_at = None


class AuthFailureInterceptor:
    """Hook de resposta do HttpClient.

    - 401 (com recuperação ativa): toast, expiração no Auth Store e
      navegação para o login, no máximo uma vez por rajada
    - 403: toast de permissão
    - 5xx: toast de erro de servidor
    Demais status apenas propagam ao chamador.
    """

    def __init__(
        self,
        notifier: Notifier,
        navigator: Navigator,
        guard: UnauthorizedGuard | None = None,
        login_path: str = "/auth/login",
        session_handler: SessionExpiryHandler | None = None,
    ) -> None:
        self._notifier = notifier
        self._navigator = navigator
        self._guard = guard or UnauthorizedGuard()
        self._login_path = login_path
        self._session_handler = session_handler
        self.recoveries = 0

    @property
    def guard(self) -> UnauthorizedGuard:
        return self._guard

    def bind_session_handler(self, handler: SessionExpiryHandler) -> None:
        """Liga o handler de expiração (o Auth Store é criado depois do HTTP)."""
        self._session_handler = handler

    async def __call__(self, response: httpx.Response, auth_recovery: bool) -> None:
        status = response.status_code
        if status == 401:
            if auth_recovery:
                await self._recover(response)
            return
        if status == 403:
            self._notifier.error(FORBIDDEN_MESSAGE)
            return
        if status >= 500:
            self._notifier.error(SERVER_ERROR_MESSAGE)

    async def _recover(self, response: httpx.Response) -> None:
        if not self._guard.try_acquire():
            logger.debug("Duplicate 401 suppressed", extra={"status_code": response.status_code})
            return

        self.recoveries += 1
        logger.info("Session expired, starting recovery", extra={"reason": UNAUTHORIZED_REASON})
        self._notifier.error(SESSION_EXPIRED_MESSAGE)
        if self._session_handler is not None:
            await self._session_handler(UNAUTHORIZED_REASON)
        else:
            logger.warning("No session expiry handler bound")
        self._navigator.navigate(self._login_path)
