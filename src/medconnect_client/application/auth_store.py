"""Auth Store: identidade da sessão, login/logout e sincronização entre abas.

- Única dona da sessão; a UI apenas lê (`state`, `subscribe`)
- Persiste somente campos de perfil sob `auth-storage` como `{"user": ...}`
- Expiração é propagada via canal de broadcast, com fallback por evento
  de armazenamento (chave de sinal escrita e removida em seguida)
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from medconnect_client.adapters.backend.endpoints import AuthApi
from medconnect_client.adapters.backend.normalizer import normalize_user_session
from medconnect_client.config.settings import (
    AUTH_STORAGE_KEY,
    DEFAULT_LOGIN_PATH,
    LOGOUT_SIGNAL_KEY,
)
from medconnect_client.domain.auth import AuthEvent, AuthStatus, UserSession, validate_transition
from medconnect_client.domain.errors import (
    AuthError,
    AuthErrorCategory,
    BackendError,
    BroadcastError,
    HttpError,
    MalformedResponseError,
    StorageError,
)
from medconnect_client.domain.protocols.broadcast import BroadcastChannel
from medconnect_client.domain.protocols.storage import KeyValueStorage, StorageEvent
from medconnect_client.domain.protocols.ui import Navigator
from medconnect_client.observability.logging import get_logger, mask_identifier

logger: logging.Logger = get_logger(__name__)

LOGIN_FAILED_MESSAGE = "Login failed"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
LOGOUT_MESSAGE_TYPE = "logout"


@dataclass(frozen=True, slots=True)
class AuthState:
    """Snapshot imutável entregue aos assinantes."""

    status: AuthStatus
    user: UserSession | None
    is_loading: bool
    is_ready: bool
    last_session_expiry: datetime | None


AuthListener = Callable[[AuthState], None]


class AuthStore:
    """Máquina de estados de autenticação de uma aba."""

    def __init__(
        self,
        auth_api: AuthApi,
        storage: KeyValueStorage,
        navigator: Navigator,
        *,
        broadcast: BroadcastChannel | None = None,
        disconnect_socket: Callable[[], Awaitable[None]] | None = None,
        storage_key: str = AUTH_STORAGE_KEY,
        signal_key: str = LOGOUT_SIGNAL_KEY,
        login_path: str = DEFAULT_LOGIN_PATH,
        tab_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._api = auth_api
        self._storage = storage
        self._navigator = navigator
        self._broadcast = broadcast
        self._disconnect_socket = disconnect_socket
        self._storage_key = storage_key
        self._signal_key = signal_key
        self._login_path = login_path
        self.tab_id = tab_id or uuid.uuid4().hex
        self._clock = clock or (lambda: datetime.now(UTC))

        self._status = AuthStatus.UNAUTHENTICATED
        self._user: UserSession | None = None
        self._is_loading = True
        self._is_ready = False
        self._last_session_expiry: datetime | None = None

        self._lock = asyncio.Lock()
        self._listeners: list[AuthListener] = []
        self._detach: list[Callable[[], None]] = []
        self._pending: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------

    @property
    def status(self) -> AuthStatus:
        return self._status

    @property
    def user(self) -> UserSession | None:
        return self._user

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def last_session_expiry(self) -> datetime | None:
        return self._last_session_expiry

    @property
    def state(self) -> AuthState:
        return AuthState(
            status=self._status,
            user=self._user,
            is_loading=self._is_loading,
            is_ready=self._is_ready,
            last_session_expiry=self._last_session_expiry,
        )

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Registra listener de mudanças de estado; retorna a remoção."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Boot em duas fases
    # ------------------------------------------------------------------

    def load_persisted_state(self) -> UserSession | None:
        """Reidrata a sessão do armazenamento durável (sem rede).

        Registros corrompidos ou inválidos são tratados como ausentes.
        """
        try:
            raw = self._storage.get_item(self._storage_key)
        except StorageError as e:
            logger.error("Failed to read persisted session", extra={"error_type": type(e).__name__})
            return None
        if not raw:
            return None

        try:
            record = json.loads(raw)
            data = record.get("user") if isinstance(record, dict) else None
            user = UserSession.model_validate(data) if data else None
        except (ValueError, ValidationError) as e:
            logger.warning(
                "Discarding invalid persisted session", extra={"error_type": type(e).__name__}
            )
            return None

        if user is not None:
            self._user = user
            self._transition(AuthEvent.SESSION_RESTORED)
            logger.info("Session restored", extra={"user_id": mask_identifier(user.id)})
        return user

    def boot(self) -> None:
        """Fase 1 (reidratação) seguida de fase 2 (pronto)."""
        self.load_persisted_state()
        self._is_loading = False
        self._is_ready = True
        self._emit()

    async def start(self) -> None:
        """Boot completo: reidrata e passa a escutar as outras abas."""
        self.boot()
        self.attach_cross_tab_listeners()
        if self._broadcast is not None:
            await self._broadcast.start()

    async def check_auth(self) -> None:
        """A reidratação já ocorreu; apenas encerra o estado de carregamento."""
        self._is_loading = False
        self._emit()

    # ------------------------------------------------------------------
    # Operações
    # ------------------------------------------------------------------

    def set_user(self, user: UserSession) -> None:
        """Atualização explícita de perfil (persistida)."""
        self._user = user
        self._transition(AuthEvent.USER_SET)
        self._persist()
        self._emit()

    async def login(self, email: str, password: str) -> UserSession:
        """Autentica e retém apenas a identidade.

        Raises:
            AuthError: INVALID_CREDENTIALS quando o backend recusa,
                UNKNOWN para falhas de transporte ou resposta inesperada
        """
        async with self._lock:
            self._transition(AuthEvent.LOGIN_STARTED)
            self._is_loading = True
            self._emit()

            try:
                data = await self._api.login(email, password)
                user = normalize_user_session(data or {})
            except MalformedResponseError as e:
                raise self._login_failed(AuthErrorCategory.UNKNOWN, UNKNOWN_ERROR_MESSAGE) from e
            except BackendError as e:
                raise self._login_failed(
                    AuthErrorCategory.INVALID_CREDENTIALS, str(e) or LOGIN_FAILED_MESSAGE
                ) from e
            except HttpError as e:
                if e.status_code is not None:
                    raise self._login_failed(
                        AuthErrorCategory.INVALID_CREDENTIALS,
                        e.server_message or LOGIN_FAILED_MESSAGE,
                    ) from e
                raise self._login_failed(AuthErrorCategory.UNKNOWN, UNKNOWN_ERROR_MESSAGE) from e
            except (ValueError, AttributeError) as e:
                raise self._login_failed(AuthErrorCategory.UNKNOWN, UNKNOWN_ERROR_MESSAGE) from e

            self._user = user
            if not self._transition(AuthEvent.LOGIN_SUCCEEDED):
                # Logout remoto durante o login; o servidor já autenticou
                self._transition(AuthEvent.USER_SET)
            self._is_loading = False
            self._persist()
            self._emit()
            logger.info("Login succeeded", extra={"user_id": mask_identifier(user.id)})
            return user

    def _login_failed(self, category: AuthErrorCategory, message: str) -> AuthError:
        self._is_loading = False
        self._transition(AuthEvent.LOGIN_FAILED)
        if self._user is not None:
            # Nova tentativa falhou mas a sessão anterior continua válida
            self._transition(AuthEvent.SESSION_RESTORED)
        self._emit()
        logger.warning("Login failed", extra={"category": str(category)})
        return AuthError(category, message)

    async def logout(self) -> None:
        """Encerra a sessão local; no-op quando não há sessão."""
        async with self._lock:
            if self._user is None and self._status == AuthStatus.UNAUTHENTICATED:
                logger.debug("Logout ignored, no active session")
                return

            await self._api.logout()
            self._user = None
            self._transition(AuthEvent.LOGOUT)
            self._is_loading = False
            self._remove_persisted()
            await self._close_socket()
            self._emit()
            logger.info("Logged out", extra={"tab_id": self.tab_id})

    async def handle_session_expiry(self, reason: str) -> None:
        """Limpeza de logout, registro do horário e aviso às outras abas."""
        self._last_session_expiry = self._clock()
        had_session = self._user is not None
        logger.info(
            "Handling session expiry",
            extra={"reason": reason, "had_session": had_session, "tab_id": self.tab_id},
        )

        self._user = None
        if self._transition(AuthEvent.SESSION_EXPIRED):
            self._transition(AuthEvent.CLEANUP_DONE)
        self._is_loading = False
        self._remove_persisted()
        await self._close_socket()
        self._emit()

        await self._broadcast_logout(reason)

    def teardown(self) -> None:
        """Remove listeners (estado do processo encerrado)."""
        for detach in self._detach:
            detach()
        self._detach.clear()
        self._listeners.clear()
        for task in list(self._pending):
            task.cancel()

    # ------------------------------------------------------------------
    # Sincronização entre abas
    # ------------------------------------------------------------------

    def attach_cross_tab_listeners(self) -> None:
        """Escuta broadcast e eventos de armazenamento (idempotente)."""
        if self._detach:
            return
        self._detach.append(self._storage.subscribe(self._on_storage_event))
        if self._broadcast is not None:
            self._detach.append(self._broadcast.subscribe(self._on_broadcast))

    async def _broadcast_logout(self, reason: str) -> None:
        message = {
            "type": LOGOUT_MESSAGE_TYPE,
            "reason": reason,
            "tab_id": self.tab_id,
            "timestamp": self._last_session_expiry.isoformat()
            if self._last_session_expiry
            else None,
        }
        if self._broadcast is not None:
            try:
                await self._broadcast.publish(message)
                return
            except BroadcastError as e:
                logger.warning(
                    "Broadcast publish failed, using storage signal",
                    extra={"error_type": type(e).__name__},
                )
        self._write_signal(message)

    def _write_signal(self, message: dict[str, Any]) -> None:
        try:
            self._storage.set_item(self._signal_key, json.dumps(message))
            self._storage.remove_item(self._signal_key)
        except StorageError as e:
            logger.error("Failed to write logout signal", extra={"error_type": type(e).__name__})

    def _on_broadcast(self, message: dict[str, Any]) -> None:
        if message.get("type") != LOGOUT_MESSAGE_TYPE:
            return
        if message.get("tab_id") == self.tab_id:
            return
        self._apply_remote_logout("broadcast")

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key == self._signal_key:
            if event.new_value is None:
                return
            try:
                message = json.loads(event.new_value)
            except ValueError:
                return
            if isinstance(message, dict) and message.get("tab_id") != self.tab_id:
                self._apply_remote_logout("storage_signal")
            return

        # Registro de sessão removido por outra aba; clear() (key=None) vem do
        # cache e não encerra a sessão
        if event.key == self._storage_key and event.new_value is None:
            self._apply_remote_logout("storage_cleared")

    def _apply_remote_logout(self, source: str) -> None:
        """Converge para sem sessão dentro do mesmo turno do event loop."""
        if self._user is None and self._status != AuthStatus.AUTHENTICATING:
            return
        logger.info("Remote logout received", extra={"source": source, "tab_id": self.tab_id})
        self._user = None
        self._transition(AuthEvent.REMOTE_LOGOUT)
        self._is_loading = False
        self._emit()
        self._navigator.navigate(self._login_path)
        self._schedule_socket_close()

    def _schedule_socket_close(self) -> None:
        if self._disconnect_socket is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop, socket disconnect skipped")
            return
        task = loop.create_task(self._close_socket())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _transition(self, event: AuthEvent) -> bool:
        ok, next_state, reason = validate_transition(self._status, event)
        if not ok or next_state is None:
            logger.debug(
                "Auth transition ignored",
                extra={"current_state": str(self._status), "event": str(event), "reason": reason},
            )
            return False
        self._status = next_state
        return True

    def _persist(self) -> None:
        record = {"user": self._user.to_persisted() if self._user else None}
        try:
            self._storage.set_item(self._storage_key, json.dumps(record))
        except StorageError as e:
            logger.error("Failed to persist session", extra={"error_type": type(e).__name__})

    def _remove_persisted(self) -> None:
        try:
            self._storage.remove_item(self._storage_key)
        except StorageError as e:
            logger.error(
                "Failed to remove persisted session", extra={"error_type": type(e).__name__}
            )

    async def _close_socket(self) -> None:
        if self._disconnect_socket is None:
            return
        try:
            await self._disconnect_socket()
        except Exception as e:
            logger.warning("Socket disconnect failed", extra={"error_type": type(e).__name__})

    def _emit(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error("Auth listener failed", extra={"error_type": type(e).__name__})
