"""Configurações do cliente via variáveis de ambiente.

Todas as configurações são carregadas de env vars (prefixo MEDCONNECT_).
Nunca hardcode credenciais: a sessão trafega apenas via cookie httpOnly.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# Constantes de contrato com o backend
# -----------------------------------------------------------------------------
DEFAULT_API_BASE_URL: str = "http://localhost:5000"
DEFAULT_LOGIN_PATH: str = "/auth/login"
AUTH_STORAGE_KEY: str = "auth-storage"
LOGOUT_SIGNAL_KEY: str = "auth-logout-signal"

_STORAGE_BACKENDS = frozenset({"memory", "file", "redis"})
_BROADCAST_BACKENDS = frozenset({"none", "memory", "redis"})


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="MEDCONNECT_",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "medconnect_client"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Backend REST / tempo real
    api_base_url: str = DEFAULT_API_BASE_URL
    socket_url: str | None = None  # Se None, usa api_base_url
    socket_transports: list[str] = ["websocket", "polling"]

    # Cliente HTTP
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 2  # Apenas falhas de transporte (timeout/conexão)
    http_retry_backoff_seconds: float = 0.5
    http_retry_backoff_max_seconds: float = 5.0

    # Recuperação de sessão (401)
    unauthorized_cooldown_seconds: float = 2.0
    login_path: str = DEFAULT_LOGIN_PATH

    # Armazenamento local (durável = localStorage, sessão = sessionStorage)
    durable_storage_backend: str = "memory"  # memory | file | redis
    session_storage_backend: str = "memory"  # memory
    storage_dir: str = ".medconnect"
    storage_quota_bytes: int | None = None
    redis_url: str | None = None
    redis_key_prefix: str = "medconnect:"

    # Sincronização entre abas
    broadcast_backend: str = "memory"  # none | memory | redis
    broadcast_channel: str = "auth"
    auth_storage_key: str = AUTH_STORAGE_KEY
    logout_signal_key: str = LOGOUT_SIGNAL_KEY

    # Chat
    chat_history_page_size: int = 50

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slashes(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def resolved_socket_url(self) -> str:
        """URL do Socket.IO (cai para a base REST quando não configurada)."""
        return (self.socket_url or self.api_base_url).rstrip("/")

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")

    def validate_storage_config(self) -> list[str]:
        """Valida backends de armazenamento.

        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        durable = self.durable_storage_backend.lower()
        if durable not in _STORAGE_BACKENDS:
            errors.append(
                f"DURABLE_STORAGE_BACKEND '{durable}' inválido. "
                f"Valores válidos: {sorted(_STORAGE_BACKENDS)}"
            )
        if durable == "redis" and not self.redis_url:
            errors.append("DURABLE_STORAGE_BACKEND=redis requer REDIS_URL configurado")
        if self.session_storage_backend.lower() != "memory":
            errors.append("SESSION_STORAGE_BACKEND deve ser memory (escopo da aba)")
        if self.storage_quota_bytes is not None and self.storage_quota_bytes <= 0:
            errors.append("STORAGE_QUOTA_BYTES deve ser positivo")
        return errors

    def validate_broadcast_config(self) -> list[str]:
        """Valida backend de broadcast entre abas."""
        errors: list[str] = []
        backend = self.broadcast_backend.lower()
        if backend not in _BROADCAST_BACKENDS:
            errors.append("BROADCAST_BACKEND inválido: use none | memory | redis")
        if backend == "redis" and not self.redis_url:
            errors.append("BROADCAST_BACKEND=redis requer REDIS_URL configurado")
        return errors

    def validate_session_config(self) -> list[str]:
        """Valida parâmetros de recuperação de sessão e paginação."""
        errors: list[str] = []
        if self.unauthorized_cooldown_seconds <= 0:
            errors.append("UNAUTHORIZED_COOLDOWN_SECONDS deve ser > 0")
        if self.chat_history_page_size <= 0:
            errors.append("CHAT_HISTORY_PAGE_SIZE deve ser > 0")
        if not self.login_path.startswith("/"):
            errors.append("LOGIN_PATH deve começar com '/'")
        return errors

    def validate_all(self) -> list[str]:
        """Agrega todas as validações."""
        return [
            *self.validate_storage_config(),
            *self.validate_broadcast_config(),
            *self.validate_session_config(),
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
