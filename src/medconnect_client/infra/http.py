"""Cliente HTTP centralizado (único gateway REST do cliente).

Este módulo fornece o cliente assíncrono usado por todos os endpoints, com:
- Credencial ambiente via cookie jar (nunca header Authorization)
- Retry com backoff apenas para falhas de transporte (POST/PATCH só sem envio)
- Hooks de resposta (interceptores) para erros 401/403/5xx
- Logging estruturado sem PII
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from medconnect_client.domain.errors import HttpError, SessionExpiredError
from medconnect_client.observability.context import get_correlation_id
from medconnect_client.observability.logging import get_logger

if TYPE_CHECKING:
    from medconnect_client.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
_FORBIDDEN_HEADERS = frozenset({"authorization"})
_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})
# Falhas em que a requisição não chegou a ser enviada
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)

ResponseHook = Callable[[httpx.Response, bool], Awaitable[None]]
"""Interceptor: recebe a resposta de erro e se a recuperação de sessão está ativa."""


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP.

    Valores padrão são seguros e conservadores.
    """

    base_url: str = "http://localhost:5000"
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 5.0
    default_headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True
    transport: httpx.AsyncBaseTransport | None = None


def _calculate_backoff(
    attempt: int,
    base_seconds: float,
    max_seconds: float,
) -> float:
    """Calcula tempo de espera com backoff exponencial."""
    backoff = (2**attempt) * base_seconds
    return min(backoff, max_seconds)


def _strip_credential_headers(headers: dict[str, str] | None) -> dict[str, str]:
    """Remove headers de credencial; a sessão trafega só via cookie."""
    if not headers:
        return {}
    clean = {k: v for k, v in headers.items() if k.lower() not in _FORBIDDEN_HEADERS}
    if len(clean) != len(headers):
        logger.warning("Dropping credential header from outbound request")
    return clean


def _safe_json(response: httpx.Response) -> Any | None:
    try:
        return response.json()
    except ValueError:
        return None


def _log_request_start(method: str, path: str, attempt: int, max_r: int) -> None:
    """Loga início de requisição sem dados sensíveis."""
    logger.debug(
        "Executing HTTP request",
        extra={"method": method, "path": path, "attempt": attempt + 1, "max_retries": max_r},
    )


def _log_transient_error(msg: str, method: str, path: str, attempt: int, error: str) -> None:
    """Loga erro transitório (timeout, conexão)."""
    logger.warning(
        msg,
        extra={"method": method, "path": path, "attempt": attempt + 1, "error": error},
    )


def _handle_transient_exception(
    exc: Exception,
    method: str,
    path: str,
    attempt: int,
) -> HttpError:
    """Trata exceções de transporte e retorna HttpError retentável."""
    if isinstance(exc, httpx.TimeoutException):
        _log_transient_error("HTTP request timed out", method, path, attempt, str(exc))
        return HttpError("Timeout", is_retryable=True)

    if isinstance(exc, httpx.TransportError):
        _log_transient_error("HTTP transport error", method, path, attempt, str(exc))
        return HttpError("Connection error", is_retryable=True)

    logger.error(
        "Unexpected HTTP error",
        extra={"method": method, "path": path, "error_type": type(exc).__name__},
    )
    raise HttpError(f"Unexpected error: {type(exc).__name__}") from exc


def _may_resend(exc: Exception, method: str) -> bool:
    """POST/PATCH só são reenviados se a requisição nunca saiu do cliente."""
    if method.upper() in _IDEMPOTENT_METHODS:
        return True
    return isinstance(exc, _NOT_SENT_ERRORS)


class HttpClient:
    """Cliente HTTP assíncrono com interceptores de resposta.

    Uso típico:
        async with HttpClient(config) as client:
            response = await client.post("/api/user/login", json=payload)
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        response_hooks: list[ResponseHook] | None = None,
    ) -> None:
        self._config = config or HttpClientConfig()
        self._client: httpx.AsyncClient | None = None
        self._hooks: list[ResponseHook] = list(response_hooks or [])

    def add_response_hook(self, hook: ResponseHook) -> None:
        """Registra interceptor executado para toda resposta de erro."""
        self._hooks.append(hook)

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente httpx (lazy loading); o cookie jar vive nele."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=_strip_credential_headers(self._config.default_headers),
                verify=self._config.verify_ssl,
                transport=self._config.transport,
            )
        return self._client

    def cookie_header(self) -> str | None:
        """Serializa o cookie jar atual (para o handshake do socket)."""
        if self._client is None:
            return None
        pairs = [f"{name}={value}" for name, value in self._client.cookies.items()]
        return "; ".join(pairs) or None

    async def close(self) -> None:
        """Fecha o cliente e libera recursos."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        auth_recovery: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Executa requisição com retry de transporte e interceptores.

        Args:
            method: Método HTTP (GET, POST, etc.)
            path: Caminho relativo à base_url
            auth_recovery: Se False, um 401 não dispara a recuperação global
            **kwargs: Argumentos passados para httpx

        Returns:
            Resposta 2xx

        Raises:
            SessionExpiredError: Em 401
            HttpError: Em qualquer outro status de erro ou falha de transporte
        """
        headers = _strip_credential_headers(kwargs.pop("headers", None))
        correlation_id = get_correlation_id()
        if correlation_id:
            headers.setdefault(CORRELATION_HEADER, correlation_id)

        response = await self._request_with_retry(method, path, headers=headers, **kwargs)
        return await self._process_response(response, method, path, auth_recovery)

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        last_error: HttpError | None = None
        cfg = self._config

        for attempt in range(cfg.max_retries + 1):
            _log_request_start(method, path, attempt, cfg.max_retries)
            try:
                return await client.request(method, path, **kwargs)
            except Exception as exc:
                last_error = _handle_transient_exception(exc, method, path, attempt)
                if not _may_resend(exc, method):
                    logger.warning(
                        "Non-idempotent request not resent",
                        extra={"method": method, "path": path, "attempt": attempt + 1},
                    )
                    raise HttpError(str(last_error), is_retryable=False) from exc

            await self._wait_backoff_if_needed(attempt)

        logger.error(
            "HTTP retries exhausted",
            extra={"method": method, "path": path, "total_attempts": cfg.max_retries + 1},
        )
        raise last_error or HttpError("Request failed after all retries")

    async def _process_response(
        self,
        response: httpx.Response,
        method: str,
        path: str,
        auth_recovery: bool,
    ) -> httpx.Response:
        """Retorna a resposta em sucesso; senão roda interceptores e levanta."""
        if response.is_success:
            logger.debug(
                "HTTP request succeeded",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            return response

        logger.warning(
            "HTTP request failed",
            extra={"method": method, "path": path, "status_code": response.status_code},
        )
        for hook in list(self._hooks):
            await hook(response, auth_recovery)

        payload = _safe_json(response)
        error_cls = SessionExpiredError if response.status_code == 401 else HttpError
        raise error_cls(
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            is_retryable=False,
            payload=payload,
        )

    async def _wait_backoff_if_needed(self, attempt: int) -> None:
        """Aguarda backoff se ainda há retries disponíveis."""
        cfg = self._config
        if attempt < cfg.max_retries:
            backoff = _calculate_backoff(attempt, cfg.backoff_base_seconds, cfg.backoff_max_seconds)
            logger.info(
                "Waiting backoff before retry",
                extra={"backoff_seconds": backoff, "next_attempt": attempt + 2},
            )
            await asyncio.sleep(backoff)

    # Métodos de conveniência

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)


def create_http_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HttpClient:
    """Factory para criar cliente HTTP configurado.

    Args:
        settings: Configurações da aplicação. Se None, usa get_settings()
        transport: Transporte httpx alternativo (testes)
    """
    if settings is None:
        from medconnect_client.config.settings import get_settings

        settings = get_settings()

    config = HttpClientConfig(
        base_url=settings.api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
        max_retries=settings.http_max_retries,
        backoff_base_seconds=settings.http_retry_backoff_seconds,
        backoff_max_seconds=settings.http_retry_backoff_max_seconds,
        default_headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
        verify_ssl=True,
        transport=transport,
    )

    logger.info(
        "HTTP client created",
        extra={"timeout_seconds": config.timeout_seconds, "max_retries": config.max_retries},
    )

    return HttpClient(config)
