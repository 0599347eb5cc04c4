"""Camada de aplicação: cache, recuperação de sessão, Auth Store, socket e histórico."""

from medconnect_client.application.auth_store import AuthState, AuthStore
from medconnect_client.application.cache import (
    CacheBackend,
    CacheKeys,
    CacheManager,
    CacheTTL,
    cached_get,
    prefetch,
)
from medconnect_client.application.chat_history import ChatHistoryLoader, HistoryPager
from medconnect_client.application.recovery import AuthFailureInterceptor, UnauthorizedGuard
from medconnect_client.application.socket_manager import SocketManager

__all__ = [
    "AuthState",
    "AuthStore",
    "CacheBackend",
    "CacheKeys",
    "CacheManager",
    "CacheTTL",
    "cached_get",
    "prefetch",
    "ChatHistoryLoader",
    "HistoryPager",
    "AuthFailureInterceptor",
    "UnauthorizedGuard",
    "SocketManager",
]
