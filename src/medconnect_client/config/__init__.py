"""Configurações centralizadas do medconnect_client.

Uso típico:
    from medconnect_client.config import get_settings
"""

from medconnect_client.config.settings import (
    AUTH_STORAGE_KEY,
    DEFAULT_API_BASE_URL,
    DEFAULT_LOGIN_PATH,
    LOGOUT_SIGNAL_KEY,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "AUTH_STORAGE_KEY",
    "LOGOUT_SIGNAL_KEY",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_LOGIN_PATH",
]
