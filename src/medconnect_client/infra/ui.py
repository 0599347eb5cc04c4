"""Implementações padrão das portas de UI (log + registro em memória)."""

from __future__ import annotations

import logging

from medconnect_client.domain.protocols.ui import Navigator, Notifier
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class LoggingNotifier(Notifier):
    """Registra notificações no log e mantém histórico para inspeção."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def error(self, message: str) -> None:
        self.messages.append(("error", message))
        logger.warning("User notification", extra={"level_hint": "error", "notice": message})

    def info(self, message: str) -> None:
        self.messages.append(("info", message))
        logger.info("User notification", extra={"level_hint": "info", "notice": message})


class InMemoryNavigator(Navigator):
    """Guarda o caminho corrente e o histórico de navegação."""

    def __init__(self, initial_path: str = "/") -> None:
        self.current_path = initial_path
        self.history: list[str] = []

    def navigate(self, path: str) -> None:
        self.history.append(path)
        self.current_path = path
        logger.info("Navigation", extra={"path": path})
