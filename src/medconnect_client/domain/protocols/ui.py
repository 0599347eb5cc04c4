"""Portas para a camada de UI (notificações e navegação)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Notificações visíveis ao usuário (toast)."""

    @abstractmethod
    def error(self, message: str) -> None: ...

    @abstractmethod
    def info(self, message: str) -> None: ...


class Navigator(ABC):
    """Navegação global (equivalente a window.location)."""

    @abstractmethod
    def navigate(self, path: str) -> None: ...
