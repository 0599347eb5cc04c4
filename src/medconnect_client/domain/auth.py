"""Modelo de sessão e máquina de estados de autenticação.

- Estados: UNAUTHENTICATED, AUTHENTICATING, AUTHENTICATED, SESSION_EXPIRED
- SESSION_EXPIRED é transitório (sempre termina em UNAUTHENTICATED)
- Tabela de transições explícita; validação pura, sem side effects
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Papéis fechados de usuário."""

    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class UserSession(BaseModel):
    """Identidade autenticada persistível.

    Contém apenas campos de perfil; nenhum token é aceito ou serializado.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    name: str
    email: str
    profile_picture: str | None = Field(default=None, alias="profilePicture")
    role: Role

    def to_persisted(self) -> dict[str, Any]:
        """Representação durável (chaves no formato do backend)."""
        return self.model_dump(mode="json", by_alias=True)


class AuthStatus(StrEnum):
    """Estados do Auth Store."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATING = "AUTHENTICATING"
    AUTHENTICATED = "AUTHENTICATED"
    SESSION_EXPIRED = "SESSION_EXPIRED"


class AuthEvent(StrEnum):
    """Eventos que disparam transições no Auth Store."""

    SESSION_RESTORED = "SESSION_RESTORED"
    """Sessão reidratada do armazenamento durável."""

    LOGIN_STARTED = "LOGIN_STARTED"
    LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"
    LOGIN_FAILED = "LOGIN_FAILED"

    USER_SET = "USER_SET"
    """Atualização explícita de perfil."""

    LOGOUT = "LOGOUT"

    SESSION_EXPIRED = "SESSION_EXPIRED"
    """401 observado nesta aba."""

    CLEANUP_DONE = "CLEANUP_DONE"

    REMOTE_LOGOUT = "REMOTE_LOGOUT"
    """Logout propagado por outra aba."""


# Tabela de transições: (current_state, event) → next_state
TRANSITIONS: dict[tuple[AuthStatus, AuthEvent], AuthStatus] = {
    # === UNAUTHENTICATED → ... ===
    (AuthStatus.UNAUTHENTICATED, AuthEvent.SESSION_RESTORED): AuthStatus.AUTHENTICATED,
    (AuthStatus.UNAUTHENTICATED, AuthEvent.LOGIN_STARTED): AuthStatus.AUTHENTICATING,
    (AuthStatus.UNAUTHENTICATED, AuthEvent.USER_SET): AuthStatus.AUTHENTICATED,
    # === AUTHENTICATING → ... ===
    (AuthStatus.AUTHENTICATING, AuthEvent.LOGIN_SUCCEEDED): AuthStatus.AUTHENTICATED,
    (AuthStatus.AUTHENTICATING, AuthEvent.LOGIN_FAILED): AuthStatus.UNAUTHENTICATED,
    (AuthStatus.AUTHENTICATING, AuthEvent.REMOTE_LOGOUT): AuthStatus.UNAUTHENTICATED,
    (AuthStatus.AUTHENTICATING, AuthEvent.LOGOUT): AuthStatus.UNAUTHENTICATED,
    # === AUTHENTICATED → ... ===
    (AuthStatus.AUTHENTICATED, AuthEvent.LOGIN_STARTED): AuthStatus.AUTHENTICATING,
    (AuthStatus.AUTHENTICATED, AuthEvent.USER_SET): AuthStatus.AUTHENTICATED,
    (AuthStatus.AUTHENTICATED, AuthEvent.LOGOUT): AuthStatus.UNAUTHENTICATED,
    (AuthStatus.AUTHENTICATED, AuthEvent.SESSION_EXPIRED): AuthStatus.SESSION_EXPIRED,
    (AuthStatus.AUTHENTICATED, AuthEvent.REMOTE_LOGOUT): AuthStatus.UNAUTHENTICATED,
    # === SESSION_EXPIRED (transitório) ===
    (AuthStatus.SESSION_EXPIRED, AuthEvent.CLEANUP_DONE): AuthStatus.UNAUTHENTICATED,
}


def validate_transition(
    current_state: AuthStatus, event: AuthEvent
) -> tuple[bool, AuthStatus | None, str]:
    """Valida se uma transição é permitida.

    Retorna:
    - (True, next_state, ""): transição válida
    - (False, None, motivo): transição inválida

    Nunca lança exceção; apenas valida.
    """
    next_state = TRANSITIONS.get((current_state, event))
    if next_state is None:
        return False, None, f"No transition from {current_state} on event {event}"
    return True, next_state, ""
