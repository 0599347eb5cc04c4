"""Testes da tabela de transições e do modelo de sessão."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from medconnect_client.domain.auth import (
    TRANSITIONS,
    AuthEvent,
    AuthStatus,
    Role,
    UserSession,
    validate_transition,
)
from medconnect_client.domain.chat import ChatSurface, ConversationRef, DmMessageData


class TestTransitions:
    def test_login_happy_path(self) -> None:
        ok, state, _ = validate_transition(AuthStatus.UNAUTHENTICATED, AuthEvent.LOGIN_STARTED)
        assert ok and state == AuthStatus.AUTHENTICATING
        ok, state, _ = validate_transition(AuthStatus.AUTHENTICATING, AuthEvent.LOGIN_SUCCEEDED)
        assert ok and state == AuthStatus.AUTHENTICATED

    def test_session_expired_is_transient(self) -> None:
        ok, state, _ = validate_transition(AuthStatus.AUTHENTICATED, AuthEvent.SESSION_EXPIRED)
        assert state == AuthStatus.SESSION_EXPIRED
        outgoing = [event for (src, event) in TRANSITIONS if src == AuthStatus.SESSION_EXPIRED]
        assert outgoing == [AuthEvent.CLEANUP_DONE]

    def test_invalid_transition_never_raises(self) -> None:
        ok, state, reason = validate_transition(AuthStatus.UNAUTHENTICATED, AuthEvent.LOGOUT)
        assert ok is False
        assert state is None
        assert "No transition" in reason

    def test_every_target_is_a_known_state(self) -> None:
        assert set(TRANSITIONS.values()) <= set(AuthStatus)


class TestUserSession:
    def test_persisted_shape(self) -> None:
        user = UserSession(id="u1", name="A", email="a@x.com", role=Role.PATIENT)
        assert user.to_persisted() == {
            "id": "u1",
            "name": "A",
            "email": "a@x.com",
            "profilePicture": None,
            "role": "PATIENT",
        }

    def test_extra_fields_ignored(self) -> None:
        user = UserSession.model_validate(
            {"id": "u1", "name": "A", "email": "a@x.com", "role": "ADMIN", "token": "t"}
        )
        assert "token" not in user.to_persisted()

    def test_role_is_closed(self) -> None:
        with pytest.raises(ValidationError):
            UserSession(id="u1", name="A", email="a@x.com", role="NURSE")


class TestConversationRef:
    def test_pagination_flags(self) -> None:
        assert ConversationRef(kind=ChatSurface.ROOM, identifier="r", page=1, total=120).has_more
        assert not ConversationRef(
            kind=ChatSurface.ROOM, identifier="r", page=3, total=120
        ).has_more

    def test_unknown_total_has_more(self) -> None:
        ref = ConversationRef(kind=ChatSurface.CITY, identifier="Recife")
        assert ref.has_more is True
        assert ref.next_page == 1

    @pytest.mark.parametrize("field", [{"limit": 0}, {"page": -1}])
    def test_rejects_invalid_cursor(self, field: dict[str, int]) -> None:
        with pytest.raises(ValidationError):
            ConversationRef(kind=ChatSurface.DIRECT, identifier="u", **field)


class TestOutboundPayloads:
    def test_dm_wire_format(self) -> None:
        payload = DmMessageData(
            room_id="r1", sender_id="u1", receiver_id="u2", username="Ana", text="oi"
        ).to_wire()
        assert payload == {
            "roomId": "r1",
            "senderId": "u1",
            "receiverId": "u2",
            "username": "Ana",
            "text": "oi",
        }
