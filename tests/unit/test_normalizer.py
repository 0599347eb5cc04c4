"""Testes da fronteira de normalização de payloads externos."""

from __future__ import annotations

import pytest

from medconnect_client.adapters.backend.normalizer import (
    TOKEN_FIELDS,
    format_ai_response,
    normalize_ai_record,
    normalize_chat_message,
    normalize_history_payload,
    normalize_user_session,
)
from medconnect_client.domain.auth import Role


class TestNormalizeChatMessage:
    def test_camel_case_payload(self) -> None:
        msg = normalize_chat_message(
            {
                "roomId": "r1",
                "senderId": "u1",
                "receiverId": "u2",
                "username": "Ana",
                "text": "oi",
                "createdAt": "2024-01-01T00:00:00Z",
                "imageUrl": "http://img",
            }
        )
        assert msg.room_id == "r1"
        assert msg.sender_id == "u1"
        assert msg.receiver_id == "u2"
        assert msg.time == "2024-01-01T00:00:00Z"
        assert msg.image_url == "http://img"

    def test_snake_case_and_nested_sender(self) -> None:
        msg = normalize_chat_message(
            {
                "room_id": 7,
                "sender": {"id": 3, "name": "Dr. Bia"},
                "message": "hello",
                "message_type": "text",
            }
        )
        assert msg.room_id == "7"
        assert msg.sender_id == "3"
        assert msg.username == "Dr. Bia"
        assert msg.text == "hello"
        assert msg.message_type == "text"

    def test_missing_sender_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_chat_message({"text": "orphan"})

    def test_non_mapping_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_chat_message("just text")  # type: ignore[arg-type]


class TestNormalizeHistoryPayload:
    def test_object_payload_with_total(self) -> None:
        page = normalize_history_payload(
            {
                "messages": [{"senderId": "u1", "text": "a"}],
                "page": 2,
                "limit": 50,
                "total": 120,
            },
            page=2,
            limit=50,
        )
        assert page.total == 120
        assert page.total_known is True
        assert page.has_more is True

    def test_bare_list_payload(self) -> None:
        page = normalize_history_payload(
            [{"senderId": "u1"}, {"senderId": "u2"}], page=3, limit=2
        )
        assert page.total_known is False
        assert page.total == 6
        assert page.has_more is True

    def test_short_bare_list_means_no_more(self) -> None:
        page = normalize_history_payload([{"senderId": "u1"}], page=1, limit=50)
        assert page.has_more is False

    def test_none_payload_is_empty(self) -> None:
        page = normalize_history_payload(None, page=1, limit=50)
        assert page.messages == []
        assert page.has_more is False


class TestNormalizeUserSession:
    def test_drops_token_fields(self) -> None:
        user = normalize_user_session(
            {
                "id": 10,
                "name": "Ana",
                "email": "ana@example.com",
                "profilePicture": "p.png",
                "role": "PATIENT",
                "token": "secret",
                "refreshToken": "secret2",
            }
        )
        persisted = user.to_persisted()
        assert user.id == "10"
        assert user.role is Role.PATIENT
        assert not TOKEN_FIELDS & persisted.keys()
        assert "secret" not in str(persisted)

    def test_nested_user(self) -> None:
        user = normalize_user_session(
            {"user": {"id": "d1", "name": "Bia", "email": "b@x.com", "role": "DOCTOR"}}
        )
        assert user.role is Role.DOCTOR
        assert user.profile_picture is None

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_user_session({"id": "1", "name": "x", "email": "x@x", "role": "ROOT"})


class TestAiRecords:
    @pytest.mark.parametrize("field", ["probable_causes", "probableCauses"])
    def test_both_cause_spellings(self, field: str) -> None:
        record = normalize_ai_record(
            {"id": 1, field: ["Flu", "Cold"], "recommendation": "Rest", "disclaimer": "Not advice"}
        )
        assert record.probable_causes == ["Flu", "Cold"]

    def test_format_ai_response(self) -> None:
        record = normalize_ai_record(
            {"probable_causes": ["Flu"], "recommendation": "Rest", "disclaimer": "Not advice"}
        )
        text = format_ai_response(record)
        assert text.startswith("**Probable Causes:**\n• Flu")
        assert "**Recommendation:**\nRest" in text
        assert text.endswith("**Disclaimer:**\nNot advice")
