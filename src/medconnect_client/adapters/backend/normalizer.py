"""Fronteira de normalização de formatos externos.

Uma função por formato externo; nenhuma variante de nome de campo do
backend (snake_case, camelCase, objetos aninhados) passa desta camada.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from medconnect_client.domain.auth import UserSession
from medconnect_client.domain.chat import AiChatRecord, ChatHistoryPage, ChatMessage

# Campos que jamais entram no estado retido do cliente
TOKEN_FIELDS = frozenset(
    {"token", "accessToken", "access_token", "refreshToken", "refresh_token", "authToken"}
)


def _first(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return None


def _nested(raw: Mapping[str, Any], parent: str, child: str) -> Any:
    value = raw.get(parent)
    if isinstance(value, Mapping):
        return value.get(child)
    return None


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def normalize_chat_message(raw: Mapping[str, Any]) -> ChatMessage:
    """Mapeia um payload de mensagem (histórico ou socket) para ChatMessage.

    Raises:
        ValueError: se o payload não identificar o remetente
    """
    if not isinstance(raw, Mapping):
        raise ValueError("chat message payload must be an object")

    sender_id = _first(raw, "senderId", "sender_id", "userId", "user_id") or _nested(
        raw, "sender", "id"
    )
    if sender_id is None:
        raise ValueError("chat message without sender")

    room = raw.get("room")
    room_id = _first(raw, "roomId", "room_id") or (
        room.get("id") if isinstance(room, Mapping) else room
    )
    username = (
        _first(raw, "username", "userName", "senderName", "sender_name")
        or _nested(raw, "sender", "name")
        or ""
    )

    return ChatMessage(
        room_id=_as_str(room_id),
        sender_id=str(sender_id),
        receiver_id=_as_str(_first(raw, "receiverId", "receiver_id")),
        username=str(username),
        text=str(_first(raw, "text", "message", "content") or ""),
        time=_as_str(_first(raw, "time", "createdAt", "created_at", "timestamp")),
        message_type=_as_str(_first(raw, "messageType", "message_type", "type")),
        image_url=_as_str(_first(raw, "imageUrl", "image_url", "image")),
    )


def _to_int(value: Any, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def normalize_history_payload(data: Any, page: int, limit: int) -> ChatHistoryPage:
    """Normaliza `{messages, page, limit, total}` ou uma lista simples."""
    if isinstance(data, list):
        raw_messages: list[Any] = data
        body: Mapping[str, Any] = {}
    elif isinstance(data, Mapping):
        body = data
        raw_messages = list(data.get("messages") or [])
    else:
        raw_messages, body = [], {}

    messages = [normalize_chat_message(m) for m in raw_messages]
    total = body.get("total")
    total_known = total is not None

    return ChatHistoryPage(
        messages=messages,
        page=_to_int(body.get("page"), page),
        limit=_to_int(body.get("limit"), limit),
        total=_to_int(total, 0) if total_known else (page - 1) * limit + len(messages),
        total_known=total_known,
    )


def normalize_user_session(data: Mapping[str, Any]) -> UserSession:
    """Extrai apenas campos de identidade da resposta de login/perfil."""
    if isinstance(data.get("user"), Mapping):
        data = data["user"]
    identity = {k: v for k, v in data.items() if k not in TOKEN_FIELDS}
    return UserSession.model_validate(
        {
            "id": _as_str(identity.get("id")),
            "name": identity.get("name") or "",
            "email": identity.get("email") or "",
            "profilePicture": _first(identity, "profilePicture", "profile_picture"),
            "role": identity.get("role"),
        }
    )


def normalize_ai_record(raw: Mapping[str, Any]) -> AiChatRecord:
    """Unifica `probable_causes` / `probableCauses` e demais campos."""
    causes = _first(raw, "probable_causes", "probableCauses") or []
    return AiChatRecord(
        id=_as_str(raw.get("id")),
        user_message=_as_str(_first(raw, "userMessage", "user_message", "symptoms")),
        probable_causes=[str(c) for c in causes],
        severity=_as_str(raw.get("severity")),
        recommendation=str(raw.get("recommendation") or ""),
        disclaimer=str(raw.get("disclaimer") or ""),
        created_at=_as_str(_first(raw, "createdAt", "created_at")),
    )


def format_ai_response(record: AiChatRecord) -> str:
    """Texto em markdown exibido como resposta do assistente."""
    causes = "\n".join(f"• {cause}" for cause in record.probable_causes)
    return (
        f"**Probable Causes:**\n{causes}\n\n"
        f"**Recommendation:**\n{record.recommendation}\n\n"
        f"**Disclaimer:**\n{record.disclaimer}"
    )
