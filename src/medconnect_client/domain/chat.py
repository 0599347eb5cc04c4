"""Modelos canônicos de chat (histórico, tempo real e paginação)."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatSurface(StrEnum):
    """Tipo de superfície de conversa."""

    DIRECT = "direct"
    """Conversa 1:1, identificada pelo id do outro usuário."""

    CITY = "city"
    """Sala da cidade, identificada pelo nome da cidade."""

    ROOM = "room"
    """Sala de comunidade, identificada pelo id da sala."""


class ChatMessage(BaseModel):
    """Registro canônico de mensagem (único formato após normalização)."""

    model_config = ConfigDict(frozen=True)

    room_id: str | None = None
    sender_id: str
    receiver_id: str | None = None
    username: str = ""
    text: str = ""
    time: str | None = None
    message_type: str | None = None
    image_url: str | None = None


class ChatHistoryPage(BaseModel):
    """Uma página de histórico.

    `total` é autoritativo quando `total_known` é True; caso contrário é
    apenas o limite inferior observado.
    """

    messages: list[ChatMessage] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    total_known: bool = True

    @property
    def has_more(self) -> bool:
        """True se existem páginas além desta."""
        if self.total_known:
            return self.page * self.limit < self.total
        return len(self.messages) >= self.limit


class DmMessageData(BaseModel):
    """Payload de saída de mensagem direta."""

    room_id: str = Field(serialization_alias="roomId")
    sender_id: str = Field(serialization_alias="senderId")
    receiver_id: str = Field(serialization_alias="receiverId")
    username: str
    text: str
    image: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RoomMessageData(BaseModel):
    """Payload de saída para sala de cidade/comunidade."""

    room_id: str = Field(serialization_alias="roomId")
    sender_id: str = Field(serialization_alias="senderId")
    username: str
    text: str
    image: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ConversationRef(BaseModel):
    """Referência a uma sala de conversa e seu cursor de paginação."""

    kind: ChatSurface
    identifier: str
    page: int = 0
    """Última página carregada (0 = nenhuma)."""

    limit: int = 50
    total: int | None = None
    """Total informado pelo servidor; None até a primeira resposta."""

    @field_validator("limit")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("limit must be a positive integer")
        return value

    @field_validator("page")
    @classmethod
    def _non_negative_page(cls, value: int) -> int:
        if value < 0:
            raise ValueError("page must not be negative")
        return value

    @property
    def has_more(self) -> bool:
        """True enquanto o total conhecido indicar mais páginas."""
        if self.total is None:
            return True
        return self.page * self.limit < self.total

    @property
    def next_page(self) -> int:
        return self.page + 1


class AiChatRecord(BaseModel):
    """Registro canônico do chat de triagem por IA."""

    id: str | None = None
    user_message: str | None = None
    probable_causes: list[str] = Field(default_factory=list)
    severity: str | None = None
    recommendation: str = ""
    disclaimer: str = ""
    created_at: str | None = None
