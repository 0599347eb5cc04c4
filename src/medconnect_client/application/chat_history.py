"""Carregamento paginado de histórico de chat (direct, city, room)."""

from __future__ import annotations

import logging

from medconnect_client.adapters.backend.endpoints import ChatApi
from medconnect_client.adapters.backend.normalizer import normalize_history_payload
from medconnect_client.domain.chat import (
    ChatHistoryPage,
    ChatMessage,
    ChatSurface,
    ConversationRef,
)
from medconnect_client.domain.errors import BackendError, ChatHistoryError, HttpError
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to load chat history"


class ChatHistoryLoader:
    """Busca uma página por chamada; sem retry (política do chamador)."""

    def __init__(self, chat_api: ChatApi, default_limit: int = 50) -> None:
        self._api = chat_api
        self._default_limit = default_limit

    async def load_history(
        self,
        surface: ChatSurface,
        identifier: str,
        page: int = 1,
        limit: int | None = None,
    ) -> ChatHistoryPage:
        """Carrega a página `page` (1-indexada).

        Raises:
            ValueError: page/limit não positivos ou identificador vazio
            ChatHistoryError: falha reportada pelo backend ou payload inválido
        """
        limit = self._default_limit if limit is None else limit
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive integers")
        if not identifier:
            raise ValueError("identifier is required")

        surface = ChatSurface(surface)
        try:
            data = await self._api.get_history(surface, identifier, page, limit)
        except BackendError as e:
            raise ChatHistoryError(str(e) or DEFAULT_ERROR_MESSAGE) from e
        except HttpError as e:
            raise ChatHistoryError(
                e.server_message or DEFAULT_ERROR_MESSAGE, status_code=e.status_code
            ) from e

        try:
            result = normalize_history_payload(data, page, limit)
        except ValueError as e:
            raise ChatHistoryError("Malformed chat history payload") from e

        logger.debug(
            "Chat history loaded",
            extra={
                "surface": str(surface),
                "page": result.page,
                "count": len(result.messages),
                "total": result.total,
            },
        )
        return result


class HistoryPager:
    """Cursor sobre uma conversa; acumula mensagens na ordem de carregamento."""

    def __init__(self, loader: ChatHistoryLoader, ref: ConversationRef) -> None:
        self._loader = loader
        self._ref = ref
        self.messages: list[ChatMessage] = []

    @property
    def ref(self) -> ConversationRef:
        return self._ref

    @property
    def has_more(self) -> bool:
        return self._ref.has_more

    async def load_next(self) -> ChatHistoryPage | None:
        """Próxima página, ou None quando o total conhecido já foi atingido."""
        if not self.has_more:
            return None
        result = await self._loader.load_history(
            self._ref.kind, self._ref.identifier, self._ref.next_page, self._ref.limit
        )
        if result.total_known:
            total = result.total
        elif len(result.messages) < result.limit:
            # Página incompleta: fim alcançado
            total = result.total
        else:
            total = None
        self._ref = self._ref.model_copy(update={"page": result.page, "total": total})
        self.messages.extend(result.messages)
        return result

    def reset(self) -> None:
        self._ref = self._ref.model_copy(update={"page": 0, "total": None})
        self.messages.clear()
