"""Adapter do backend REST (envelope, endpoints e normalização)."""

from medconnect_client.adapters.backend.endpoints import BackendApi, history_path
from medconnect_client.adapters.backend.envelope import ApiEnvelope, parse_envelope, unwrap
from medconnect_client.adapters.backend.normalizer import (
    format_ai_response,
    normalize_ai_record,
    normalize_chat_message,
    normalize_history_payload,
    normalize_user_session,
)

__all__ = [
    "BackendApi",
    "history_path",
    "ApiEnvelope",
    "parse_envelope",
    "unwrap",
    "format_ai_response",
    "normalize_ai_record",
    "normalize_chat_message",
    "normalize_history_payload",
    "normalize_user_session",
]
