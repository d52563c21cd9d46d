from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List
import logging

from ..domain.models import Message, Profile
from ..errors import StorageError
from .store_client import StoreClient


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def to_timestamp(value: Any) -> datetime:
    """Convert a store-native timestamp into an aware UTC datetime."""
    if hasattr(value, "to_datetime"):
        value = value.to_datetime()
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise StorageError(f"Unparseable createDate: {value!r}") from exc
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    raise StorageError(f"Unsupported createDate type: {type(value).__name__}")


def profile_path(uid: int) -> str:
    return f"users/{uid}"


def messages_path(uid: int) -> str:
    return f"users/{uid}/messages"


class ConversationStore:
    """Identity-scoped access to profile and message documents.

    Every path is derived from the resolved identity id, so a caller can only
    ever reach its own collection.
    """

    def __init__(self, client: StoreClient) -> None:
        self._client = client

    def list(self, uid: int) -> List[Message]:
        rows = self._client.list(messages_path(uid))
        return [self._to_message(doc_id, data) for doc_id, data in rows]

    def create(self, uid: int, question: str, answer: str) -> Message:
        message = Message(question=question, answer=answer, createDate=_utc_now())
        message.id = self._client.add(messages_path(uid), message.to_document())
        logger.info("Stored message id=%s for user id=%s", message.id, uid)
        return message

    def delete(self, uid: int, message_id: str) -> None:
        if not message_id or "/" in message_id:
            raise StorageError(f"Invalid message id: {message_id!r}")
        self._client.delete(f"{messages_path(uid)}/{message_id}")
        logger.info("Deleted message id=%s for user id=%s", message_id, uid)

    def ensure_profile(self, uid: int, name: str) -> bool:
        path = profile_path(uid)
        if self._client.get(path) is not None:
            return False
        self._client.set(path, Profile(name=name).model_dump())
        logger.info("Created profile for new user id=%s", uid)
        return True

    def _to_message(self, doc_id: str, data: Dict[str, Any]) -> Message:
        try:
            return Message(
                id=doc_id,
                question=str(data.get("question", "")),
                answer=data.get("answer"),
                createDate=to_timestamp(data.get("createDate")),
            )
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Malformed message document {doc_id}") from exc
