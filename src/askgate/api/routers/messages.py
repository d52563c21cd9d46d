from __future__ import annotations

from dataclasses import dataclass
from typing import List
import json

from fastapi import APIRouter, Depends, Request

from ...domain.models import DeleteAck, Message
from ...errors import InvalidPayload
from ...infrastructure.conversation_store import ConversationStore
from ...security.gate import session_token_or_fail
from ...security.identity import IdentityResolver
from ...security.session import SessionManager
from ...services.completion import CompletionOrchestrator
from ..deps import (
    get_completion_orchestrator,
    get_conversation_store,
    get_identity_resolver,
    get_session_manager,
    require_session,
)

router = APIRouter(prefix="/messages", tags=["messages"])


@dataclass
class RawBody:
    content_type: str
    data: bytes


async def read_raw_body(request: Request) -> RawBody:
    return RawBody(content_type=request.headers.get("content-type", ""), data=await request.body())


def parse_question(raw: RawBody) -> str:
    """Accept a text/plain body, a JSON string, or ``{"question": "..."}``."""
    try:
        text = raw.data.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidPayload("Question must be UTF-8 text")
    if "json" in raw.content_type.lower():
        try:
            parsed = json.loads(text)
        except ValueError:
            raise InvalidPayload("Malformed JSON body")
        if isinstance(parsed, dict):
            parsed = parsed.get("question")
        if not isinstance(parsed, str):
            raise InvalidPayload("Question must be a string")
        text = parsed
    if not text.strip():
        raise InvalidPayload("Question must not be empty")
    return text


@router.get("", response_model=List[Message])
def list_messages(
    token: str = Depends(require_session),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> List[Message]:
    user = resolver.resolve(token)
    return conversations.list(user.id)


@router.post("", response_model=Message)
def create_message(
    raw: RawBody = Depends(read_raw_body),
    session: SessionManager = Depends(get_session_manager),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    completion: CompletionOrchestrator = Depends(get_completion_orchestrator),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> Message:
    token = session_token_or_fail(session)
    question = parse_question(raw)
    user = resolver.resolve(token)
    answer = completion.complete(question)
    # No rollback if sending the response fails after this write.
    return conversations.create(user.id, question, answer)


@router.delete("/{message_id}", response_model=DeleteAck)
def delete_message(
    message_id: str,
    session: SessionManager = Depends(get_session_manager),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> DeleteAck:
    token = session_token_or_fail(session)
    user = resolver.resolve(token)
    conversations.delete(user.id, message_id)
    return DeleteAck(deleted=message_id)
