from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol
import logging

from ..config import Settings
from ..errors import UpstreamCompletionError

# Optional import: langchain-openai
try:
    from langchain_openai import ChatOpenAI  # type: ignore
except Exception:  # pragma: no cover - optional import
    ChatOpenAI = None  # type: ignore


logger = logging.getLogger(__name__)
LOG = logging.getLogger("askgate.llm")


class CompletionClient(Protocol):
    def invoke(self, messages: List[Dict[str, str]]) -> Any: ...


def build_completion_client(settings: Settings) -> CompletionClient:
    if not ChatOpenAI:
        raise RuntimeError("LLM client not available")
    api_key = settings.require_openai_key()
    logger.info(
        "Using completion provider model=%s base_url=%s",
        settings.openai_model,
        settings.openai_base_url or "default",
    )
    # max_retries=0: one upstream request per question
    return ChatOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        max_retries=0,
    )


def _extract_answer(response: Any) -> Optional[str]:
    if response is None:
        return None
    if isinstance(response, str):
        return response
    if isinstance(response, dict):
        choices = response.get("choices") or []
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            return None
        return message.get("content")
    content = getattr(response, "content", None)
    if isinstance(content, list):
        # content blocks; keep the text parts
        parts = [c.get("text", "") if isinstance(c, dict) else str(c) for c in content]
        return "".join(parts)
    return content


class CompletionOrchestrator:
    """Single-turn question answering.

    Each call sends only the current question; earlier exchanges of the same
    user are never included.
    """

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    @staticmethod
    def build_messages(question: str) -> List[Dict[str, str]]:
        return [{"role": "user", "content": question}]

    def complete(self, question: str) -> str:
        messages = self.build_messages(question)
        LOG.debug("completion_request", extra={"chars": len(question)})
        try:
            response = self._client.invoke(messages)
        except Exception as exc:
            LOG.warning("completion_failed", extra={"err": str(exc)})
            raise UpstreamCompletionError("Completion service call failed") from exc
        answer = _extract_answer(response)
        if not isinstance(answer, str) or not answer.strip():
            raise UpstreamCompletionError("Completion service returned no answer")
        return answer
