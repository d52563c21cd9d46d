from __future__ import annotations

"""Dependency providers for the route handlers.

External clients are built lazily on first use and kept on ``app.state`` so
one instance serves every request. Tests swap them through
``app.dependency_overrides``.
"""

import threading
from typing import Any, Callable

from fastapi import Depends, Request

from ..config import Settings
from ..errors import LoginRequired
from ..infrastructure.conversation_store import ConversationStore
from ..infrastructure.store_client import StoreClient, build_store_client
from ..security.gate import evaluate
from ..security.identity import GitHubIdentityClient, IdentityExchangeClient, IdentityResolver
from ..security.session import SessionManager
from ..services.completion import CompletionClient, CompletionOrchestrator, build_completion_client


# Sync dependencies run on the threadpool, so first use can race.
_CLIENT_LOCK = threading.Lock()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _cached(request: Request, name: str, factory: Callable[[Settings], Any]) -> Any:
    state = request.app.state
    value = getattr(state, name, None)
    if value is not None:
        return value
    with _CLIENT_LOCK:
        value = getattr(state, name, None)
        if value is None:
            value = factory(state.settings)
            setattr(state, name, value)
    return value


def get_store(request: Request) -> StoreClient:
    return _cached(request, "store_client", build_store_client)


def get_identity_client(request: Request) -> IdentityExchangeClient:
    return _cached(request, "identity_client", GitHubIdentityClient)


def get_completion_client(request: Request) -> CompletionClient:
    return _cached(request, "completion_client", build_completion_client)


def get_session_manager(request: Request, settings: Settings = Depends(get_settings)) -> SessionManager:
    return SessionManager(request, settings)


def require_session(session: SessionManager = Depends(get_session_manager)) -> str:
    """Gate for read-style routes; a missing session redirects to login."""
    result = evaluate(session)
    if not result.authenticated:
        raise LoginRequired(result.reason or "no session token")
    return result.token  # type: ignore[return-value]


def get_identity_resolver(client: IdentityExchangeClient = Depends(get_identity_client)) -> IdentityResolver:
    return IdentityResolver(client)


def get_conversation_store(client: StoreClient = Depends(get_store)) -> ConversationStore:
    return ConversationStore(client)


def get_completion_orchestrator(
    client: CompletionClient = Depends(get_completion_client),
) -> CompletionOrchestrator:
    return CompletionOrchestrator(client)
