from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from ...config import Settings
from ...errors import InvalidPayload
from ...infrastructure.conversation_store import ConversationStore
from ...security.identity import IdentityExchangeClient, IdentityResolver
from ...security.session import STATE_COOKIE, SessionManager
from ..deps import (
    get_conversation_store,
    get_identity_client,
    get_identity_resolver,
    get_session_manager,
    get_settings,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login")
def login(
    settings: Settings = Depends(get_settings),
    identity: IdentityExchangeClient = Depends(get_identity_client),
) -> RedirectResponse:
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(identity.authorize_url(state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.app_url.startswith("https://"),
    )
    return response


@router.get("/login/callback")
def login_callback(
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    settings: Settings = Depends(get_settings),
    identity: IdentityExchangeClient = Depends(get_identity_client),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    session: SessionManager = Depends(get_session_manager),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> RedirectResponse:
    expected = request.cookies.get(STATE_COOKIE) or ""
    if not state or not expected or not secrets.compare_digest(state, expected):
        raise InvalidPayload("OAuth state mismatch")
    if not code:
        raise InvalidPayload("Missing authorization code")

    token = identity.exchange_code(code)
    user = resolver.resolve(token)
    if conversations.ensure_profile(user.id, user.name):
        logger.info("New user signed up id=%s", user.id)

    # The session cookie is issued only once the login fully succeeded.
    response = RedirectResponse(f"{settings.app_url}/chat", status_code=302)
    session.set(response, token)
    logger.info("User id=%s logged in", user.id)
    return response


@router.get("/logout")
def logout(
    settings: Settings = Depends(get_settings),
    session: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    # Only the cookies go away; the provider token itself stays valid.
    response = RedirectResponse(settings.app_url, status_code=302)
    session.clear(response)
    return response
