from __future__ import annotations

"""Cookie-bound session token.

The opaque provider token is encrypted with AES-256-GCM and carried as the
``sid`` claim of an HS256 JWT in the session cookie, so the cookie is both
tamper-evident and unreadable without ``ASKGATE_SESSION_SECRET``. No ``exp``
claim is written; a token stays usable as long as the browser keeps the
cookie.
"""

from datetime import datetime, timezone
from typing import Optional

import base64
import logging
import os

import jwt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from fastapi import Request, Response

from ..config import Settings
from ..domain.models import Session


logger = logging.getLogger(__name__)

SESSION_COOKIE = "my-session-login-cookie"
STATE_COOKIE = "oauth2-redirect-state"
_ALGORITHM = "HS256"
_NONCE_SIZE = 12
_KEY_INFO = b"askgate-session-cookie"


def derive_cookie_key(secret: str) -> bytes:
    """Derive the 256-bit AES key used for the session claim."""
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_KEY_INFO)
    return hkdf.derive(secret.encode("utf-8"))


def seal_token(key: bytes, token: str) -> str:
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, token.encode("utf-8"), _KEY_INFO)
    return base64.urlsafe_b64encode(nonce + ct).decode("ascii")


def open_token(key: bytes, sealed: str) -> str:
    """Decrypt a value from :func:`seal_token`.

    Raises ``InvalidTag`` for a wrong key or tampered data and ``ValueError``
    for anything that is not a sealed value at all.
    """
    raw = base64.urlsafe_b64decode(sealed.encode("ascii"))
    if len(raw) <= _NONCE_SIZE:
        raise ValueError("sealed value too short")
    return AESGCM(key).decrypt(raw[:_NONCE_SIZE], raw[_NONCE_SIZE:], _KEY_INFO).decode("utf-8")


class SessionManager:
    def __init__(self, request: Request, settings: Settings) -> None:
        self._request = request
        self._secret = settings.session_secret
        self._key = derive_cookie_key(settings.session_secret)
        self._secure = settings.app_url.startswith("https://")

    def get(self) -> Optional[str]:
        raw = self._request.cookies.get(SESSION_COOKIE)
        if not raw:
            return None
        try:
            data = jwt.decode(raw, self._secret, algorithms=[_ALGORITHM])
        except jwt.InvalidTokenError:
            logger.debug("Ignoring unreadable session cookie")
            return None
        sealed = data.get("sid")
        if not isinstance(sealed, str) or not sealed:
            return None
        try:
            token = open_token(self._key, sealed)
        except (InvalidTag, ValueError):
            logger.debug("Ignoring session cookie with undecryptable token")
            return None
        return token or None

    def set(self, response: Response, token: str) -> None:
        session = Session(token=token)
        payload = {
            "sid": seal_token(self._key, session.token),
            "iat": int(datetime.now(timezone.utc).timestamp()),
        }
        value = jwt.encode(payload, self._secret, algorithm=_ALGORITHM)
        response.set_cookie(
            SESSION_COOKIE,
            value,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self._secure,
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(STATE_COOKIE, path="/")
        response.delete_cookie(SESSION_COOKIE, path="/")
