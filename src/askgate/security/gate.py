from __future__ import annotations

"""Auth gate for read-style routes.

The gate only checks that a session token is present. Identity resolution is
left to the handler. A rejection becomes ``LoginRequired`` in
``api.deps.require_session``, which the app turns into a redirect to the login
surface before the handler body runs.

Mutating routes deliberately skip the gate and check the session inline,
raising ``AuthMissing`` (an unhandled 500) instead of redirecting.
"""

from dataclasses import dataclass
from typing import Optional

from ..errors import AuthMissing
from .session import SessionManager


@dataclass(frozen=True)
class AuthResult:
    authenticated: bool
    token: Optional[str] = None
    reason: Optional[str] = None

    @staticmethod
    def accept(token: str) -> "AuthResult":
        return AuthResult(authenticated=True, token=token)

    @staticmethod
    def reject(reason: str) -> "AuthResult":
        return AuthResult(authenticated=False, reason=reason)


def evaluate(session: SessionManager) -> AuthResult:
    token = session.get()
    if not token:
        return AuthResult.reject("no session token")
    return AuthResult.accept(token)


def session_token_or_fail(session: SessionManager) -> str:
    """Inline check used inside mutating handlers."""
    token = session.get()
    if not token:
        raise AuthMissing("Session token missing")
    return token
