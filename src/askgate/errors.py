from __future__ import annotations

"""Error kinds raised across the request pipeline."""


class GatewayError(Exception):
    """Base class for errors raised by askgate components."""


class AuthMissing(GatewayError):
    """No session token was readable for a request that needs one."""


class LoginRequired(GatewayError):
    """Raised by the auth gate; converted into a redirect to the login surface."""

    def __init__(self, reason: str = "no session") -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidPayload(GatewayError):
    """Client supplied a request value with the wrong shape."""


class UpstreamIdentityError(GatewayError):
    """Identity provider unreachable, failing, or answering garbage."""


class UpstreamCompletionError(GatewayError):
    """Completion service failed or returned no usable answer."""


class StorageError(GatewayError):
    """Document store transport or serialization failure."""
