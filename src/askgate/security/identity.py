from __future__ import annotations

"""Identity provider access.

``GitHubIdentityClient`` speaks to GitHub's OAuth and REST endpoints;
``IdentityResolver`` turns a session token into an ``Identity`` with one
provider round trip per call. Nothing is cached.
"""

from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlencode

import logging
import requests
from pydantic import ValidationError

from ..config import Settings
from ..domain.models import Identity
from ..errors import UpstreamIdentityError


logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"


class IdentityExchangeClient(Protocol):
    def authorize_url(self, state: str) -> str: ...

    def exchange_code(self, code: str) -> str: ...

    def fetch_user(self, token: str) -> Dict[str, Any]: ...


class GitHubIdentityClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self._client_id = settings.github_client_id
        self._client_secret = settings.github_client_secret
        self._redirect_uri = settings.github_redirect_uri
        self._timeout = settings.upstream_timeout
        self._session = session or requests.Session()

    def authorize_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "scope": "read:user",
                "state": state,
            }
        )
        return f"{GITHUB_AUTHORIZE_URL}?{query}"

    def exchange_code(self, code: str) -> str:
        try:
            resp = self._session.post(
                GITHUB_TOKEN_URL,
                headers={"Accept": "application/json"},
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "code": code,
                    "redirect_uri": self._redirect_uri,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise UpstreamIdentityError("Authorization code exchange failed") from exc
        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            # GitHub reports bad codes as 200 with an "error" field
            error = data.get("error") if isinstance(data, dict) else None
            raise UpstreamIdentityError(f"No access token in exchange response (error={error})")
        return token

    def fetch_user(self, token: str) -> Dict[str, Any]:
        try:
            resp = self._session.get(
                GITHUB_USER_URL,
                headers={
                    "Accept": "application/vnd.github+json",
                    "Authorization": f"Bearer {token}",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise UpstreamIdentityError("Identity provider request failed") from exc
        if not isinstance(data, dict):
            raise UpstreamIdentityError("Identity provider returned a non-object body")
        return data


class IdentityResolver:
    def __init__(self, client: IdentityExchangeClient) -> None:
        self._client = client

    def resolve(self, token: str) -> Identity:
        data = self._client.fetch_user(token)
        name = data.get("name") or data.get("login")
        uid = data.get("id")
        # bool is an int subclass; reject it along with numeric strings
        if isinstance(uid, bool) or not isinstance(uid, int):
            raise UpstreamIdentityError(f"Identity provider returned invalid id: {uid!r}")
        try:
            return Identity(id=uid, name=name)
        except ValidationError as exc:
            raise UpstreamIdentityError("Identity provider response missing name") from exc
