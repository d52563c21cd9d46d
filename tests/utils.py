from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi.testclient import TestClient

from askgate.errors import StorageError, UpstreamIdentityError
from askgate.infrastructure.store_client import InMemoryStoreClient
from askgate.security.session import STATE_COOKIE


class FakeIdentityClient:
    """Stands in for GitHub: codes map to tokens, tokens map to user bodies."""

    def __init__(self) -> None:
        self.codes: Dict[str, str] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.fetch_calls: List[str] = []
        self.exchange_calls: List[str] = []

    def add_user(self, code: str, token: str, uid: int, name: str) -> None:
        self.codes[code] = token
        self.users[token] = {"id": uid, "name": name, "login": name.lower()}

    def authorize_url(self, state: str) -> str:
        return f"https://github.example/authorize?state={state}"

    def exchange_code(self, code: str) -> str:
        self.exchange_calls.append(code)
        token = self.codes.get(code)
        if token is None:
            raise UpstreamIdentityError("bad code")
        return token

    def fetch_user(self, token: str) -> Dict[str, Any]:
        self.fetch_calls.append(token)
        user = self.users.get(token)
        if user is None:
            raise UpstreamIdentityError("401 from provider")
        return dict(user)


class FakeCompletionClient:
    def __init__(self, answer: Any = "4", error: Optional[Exception] = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: List[List[Dict[str, str]]] = []

    def invoke(self, messages: List[Dict[str, str]]) -> Any:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.answer


class CountingStore(InMemoryStoreClient):
    """In-memory store that records every operation."""

    def __init__(self) -> None:
        super().__init__()
        self.ops: List[tuple] = []
        self.fail = False

    def _record(self, op: str, path: str) -> None:
        if self.fail:
            raise StorageError(f"{op} {path} failed")
        self.ops.append((op, path))

    def get(self, path):
        self._record("get", path)
        return super().get(path)

    def set(self, path, data):
        self._record("set", path)
        return super().set(path, data)

    def add(self, collection_path, data):
        self._record("add", collection_path)
        return super().add(collection_path, data)

    def list(self, collection_path):
        self._record("list", collection_path)
        return super().list(collection_path)

    def delete(self, path):
        self._record("delete", path)
        return super().delete(path)

    def writes(self, op: str) -> List[str]:
        return [path for kind, path in self.ops if kind == op]


def login(client: TestClient, code: str, state: str = "state-123"):
    """Run the OAuth callback as the browser would after GitHub redirects back."""
    client.cookies.set(STATE_COOKIE, state)
    res = client.get("/login/callback", params={"code": code, "state": state})
    assert res.status_code == 302, res.text
    return res
