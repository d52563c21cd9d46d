import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
src_str = str(ROOT / "src")
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from fastapi.testclient import TestClient  # noqa: E402

from askgate.api import deps  # noqa: E402
from askgate.api.main import create_app  # noqa: E402
from askgate.config import Settings  # noqa: E402

from .utils import CountingStore, FakeCompletionClient, FakeIdentityClient  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="sk-test",
        session_secret="test-secret",
        app_url="http://localhost:5173",
        cors_origins=["http://localhost:5173"],
    )


@pytest.fixture
def identity() -> FakeIdentityClient:
    fake = FakeIdentityClient()
    fake.add_user("code-alice", "tok-alice", 101, "Alice")
    fake.add_user("code-bob", "tok-bob", 202, "Bob")
    return fake


@pytest.fixture
def completion() -> FakeCompletionClient:
    return FakeCompletionClient(answer="4")


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def app(settings, identity, completion, store):
    application = create_app(settings)
    application.dependency_overrides[deps.get_identity_client] = lambda: identity
    application.dependency_overrides[deps.get_completion_client] = lambda: completion
    application.dependency_overrides[deps.get_store] = lambda: store
    return application


@pytest.fixture
def client(app) -> TestClient:
    # Unhandled errors must come back as 500 responses, and redirects are asserted, not followed.
    return TestClient(app, raise_server_exceptions=False, follow_redirects=False)
