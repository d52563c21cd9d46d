from __future__ import annotations

"""Process configuration.

Built once at startup from the environment (``.env`` is loaded by the API
entry point) and handed to the components that need it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import os


def _get_env(name: str, default: Optional[str] = None) -> str:
    val = os.getenv(name, default)
    if val is None:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return val


def _optional_float(name: str) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid number in environment variable {name}: {raw!r}")


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: Optional[str] = None
    github_client_id: str = ""
    github_client_secret: str = ""
    github_redirect_uri: str = "http://localhost:3000/login/callback"
    session_secret: str = "dev-session-secret-change-me"
    app_url: str = "http://localhost:5173"
    login_path: str = "/login"
    cors_origins: List[str] = field(default_factory=list)
    store_impl: str = "memory"
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "askgate"
    upstream_timeout: Optional[float] = None

    @staticmethod
    def from_env() -> "Settings":
        app_url = os.getenv("ASKGATE_APP_URL", "http://localhost:5173").rstrip("/")
        origins_raw = os.getenv("ASKGATE_CORS_ORIGINS", "")
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()] or [app_url]
        return Settings(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            github_client_id=os.getenv("GITHUB_CLIENT_ID", ""),
            github_client_secret=os.getenv("GITHUB_CLIENT_SECRET", ""),
            github_redirect_uri=os.getenv("GITHUB_REDIRECT_URI", "http://localhost:3000/login/callback"),
            session_secret=_get_env("ASKGATE_SESSION_SECRET", "dev-session-secret-change-me"),
            app_url=app_url,
            login_path=os.getenv("ASKGATE_LOGIN_PATH", "/login"),
            cors_origins=origins,
            store_impl=os.getenv("ASKGATE_STORE_IMPL", "memory").lower(),
            mongo_url=os.getenv("MONGO_URL", "mongodb://localhost:27017"),
            mongo_db=os.getenv("MONGO_DB", "askgate"),
            upstream_timeout=_optional_float("ASKGATE_UPSTREAM_TIMEOUT"),
        )

    def require_openai_key(self) -> str:
        if not self.openai_api_key:
            raise RuntimeError("Missing required environment variable: OPENAI_API_KEY")
        return self.openai_api_key
