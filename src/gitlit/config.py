"""Runtime settings, read once from the environment and passed around explicitly."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

from gitlit.clients.errors import ConfigError

DEFAULT_BASE_URL = "http://localhost:3001"


class Settings(BaseModel):
    """API keys and tunables for one process."""

    github_token: str | None = None
    anthropic_api_key: str | None = None
    coderabbit_api_key: str | None = None
    llm_model: str | None = None
    test_base_url: str = DEFAULT_BASE_URL
    github_timeout: float = 15.0
    llm_timeout: float = 20.0

    @classmethod
    def from_env(cls, env_files: tuple[str, ...] = (".env.local", ".env")) -> "Settings":
        """Load dotenv files (earlier files win) and build settings from os.environ."""
        for path in env_files:
            load_dotenv(path, override=False)

        env = os.environ
        return cls(
            github_token=env.get("GITHUB_TOKEN") or None,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or env.get("CLAUDE_API_KEY") or None,
            coderabbit_api_key=env.get("CODERABBIT_API_KEY") or None,
            llm_model=env.get("GITLIT_LLM_MODEL") or None,
            test_base_url=env.get("GITLIT_BASE_URL", DEFAULT_BASE_URL),
            github_timeout=float(env.get("GITLIT_GITHUB_TIMEOUT", 15.0)),
            llm_timeout=float(env.get("GITLIT_LLM_TIMEOUT", 20.0)),
        )

    def require(self, name: str) -> str:
        """Return a setting that must be present, e.g. ``require("anthropic_api_key")``."""
        value = getattr(self, name)
        if not value:
            raise ConfigError(f"{name} is not configured")
        return value
