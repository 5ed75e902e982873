"""Reads a repository's ``.env.example`` and proposes values for a test run."""

import logging
import re

from pydantic import BaseModel, ConfigDict, Field

from gitlit.clients.errors import GitHubError
from gitlit.clients.github import GitHubClient

logger = logging.getLogger(__name__)

ENV_TEMPLATE = ".env.example"

_ASSIGNMENT = re.compile(r"^([A-Z_][A-Z0-9_]*)\s*=\s*(.*)$")
_INLINE_COMMENT = re.compile(r"#\s*(.+)$")


class EnvVar(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    default_value: str = Field(default="", alias="defaultValue")
    description: str | None = None


def parse_env_file(content: str) -> list[EnvVar]:
    """One EnvVar per ``KEY=VALUE`` line; comments and blanks are skipped."""
    lines = content.split("\n")
    env_vars = []
    for index, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _ASSIGNMENT.match(stripped)
        if not match:
            continue
        name = match.group(1)
        value = match.group(2).split(" #", 1)[0].strip()
        env_vars.append(EnvVar(
            name=name,
            default_value=default_value(name, value),
            description=_comment_for(lines, index),
        ))
    return env_vars


def default_value(name: str, original: str) -> str:
    """Test-safe value for a variable, guessed from its name."""
    if "DATABASE_URL" in name or "DB_URL" in name:
        return "postgresql://localhost:5432/testdb"
    if "MONGO" in name:
        return "mongodb://localhost:27017/test"
    if "API_KEY" in name or "SECRET" in name:
        return f"mock_{name.lower()}_for_testing"
    if "URL" in name or "ENDPOINT" in name:
        return original or "http://localhost:3000"
    if "PORT" in name:
        return "3000"
    if "JWT" in name or "TOKEN" in name:
        return "test-secret-key-change-in-production"
    if "GITHUB" in name or "GOOGLE" in name or "AUTH" in name:
        return original or "test-client-id"
    return original


def _comment_for(lines: list[str], index: int) -> str | None:
    if index > 0:
        previous = lines[index - 1].strip()
        if previous.startswith("#"):
            return previous[1:].strip()
    match = _INLINE_COMMENT.search(lines[index])
    return match.group(1).strip() if match else None


def render_env_file(env_vars: list[EnvVar]) -> str:
    return "\n".join(f"{v.name}={v.default_value}" for v in env_vars)


def fetch_env_template(github: GitHubClient, ref: str | None = None) -> list[EnvVar]:
    """Variables from the repository's template; empty when it has none."""
    try:
        content = github.get_file_text(ENV_TEMPLATE, ref=ref)
    except GitHubError as e:
        if e.status_code == 404:
            logger.info("No %s in %s/%s", ENV_TEMPLATE, github.owner, github.repo)
            return []
        raise
    return parse_env_file(content)
