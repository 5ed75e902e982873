"""Walks a GitHub repository and scans candidate route files."""

import logging

from gitlit.clients.errors import GitHubError
from gitlit.clients.github import ContentEntry, GitHubClient

from .base import EndpointRecord
from .scanner import dedupe_endpoints, is_route_file, parse_endpoints

logger = logging.getLogger(__name__)


def discover_endpoints(
    client: GitHubClient,
    ref: str | None = None,
    dedupe: bool = False,
) -> list[EndpointRecord]:
    """Find every route declared in the client's repository.

    Sub-directories and files that cannot be fetched are skipped. Failing to
    list the root raises ``GitHubError``.
    """
    root = client.list_contents("", ref=ref)
    endpoints: list[EndpointRecord] = []
    _search(client, root, endpoints, ref=ref)
    logger.info("Discovered %d endpoints in %s/%s", len(endpoints), client.owner, client.repo)
    return dedupe_endpoints(endpoints) if dedupe else endpoints


def _search(
    client: GitHubClient,
    entries: list[ContentEntry],
    endpoints: list[EndpointRecord],
    ref: str | None,
    path: str = "",
) -> None:
    for entry in entries:
        entry_path = f"{path}/{entry.name}" if path else entry.name

        if entry.type == "dir":
            try:
                children = client.list_contents(entry_path, ref=ref)
            except GitHubError as e:
                logger.warning("Skipping directory %s: %s", entry_path, e)
                continue
            _search(client, children, endpoints, ref=ref, path=entry_path)

        elif entry.type == "file" and is_route_file(entry.name):
            try:
                content = client.get_file_text(entry_path, ref=ref)
            except GitHubError as e:
                logger.warning("Skipping file %s: %s", entry_path, e)
                continue
            found = parse_endpoints(content, entry_path)
            if found:
                logger.debug("%s: %d endpoints", entry_path, len(found))
            endpoints.extend(found)
