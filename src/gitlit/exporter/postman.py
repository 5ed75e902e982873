"""Postman Collection v2.1 exporter.

Groups endpoints into one folder per first path segment and adds a sample
JSON body to every request that carries one.
"""

import json
from typing import Iterable
from urllib.parse import urlsplit

from gitlit.discovery.base import BODY_METHODS, EndpointRecord
from gitlit.runner.samples import sample_body

SCHEMA_URL = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
DEFAULT_BASE_URL = "http://localhost:3001"
MISC_GROUP = "Misc"


def build_collection(
    endpoints: Iterable[EndpointRecord],
    owner: str = "Example",
    repo: str = "repo",
    base_url: str = DEFAULT_BASE_URL,
) -> dict:
    """Build a Postman v2.1 collection dict for ``owner/repo``."""
    groups = group_by_prefix(endpoints)
    return {
        "info": {
            "name": f"{owner}/{repo} - API Collection",
            "description": f"Auto-generated Postman collection for {owner}/{repo}",
            "schema": SCHEMA_URL,
        },
        "item": [
            {"name": name, "item": [_request_item(ep, base_url) for ep in members]}
            for name, members in groups.items()
        ],
    }


def group_by_prefix(endpoints: Iterable[EndpointRecord]) -> dict[str, list[EndpointRecord]]:
    """Folder name -> endpoints, folders in order of first appearance."""
    groups: dict[str, list[EndpointRecord]] = {}
    for ep in endpoints:
        segments = _segments(ep.path or "/")
        name = _capitalize(segments[0]) if segments else MISC_GROUP
        groups.setdefault(name, []).append(ep)
    return groups


def _request_item(ep: EndpointRecord, base_url: str) -> dict:
    base = urlsplit(base_url.rstrip("/"))
    path = ep.path if ep.path.startswith("/") else f"/{ep.path}"
    item = {
        "name": f"{ep.method} {ep.path}",
        "request": {
            "method": ep.method,
            "header": [{"key": "Content-Type", "value": "application/json"}],
            "url": {
                "raw": f"{base.geturl()}{path}",
                "protocol": base.scheme,
                "host": (base.hostname or "localhost").split("."),
                "port": str(base.port) if base.port else "",
                "path": _segments(ep.path),
            },
        },
    }
    if ep.method in BODY_METHODS:
        item["request"]["body"] = {
            "mode": "raw",
            "raw": json.dumps(sample_body(ep.path), indent=2),
        }
    return item


def _segments(path: str) -> list[str]:
    return [p for p in path.split("/") if p]


def _capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]
