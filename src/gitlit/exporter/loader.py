"""Loads endpoint lists for the CLI.

Accepts the JSON written by ``gitlit discover`` (a bare list or an object
with an ``endpoints`` key, in JSON or YAML) and Postman v2.1 collections.
"""

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from gitlit.discovery.base import HTTP_METHODS, EndpointRecord


class EndpointFileError(ValueError):
    """An input file that is not an endpoint list or a Postman collection."""


def detect_format(file_path: Path) -> str:
    """Return 'postman' or 'endpoints'."""
    data = _load(file_path)
    if isinstance(data, dict):
        info = data.get("info", {})
        if isinstance(info, dict) and ("_postman_id" in info or "schema" in info) and "item" in data:
            return "postman"
    return "endpoints"


def load_endpoints(file_path: Path, fmt: str = "auto") -> list[EndpointRecord]:
    """Read records from ``file_path``; raises ``EndpointFileError`` on bad input."""
    try:
        if fmt == "auto":
            fmt = detect_format(file_path)
        data = _load(file_path)
        if fmt == "postman":
            return parse_postman(data)
        return parse_endpoint_list(data)
    except EndpointFileError as e:
        raise EndpointFileError(f"{file_path}: {e}") from e
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise EndpointFileError(f"{file_path}: not JSON or YAML ({e})") from e
    except ValidationError as e:
        raise EndpointFileError(f"{file_path}: invalid endpoint ({e.error_count()} errors)\n{e}") from e
    except (AttributeError, KeyError, TypeError) as e:
        raise EndpointFileError(f"{file_path}: unexpected structure ({e!r})") from e


def parse_endpoint_list(data) -> list[EndpointRecord]:
    if isinstance(data, dict):
        data = data.get("endpoints", [])
    if data is None:
        return []
    if not isinstance(data, list):
        raise EndpointFileError(f"expected a list of endpoints, got {type(data).__name__}")
    return [EndpointRecord.model_validate(item) for item in data]


def parse_postman(collection: dict) -> list[EndpointRecord]:
    """Flatten a Postman v2.1 collection (folders included) into records."""
    endpoints: list[EndpointRecord] = []
    _parse_items(collection.get("item", []), endpoints)
    return endpoints


def _parse_items(items: list[dict], endpoints: list[EndpointRecord]) -> None:
    for item in items:
        if "item" in item:
            _parse_items(item["item"], endpoints)
        elif "request" in item and _method(item) in HTTP_METHODS:
            endpoints.append(_parse_request(item))


def _method(item: dict) -> str:
    return str(item["request"].get("method", "GET")).upper()


def _parse_request(item: dict) -> EndpointRecord:
    req = item["request"]
    url = req.get("url", {})
    if isinstance(url, str):
        path = _path_from_raw(url)
        query = []
    else:
        path = "/" + "/".join(url.get("path", []))
        query = [q["key"] for q in url.get("query", []) if "key" in q]

    body = ["body"] if req.get("body") else []
    return EndpointRecord(
        method=_method(item),
        path=path,
        file=item.get("name", ""),
        parameters={"query": query, "body": body, "headers": []},
    )


def _path_from_raw(raw: str) -> str:
    # "http://host:3001/users?x=1" and "{{baseUrl}}/users" both give "/users"
    raw = raw.split("?", 1)[0]
    if "://" in raw:
        raw = raw.split("://", 1)[1]
    return "/" + raw.split("/", 1)[1] if "/" in raw else "/"


def _load(file_path: Path):
    text = file_path.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return yaml.safe_load(text)
