"""Maps discovered paths onto the routes a running server answers.

File-derived paths (``app/api/users/[id]/route.ts``) become router paths
(``/api/users/:id``). Literal paths from Express/Flask/FastAPI code pass
through almost unchanged.
"""

import re
from typing import Iterable

from .base import EndpointRecord

_API_DIR = re.compile(r"^app/api")
_APP_DIR = re.compile(r"^/app(?=/|$)")
_ROUTE_FILE = re.compile(r"route\.(ts|js)$")
_TRAILING_SLASH = re.compile(r"/$")
_BRACKET_PARAM = re.compile(r"\[(\w+)\]")
_ROUTE_SEGMENT = re.compile(r"/route$")


def normalize_path(path: str, root_prefix: str | None = None) -> str:
    """Map one path, repeating until it stops changing.

    Repeating makes the mapping idempotent even for odd inputs such as
    ``x/route.ts/`` where one step uncovers work for an earlier one.
    """
    current = _normalize_once(path, root_prefix)
    while True:
        again = _normalize_once(current, root_prefix)
        if again == current:
            return current
        current = again


def _normalize_once(path: str, root_prefix: str | None) -> str:
    # The steps depend on each other; keep their order.
    p = path or ""

    if root_prefix:
        prefix = root_prefix.strip("/") + "/"
        if p.startswith(prefix):
            p = p[len(prefix):]

    p = _API_DIR.sub("/api", p)
    p = _APP_DIR.sub("", p)
    p = _ROUTE_FILE.sub("", p)

    if not p.startswith("/"):
        p = "/" + p

    p = _TRAILING_SLASH.sub("", p)
    p = _BRACKET_PARAM.sub(r":\1", p)
    p = _ROUTE_SEGMENT.sub("", p)

    return p or "/"


def normalize_endpoints(
    endpoints: Iterable[EndpointRecord], root_prefix: str | None = None
) -> list[EndpointRecord]:
    """Return new records with mapped paths; ``file`` and the rest stay as found."""
    return [
        ep.model_copy(update={"path": normalize_path(ep.path, root_prefix)})
        for ep in endpoints
    ]
