"""Regex route scanner.

Finds route declarations in source text for a few common web frameworks.
It is a heuristic: it matches text, not syntax, so commented-out routes are
found and routes built from variables are not.
"""

import re

from .base import EndpointParameters, EndpointRecord

ROUTE_FILE_PATTERNS = [
    re.compile(r"route\.(ts|tsx|js|jsx)$"),
    re.compile(r"routes\.(ts|tsx|js|jsx)$"),
    re.compile(r"index\.(ts|tsx|js|jsx)$"),
    re.compile(r".*\.routes?\.(ts|tsx|js|jsx)$"),
    re.compile(r"\.py$"),
    re.compile(r"\.js$"),
]

# Next.js App Router: export async function GET(request) { ... }
NEXT_APP_HANDLER = re.compile(r"(?:export\s+)?(?:async\s+)?function\s+(GET|POST|PUT|DELETE|PATCH)\s*\(")
NEXT_API_ROOT = re.compile(r"^app/api")

# Express: app.get('/x', ...) / router.post("/y", ...)
EXPRESS_ROUTES = [
    re.compile(r"app\.(get|post|put|delete|patch)\s*\(\s*['\"`]([^'\"`]+)['\"`]"),
    re.compile(r"router\.(get|post|put|delete|patch)\s*\(\s*['\"`]([^'\"`]+)['\"`]"),
]

# Flask: @app.route('/x') is a GET
FLASK_ROUTE = re.compile(r"@app\.(get|post|put|delete|patch|route)\s*\(\s*['\"`]([^'\"`]+)['\"`]")

# FastAPI: @app.get('/x')
FASTAPI_ROUTE = re.compile(r"@app\.(get|post|put|delete|patch)\s*\(\s*['\"`]([^'\"`]+)['\"`]")

QUERY_PARAM = re.compile(r"searchParams\.get\(['\"`]([^'\"`]+)['\"`]")
JSON_BODY = re.compile(r"await\s+request\.json\(\)")


def is_route_file(filename: str) -> bool:
    """Whether a file name looks like it may declare routes."""
    return any(p.search(filename) for p in ROUTE_FILE_PATTERNS)


def extract_parameters(content: str) -> EndpointParameters:
    """Inputs read anywhere in the file; not tied to a single handler."""
    query = QUERY_PARAM.findall(content)
    body = ["body"] if JSON_BODY.search(content) else []
    return EndpointParameters(query=query, body=body, headers=[])


def next_app_path(file_path: str) -> str:
    """Route path for an App Router handler: its directory minus ``app/api``."""
    directory = "/".join(file_path.split("/")[:-1])
    return NEXT_API_ROOT.sub("", directory) or "/"


def parse_endpoints(content: str, file_path: str) -> list[EndpointRecord]:
    """Run every framework pass over ``content``.

    Passes are independent and may report the same route more than once;
    ``@app.get`` decorators in particular match both the Flask and the
    FastAPI pass.
    """
    endpoints: list[EndpointRecord] = []
    params = extract_parameters(content)

    def add(method: str, path: str) -> None:
        endpoints.append(EndpointRecord(
            method=method, path=path, file=file_path, parameters=params.model_copy(deep=True),
        ))

    for match in NEXT_APP_HANDLER.finditer(content):
        add(match.group(1), next_app_path(file_path))

    for pattern in EXPRESS_ROUTES:
        for match in pattern.finditer(content):
            add(match.group(1).upper(), match.group(2))

    for match in FLASK_ROUTE.finditer(content):
        verb = match.group(1).upper()
        add("GET" if verb == "ROUTE" else verb, match.group(2))

    for match in FASTAPI_ROUTE.finditer(content):
        add(match.group(1).upper(), match.group(2))

    return endpoints


def dedupe_endpoints(endpoints: list[EndpointRecord]) -> list[EndpointRecord]:
    """Drop repeats of the same (method, path, file), keeping the first."""
    seen: set[tuple[str, str, str]] = set()
    unique = []
    for ep in endpoints:
        key = (ep.method, ep.path, ep.file)
        if key in seen:
            continue
        seen.add(key)
        unique.append(ep)
    return unique
