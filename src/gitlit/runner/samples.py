"""Canned request and response payloads chosen from path keywords."""

MOCK_ERRORS = {
    400: "Bad Request",
    401: "Unauthorized",
    404: "Not Found",
    500: "Internal Server Error",
}


def sample_body(path: str) -> dict:
    """Request body to send to a POST/PUT/PATCH endpoint."""
    p = path.lower()
    if "user" in p:
        return {"name": "Test User", "email": "test@example.com"}
    if "post" in p:
        return {
            "title": "Test Post",
            "content": "This is test content",
            "author": "Test Author",
            "category": "tech",
        }
    if "auth" in p or "login" in p:
        return {"email": "test@example.com", "password": "password123"}
    return {"data": "test"}


def is_health_path(path: str) -> bool:
    p = path.lower()
    return "health" in p or "ping" in p


def mock_status_code(method: str, path: str) -> int:
    """Status a well-behaved server would answer a successful call with."""
    if is_health_path(path):
        return 200
    if method == "POST":
        return 201
    if method == "DELETE":
        return 204
    return 200


def mock_response_body(method: str, path: str):
    """Response body for a successful mocked call."""
    p = path.lower()
    if is_health_path(p):
        return {"status": "ok", "message": "Service is healthy"}
    if method == "DELETE":
        return None
    listing = method == "GET" and _is_collection(p)
    if "user" in p:
        return list(USERS) if listing else {**USERS[0], **_written(method, p)}
    if "post" in p:
        return list(POSTS) if listing else {**POSTS[0], **_written(method, p)}
    return {"message": f"{method} {path} succeeded"}


USERS = (
    {"id": 1, "name": "Ada Lovelace", "email": "ada@example.com"},
    {"id": 2, "name": "Alan Turing", "email": "alan@example.com"},
)

POSTS = (
    {"id": 1, "title": "Hello World", "content": "First post", "author": "Ada Lovelace", "category": "tech"},
    {"id": 2, "title": "Second Post", "content": "More content", "author": "Alan Turing", "category": "news"},
)


def _is_collection(path: str) -> bool:
    # /users lists, /users/:id reads one
    last = path.rstrip("/").rsplit("/", 1)[-1]
    return not last.startswith(":")


def _written(method: str, path: str) -> dict:
    # echo the sample body back for writes, as most REST servers do
    return sample_body(path) if method in ("POST", "PUT", "PATCH") else {}
