"""Error types shared by the collaborator clients."""


class UpstreamError(Exception):
    """A collaborator API answered with a non-2xx status (or not at all).

    ``status_code`` is what gets surfaced to callers of the HTTP app, so a
    transport failure with no response uses 502.
    """

    def __init__(self, status_code: int, message: str, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class GitHubError(UpstreamError):
    """GitHub REST API failure."""


class CodeRabbitError(UpstreamError):
    """CodeRabbit report API failure."""


class ConfigError(Exception):
    """A required setting (API key, token) is missing."""
