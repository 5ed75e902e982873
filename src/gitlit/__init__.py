"""GitLit: discover, exercise and export the HTTP endpoints of a GitHub repository."""

__version__ = "0.1.0"
