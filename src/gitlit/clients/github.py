"""Read-only GitHub REST client.

Only the handful of calls GitLit needs: repository metadata, directory
listings and trees, file bodies, languages, and pull requests with their
comments.
"""

import base64
import binascii
import logging
from concurrent.futures import ThreadPoolExecutor

import requests
from pydantic import BaseModel, ConfigDict, Field

from gitlit.clients.errors import GitHubError

logger = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"
USER_AGENT = "GitLit"


class ContentEntry(BaseModel):
    """One entry of a ``/contents`` directory listing."""

    model_config = ConfigDict(extra="ignore")

    name: str
    path: str = ""
    type: str = "file"  # file / dir / symlink / submodule
    size: int | None = None
    sha: str | None = None


class FileContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    path: str = ""
    encoding: str | None = None
    content: str | None = None

    def text(self) -> str:
        if not self.content:
            return ""
        if self.encoding not in (None, "base64"):
            return self.content
        return base64.b64decode(self.content).decode("utf-8", errors="replace")


class RepoMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    full_name: str = ""
    html_url: str | None = None
    description: str | None = None
    private: bool | None = None
    visibility: str | None = None
    language: str | None = None
    topics: list[str] = Field(default_factory=list)
    archived: bool | None = None
    disabled: bool | None = None
    default_branch: str | None = None
    stargazers_count: int | None = None
    forks_count: int | None = None
    open_issues_count: int | None = None
    updated_at: str | None = None

    def listing(self) -> dict:
        """Camel-cased summary used by the repository list."""
        return {
            "name": self.name,
            "fullName": self.full_name,
            "description": self.description,
            "private": self.private,
            "url": self.html_url,
            "language": self.language,
            "stars": self.stargazers_count,
            "forks": self.forks_count,
            "issues": self.open_issues_count,
            "updatedAt": self.updated_at,
        }


class TreeEntry(BaseModel):
    """One blob or tree of a recursive ``git/trees`` listing."""

    model_config = ConfigDict(extra="ignore")

    path: str
    type: str = "blob"
    size: int | None = None
    sha: str | None = None

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class PullRequest(BaseModel):
    """A pull request plus the comments GitLit attaches to it."""

    model_config = ConfigDict(extra="allow")

    number: int
    title: str = ""
    state: str = ""
    html_url: str | None = None
    comments: list[dict] = Field(default_factory=list)
    review_comments: list[dict] = Field(default_factory=list, alias="reviewComments")
    total_comments: int = Field(default=0, alias="totalComments")


class GitHubClient:
    """GitHub REST API v3 client bound to one token and, usually, one repository."""

    def __init__(
        self,
        token: str,
        owner: str | None = None,
        repo: str | None = None,
        timeout: float = 15.0,
        session: requests.Session | None = None,
        api_root: str = API_ROOT,
    ):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self.api_root = api_root.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        })

    def for_repo(self, owner: str, repo: str) -> "GitHubClient":
        """Return a client for another repository sharing this session."""
        return GitHubClient(
            token=self.token,
            owner=owner,
            repo=repo,
            timeout=self.timeout,
            session=self.session,
            api_root=self.api_root,
        )

    # -- transport ------------------------------------------------------------

    def _get(self, path: str, params: dict | None = None):
        url = f"{self.api_root}{path}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise GitHubError(502, f"GitHub request failed: {path}", str(e)) from e

        if not resp.ok:
            raise GitHubError(resp.status_code, f"GitHub API error for {path}", resp.text[:500])
        return resp.json()

    def _repo_path(self, suffix: str = "") -> str:
        if not self.owner or not self.repo:
            raise ValueError("GitHubClient has no repository; use for_repo(owner, repo)")
        return f"/repos/{self.owner}/{self.repo}{suffix}"

    # -- repository -----------------------------------------------------------

    def get_repo(self) -> RepoMeta:
        return RepoMeta(**self._get(self._repo_path()))

    def list_repos(self, per_page: int = 100, sort: str = "updated") -> list[RepoMeta]:
        """Repositories of the authenticated user."""
        data = self._get("/user/repos", params={"per_page": per_page, "sort": sort})
        return [RepoMeta(**r) for r in data]

    def list_contents(self, path: str = "", ref: str | None = None) -> list[ContentEntry]:
        """List a directory. A file path yields a single-entry list."""
        suffix = f"/contents/{path}" if path else "/contents"
        data = self._get(self._repo_path(suffix), params={"ref": ref} if ref else None)
        if isinstance(data, dict):
            data = [data]
        return [ContentEntry(**entry) for entry in data]

    def get_file(self, path: str, ref: str | None = None) -> FileContent:
        data = self._get(self._repo_path(f"/contents/{path}"), params={"ref": ref} if ref else None)
        if isinstance(data, list):
            raise GitHubError(400, f"{path} is a directory, not a file")
        return FileContent(**data)

    def get_file_text(self, path: str, ref: str | None = None) -> str:
        file = self.get_file(path, ref=ref)
        try:
            return file.text()
        except binascii.Error as e:
            raise GitHubError(502, f"Could not decode {path}", str(e)) from e

    def list_languages(self) -> dict[str, int]:
        """Bytes of code per language."""
        return self._get(self._repo_path("/languages"))

    def get_tree(self, ref: str | None = None) -> list[TreeEntry]:
        """Every entry of the repository tree at ``ref`` (default HEAD)."""
        data = self._get(self._repo_path(f"/git/trees/{ref or 'HEAD'}"), params={"recursive": 1})
        if data.get("truncated"):
            logger.warning("Tree of %s/%s is truncated", self.owner, self.repo)
        return [TreeEntry(**entry) for entry in data.get("tree", [])]

    # -- pull requests --------------------------------------------------------

    def list_pulls(self, state: str = "all", per_page: int = 30) -> list[dict]:
        return self._get(
            self._repo_path("/pulls"),
            params={"state": state, "per_page": per_page, "sort": "updated", "direction": "desc"},
        )

    def list_pull_comments(self, number: int) -> list[dict]:
        return self._get(self._repo_path(f"/issues/{number}/comments"))

    def list_review_comments(self, number: int) -> list[dict]:
        return self._get(self._repo_path(f"/pulls/{number}/comments"))

    def list_pulls_with_comments(
        self, state: str = "all", per_page: int = 30, max_workers: int = 8
    ) -> list[PullRequest]:
        """Pull requests with issue and review comments fetched concurrently.

        A failed comment fetch leaves that list empty for that pull only.
        """
        pulls = self.list_pulls(state=state, per_page=per_page)
        if not pulls:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self._attach_comments, pulls))

    def _attach_comments(self, pull: dict) -> PullRequest:
        number = pull["number"]
        comments = self._comments_or_empty(self.list_pull_comments, number)
        review_comments = self._comments_or_empty(self.list_review_comments, number)
        return PullRequest(
            **{k: v for k, v in pull.items() if k not in ("comments", "review_comments")},
            comments=comments,
            reviewComments=review_comments,
            totalComments=len(comments) + len(review_comments),
        )

    def _comments_or_empty(self, fetch, number: int) -> list[dict]:
        try:
            return fetch(number)
        except GitHubError as e:
            logger.warning("Could not fetch comments for PR #%s: %s", number, e)
            return []
