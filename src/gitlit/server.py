"""JSON HTTP app exposing the pipeline and the review calls.

The caller's GitHub token arrives as ``Authorization: Bearer <token>``.
Errors are returned as ``{"error": ..., "details": ...}``.
"""

import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from gitlit.analysis.collector import analyze_repository
from gitlit.clients.coderabbit import CodeRabbitClient
from gitlit.clients.errors import ConfigError, UpstreamError
from gitlit.clients.github import GitHubClient
from gitlit.config import Settings
from gitlit.discovery.base import EndpointRecord
from gitlit.discovery.normalize import normalize_endpoints
from gitlit.discovery.walker import discover_endpoints
from gitlit.envfile import EnvVar, fetch_env_template, render_env_file
from gitlit.exporter.postman import build_collection
from gitlit.llm import LlmClient
from gitlit.review.reviewer import RepoReviewer, ReviewParseError
from gitlit.runner.executor import EndpointExecutor

logger = logging.getLogger(__name__)


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RepoRequest(_Body):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    branch: str | None = None


class DiscoverRequest(RepoRequest):
    dedupe: bool = False


class MapRequest(_Body):
    endpoints: list[EndpointRecord]
    root_prefix: str | None = Field(default=None, alias="rootPrefix")


class ExecuteRequest(_Body):
    endpoints: list[EndpointRecord] = Field(min_length=1)
    base_url: str | None = Field(default=None, alias="baseUrl")
    mode: str = Field(default="auto", pattern="^(auto|real|mock)$")


class CollectionRequest(_Body):
    endpoints: list[EndpointRecord]
    owner: str | None = None
    repo: str | None = None


class ReviewRequest(_Body):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    custom_prompt: str | None = Field(default=None, alias="customPrompt")
    group_by: str | None = Field(default=None, alias="groupBy")


class FeedbackRequest(RepoRequest):
    language: str | None = None
    description: str | None = None


class EnvRenderRequest(_Body):
    env_vars: list[EnvVar] = Field(alias="envVars")


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="GitLit")
    app.state.settings = settings

    def github_for(token: str, owner: str, repo: str) -> GitHubClient:
        return GitHubClient(token, owner=owner, repo=repo, timeout=settings.github_timeout)

    def reviewer_for(token: str, owner: str, repo: str) -> RepoReviewer:
        llm = LlmClient(
            model=settings.llm_model,
            api_key=settings.require("anthropic_api_key"),
            timeout=settings.llm_timeout,
        )
        return RepoReviewer(llm, github_for(token, owner, repo))

    # -- error shapes ---------------------------------------------------------

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        fields = sorted({".".join(str(p) for p in e["loc"][1:]) for e in exc.errors()})
        return JSONResponse(
            {"error": "Missing or invalid fields", "details": ", ".join(fields)},
            status_code=400,
        )

    @app.exception_handler(UpstreamError)
    async def upstream_error(request: Request, exc: UpstreamError):
        logger.warning("Upstream failure on %s: %s (%s)", request.url.path, exc.message, exc.status_code)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(ConfigError)
    async def config_error(request: Request, exc: ConfigError):
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.exception_handler(ReviewParseError)
    async def parse_error(request: Request, exc: ReviewParseError):
        logger.error("Unparseable LLM output on %s: %s", request.url.path, exc)
        return JSONResponse({"error": "Internal server error", "details": str(exc)}, status_code=500)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    # -- pipeline -------------------------------------------------------------

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/analyze/endpoints")
    def analyze_endpoints(body: DiscoverRequest, token: str = Depends(bearer_token)):
        client = github_for(token, body.owner, body.repo)
        endpoints = discover_endpoints(client, ref=body.branch, dedupe=body.dedupe)
        return {
            "owner": body.owner,
            "repo": body.repo,
            "endpoints": [ep.model_dump() for ep in endpoints],
            "total": len(endpoints),
        }

    @app.post("/api/test/map-endpoints")
    def map_endpoints(body: MapRequest):
        mapped = normalize_endpoints(body.endpoints, root_prefix=body.root_prefix)
        return {"endpoints": [ep.model_dump() for ep in mapped]}

    @app.post("/api/test/execute")
    def execute(body: ExecuteRequest):
        run = EndpointExecutor().run(body.endpoints, body.base_url or settings.test_base_url, mode=body.mode)
        return run.model_dump(by_alias=True)

    @app.post("/api/postman/collection")
    def postman_collection(body: CollectionRequest):
        return build_collection(body.endpoints, owner=body.owner or "Example", repo=body.repo or "repo")

    # -- repository helpers ---------------------------------------------------

    @app.post("/api/setup/env")
    def setup_env(body: RepoRequest, token: str = Depends(bearer_token)):
        env_vars = fetch_env_template(github_for(token, body.owner, body.repo), ref=body.branch)
        payload = {
            "owner": body.owner,
            "repo": body.repo,
            "envVars": [v.model_dump(by_alias=True) for v in env_vars],
        }
        if not env_vars:
            payload["message"] = "No .env.example file found"
        return payload

    @app.put("/api/setup/env")
    def render_env(body: EnvRenderRequest):
        return {"content": render_env_file(body.env_vars), "format": ".env"}

    @app.post("/api/analyze/code")
    def analyze_code(body: RepoRequest, token: str = Depends(bearer_token)):
        analysis = analyze_repository(github_for(token, body.owner, body.repo), ref=body.branch)
        return {"owner": body.owner, "repo": body.repo, **analysis.report()}

    @app.get("/api/github/repos")
    def repos(per_page: int = 100, sort: str = "updated", token: str = Depends(bearer_token)):
        items = GitHubClient(token, timeout=settings.github_timeout).list_repos(per_page=per_page, sort=sort)
        return {"repos": [r.listing() for r in items], "totalCount": len(items)}

    @app.get("/api/github/pulls")
    def pulls(
        owner: str = "",
        repo: str = "",
        state: str = "all",
        per_page: int = 30,
        token: str = Depends(bearer_token),
    ):
        if not owner or not repo:
            raise HTTPException(status_code=400, detail="Missing owner or repo")
        items = github_for(token, owner, repo).list_pulls_with_comments(state=state, per_page=per_page)
        return {
            "pulls": [p.model_dump(by_alias=True) for p in items],
            "totalCount": len(items),
        }

    # -- reviews --------------------------------------------------------------

    @app.post("/api/claude/check")
    def claude_check(body: RepoRequest, token: str = Depends(bearer_token)):
        result, repo_url = reviewer_for(token, body.owner, body.repo).check(branch=body.branch or "main")
        return {"owner": body.owner, "repo": body.repo, "repoUrl": repo_url, "result": result.model_dump()}

    @app.post("/api/claude/rate")
    def claude_rate(body: RepoRequest, token: str = Depends(bearer_token)):
        text, repo_url = reviewer_for(token, body.owner, body.repo).rate()
        return {"owner": body.owner, "repo": body.repo, "result": text, "repoUrl": repo_url}

    @app.post("/api/claude/design")
    def claude_design(body: RepoRequest, token: str = Depends(bearer_token)):
        text, repo_url = reviewer_for(token, body.owner, body.repo).design()
        return {"owner": body.owner, "repo": body.repo, "result": text, "repoUrl": repo_url}

    @app.post("/api/claude/quality")
    def claude_quality(body: RepoRequest, token: str = Depends(bearer_token)):
        text, repo_url = reviewer_for(token, body.owner, body.repo).quality()
        return {"owner": body.owner, "repo": body.repo, "result": text, "repoUrl": repo_url}

    @app.post("/api/claude/feedback")
    def claude_feedback(body: FeedbackRequest, token: str = Depends(bearer_token)):
        reviewer = reviewer_for(token, body.owner, body.repo)
        result, analysis = reviewer.feedback(
            language=body.language, description=body.description, ref=body.branch
        )
        return {**result.model_dump(by_alias=True), "metrics": analysis.report()["metrics"]}

    @app.post("/api/coderabbit/review")
    def coderabbit_review(body: ReviewRequest, token: str = Depends(bearer_token)):
        client = CodeRabbitClient(settings.require("coderabbit_api_key"))
        report = client.generate_report(group_by=body.group_by, prompt=body.custom_prompt)
        return {"owner": body.owner, "repo": body.repo, "review": report}

    return app
