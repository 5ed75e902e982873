"""CLI entry point for gitlit."""

import json
import logging
from functools import wraps
from pathlib import Path

import click

from gitlit.analysis.collector import analyze_repository
from gitlit.clients.coderabbit import GROUP_BY_CHOICES, CodeRabbitClient
from gitlit.clients.errors import ConfigError, UpstreamError
from gitlit.clients.github import GitHubClient
from gitlit.config import Settings
from gitlit.discovery.normalize import normalize_endpoints
from gitlit.discovery.walker import discover_endpoints
from gitlit.envfile import fetch_env_template, render_env_file
from gitlit.exporter.loader import EndpointFileError, load_endpoints
from gitlit.exporter.postman import build_collection
from gitlit.llm import LlmClient
from gitlit.review.reviewer import RepoReviewer, ReviewParseError
from gitlit.runner.executor import EndpointExecutor

MODES = ["auto", "real", "mock"]


def _handle_errors(fn):
    """Turn collaborator failures into a clean CLI error (exit code 1)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except UpstreamError as e:
            detail = f" ({e.details})" if e.details else ""
            raise click.ClickException(f"{e.message} [HTTP {e.status_code}]{detail}") from e
        except (ConfigError, ReviewParseError, EndpointFileError) as e:
            raise click.ClickException(str(e)) from e
    return wrapper


def _github(ctx: click.Context, owner: str | None = None, repo: str | None = None) -> GitHubClient:
    settings: Settings = ctx.obj
    token = settings.github_token
    if not token:
        raise click.ClickException("No GitHub token: set GITHUB_TOKEN or pass --token.")
    return GitHubClient(token, owner=owner, repo=repo, timeout=settings.github_timeout)


def _emit_json(data, output: Path | None) -> None:
    text = json.dumps(data, indent=2)
    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"Saved to {output}")


def _print_run(run) -> None:
    click.echo(f"Mode: {run.mode}")
    for t in run.tests:
        mark = "PASS" if t.status == "success" else "FAIL"
        click.echo(f"  {mark} {t.method:<6} {t.path:<35} {t.status_code} ({t.response_time_ms or 0:.0f} ms)")
    s = run.summary
    click.echo(f"{s.passed}/{s.total} passed, {s.failed} failed, avg {s.avg_response_time_ms:.0f} ms")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
@click.option("--token", envvar="GITHUB_TOKEN", default=None, help="GitHub token (default: $GITHUB_TOKEN).")
@click.pass_context
def main(ctx: click.Context, verbose: bool, token: str | None):
    """GitLit: discover, test and export the HTTP endpoints of a GitHub repository."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = Settings.from_env()
    if token:
        settings = settings.model_copy(update={"github_token": token})
    ctx.obj = settings


@main.command()
@click.argument("owner")
@click.argument("repo")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write endpoints JSON here.")
@click.option("--ref", default=None, help="Branch, tag or commit to read.")
@click.option("--dedupe", is_flag=True, help="Drop repeats of the same method, path and file.")
@click.option("--normalize", "do_normalize", is_flag=True, help="Map paths to server routes.")
@click.pass_context
@_handle_errors
def discover(ctx, owner: str, repo: str, output: Path | None, ref: str | None, dedupe: bool, do_normalize: bool):
    """Find the routes declared in OWNER/REPO."""
    click.echo(f"Scanning {owner}/{repo}...", err=True)
    endpoints = discover_endpoints(_github(ctx, owner, repo), ref=ref, dedupe=dedupe)
    if do_normalize:
        endpoints = normalize_endpoints(endpoints)
    click.echo(f"Found {len(endpoints)} endpoints.", err=True)
    _emit_json({
        "owner": owner,
        "repo": repo,
        "endpoints": [ep.model_dump() for ep in endpoints],
        "total": len(endpoints),
    }, output)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write mapped endpoints here.")
@click.option("--root-prefix", default=None, help="Repository directory prefix to strip from paths.")
@_handle_errors
def normalize(input_path: Path, output: Path | None, root_prefix: str | None):
    """Map discovered paths in INPUT_PATH to server routes."""
    endpoints = normalize_endpoints(load_endpoints(input_path), root_prefix=root_prefix)
    _emit_json({"endpoints": [ep.model_dump() for ep in endpoints]}, output)


@main.command("test")
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("--base-url", default=None, help="Server to test (default: $GITLIT_BASE_URL).")
@click.option("--mode", default="auto", type=click.Choice(MODES), help="auto probes the server first.")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write results JSON here.")
@click.pass_context
@_handle_errors
def test_endpoints(ctx, input_path: Path, base_url: str | None, mode: str, output: Path | None):
    """Call every endpoint in INPUT_PATH and report the results."""
    endpoints = load_endpoints(input_path)
    if not endpoints:
        raise click.ClickException(f"No endpoints in {input_path}")
    run = EndpointExecutor().run(endpoints, base_url or ctx.obj.test_base_url, mode=mode)
    _print_run(run)
    if output:
        _emit_json(run.model_dump(by_alias=True), output)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Collection file to write.")
@click.option("--owner", default="Example", help="Owner shown in the collection name.")
@click.option("--repo", default="repo", help="Repository shown in the collection name.")
@click.option("--base-url", default="http://localhost:3001", help="Host the requests point at.")
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "endpoints", "postman"]), help="Input format.")
@_handle_errors
def export(input_path: Path, output: Path, owner: str, repo: str, base_url: str, fmt: str):
    """Write a Postman collection for the endpoints in INPUT_PATH."""
    endpoints = load_endpoints(input_path, fmt=fmt)
    collection = build_collection(endpoints, owner=owner, repo=repo, base_url=base_url)
    _emit_json(collection, output)
    click.echo(f"{len(endpoints)} requests in {len(collection['item'])} folders.")


@main.command()
@click.argument("owner")
@click.argument("repo")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output directory.")
@click.option("--ref", default=None, help="Branch, tag or commit to read.")
@click.option("--base-url", default=None, help="Server to test (default: $GITLIT_BASE_URL).")
@click.option("--mode", default="auto", type=click.Choice(MODES), help="auto probes the server first.")
@click.pass_context
@_handle_errors
def run(ctx, owner: str, repo: str, output: Path, ref: str | None, base_url: str | None, mode: str):
    """Full pipeline: discover -> map -> test -> export."""
    # Step 1: Discover
    click.echo(f"Scanning {owner}/{repo}...")
    endpoints = discover_endpoints(_github(ctx, owner, repo), ref=ref)
    click.echo(f"Found {len(endpoints)} endpoints.")

    # Step 2: Map paths
    endpoints = normalize_endpoints(endpoints)
    output.mkdir(parents=True, exist_ok=True)
    _emit_json({"owner": owner, "repo": repo, "endpoints": [ep.model_dump() for ep in endpoints]},
               output / "endpoints.json")

    # Step 3: Test
    if endpoints:
        test_run = EndpointExecutor().run(endpoints, base_url or ctx.obj.test_base_url, mode=mode)
        _print_run(test_run)
        _emit_json(test_run.model_dump(by_alias=True), output / "test-results.json")
    else:
        click.echo("Nothing to test.")

    # Step 4: Export
    _emit_json(build_collection(endpoints, owner=owner, repo=repo), output / "postman_collection.json")
    click.echo(f"Done! Results in {output}")


@main.command()
@click.argument("owner")
@click.argument("repo")
@click.option("--branch", default="main", help="Branch named in the prompt.")
@click.option("--ref", default=None, help="Branch, tag or commit analyzed for --kind feedback.")
@click.option(
    "--kind",
    default="check",
    type=click.Choice(["check", "rate", "design", "quality", "feedback"]),
    help="Review to run.",
)
@click.option("--model", default=None, help="LLM model to use.")
@click.pass_context
@_handle_errors
def review(ctx, owner: str, repo: str, branch: str, ref: str | None, kind: str, model: str | None):
    """Ask the LLM to review OWNER/REPO."""
    settings: Settings = ctx.obj
    llm = LlmClient(
        model=model or settings.llm_model,
        api_key=settings.require("anthropic_api_key"),
        timeout=settings.llm_timeout,
    )
    reviewer = RepoReviewer(llm, _github(ctx, owner, repo))

    if kind == "check":
        result, repo_url = reviewer.check(branch=branch)
        click.echo(f"{owner}/{repo} ({repo_url}): {result.total}/100")
        for name in ("readability", "bugs", "security", "design"):
            section = getattr(result, name)
            click.echo(f"\n{name.title()}: {section.score}/25")
            for bullet in section.bullets:
                click.echo(f"  - {bullet}")
        return

    if kind == "feedback":
        result, analysis = reviewer.feedback(ref=ref)
        d = result.analysis
        click.echo(f"{owner}/{repo}: {d.overall_score}/100 ({result.source})")
        click.echo(f"\n{result.summary}")
        for title, items in (
            ("Strengths", d.strengths),
            ("Improvements", d.improvements),
            ("Security", d.security_issues),
            ("Performance", d.performance_issues),
            ("Code quality", d.code_quality),
            ("Recommendations", d.recommendations),
        ):
            if items:
                click.echo(f"\n{title}:")
                for item in items:
                    click.echo(f"  - {item}")
        return

    texts = {"rate": reviewer.rate, "design": reviewer.design, "quality": reviewer.quality}
    text, repo_url = texts[kind]()
    click.echo(f"{owner}/{repo} ({repo_url})\n")
    click.echo(text)


@main.command()
@click.option("--limit", default=100, help="Maximum repositories to list.")
@click.option("--sort", default="updated", type=click.Choice(["updated", "created", "pushed", "full_name"]))
@click.pass_context
@_handle_errors
def repos(ctx, limit: int, sort: str):
    """List the repositories the token can see."""
    items = _github(ctx).list_repos(per_page=limit, sort=sort)
    for r in items:
        visibility = "private" if r.private else "public"
        click.echo(f"{r.full_name:<45} {visibility:<8} {r.language or '-':<12} {r.stargazers_count or 0:>5} stars")
    click.echo(f"{len(items)} repositories.", err=True)


@main.command()
@click.argument("owner")
@click.argument("repo")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write the analysis JSON here.")
@click.option("--ref", default=None, help="Branch, tag or commit to read.")
@click.pass_context
@_handle_errors
def analyze(ctx, owner: str, repo: str, output: Path | None, ref: str | None):
    """Count functions, classes and imports in OWNER/REPO and estimate complexity."""
    click.echo(f"Analyzing {owner}/{repo}...", err=True)
    analysis = analyze_repository(_github(ctx, owner, repo), ref=ref)
    m = analysis.metrics
    click.echo(
        f"{m.total_lines} lines, complexity {m.complexity}, test files {m.test_coverage:.1f}%",
        err=True,
    )
    _emit_json({"owner": owner, "repo": repo, **analysis.report()}, output)


@main.command()
@click.argument("owner")
@click.argument("repo")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write the .env file here.")
@click.option("--ref", default=None, help="Branch, tag or commit to read.")
@click.pass_context
@_handle_errors
def env(ctx, owner: str, repo: str, output: Path | None, ref: str | None):
    """Propose test values for OWNER/REPO's .env.example."""
    env_vars = fetch_env_template(_github(ctx, owner, repo), ref=ref)
    if not env_vars:
        click.echo("No .env.example file found.")
        return
    content = render_env_file(env_vars) + "\n"
    if output is None:
        click.echo(content, nl=False)
    else:
        output.write_text(content, encoding="utf-8")
        click.echo(f"Wrote {len(env_vars)} variables to {output}")


@main.command()
@click.option("--group-by", default="REPOSITORY", type=click.Choice(GROUP_BY_CHOICES), help="Report grouping.")
@click.option("--prompt", default=None, help="Custom report prompt.")
@click.option("--days", default=30, help="Days covered by the report.")
@click.pass_context
@_handle_errors
def coderabbit(ctx, group_by: str, prompt: str | None, days: int):
    """Generate a CodeRabbit review report."""
    client = CodeRabbitClient(ctx.obj.require("coderabbit_api_key"))
    click.echo(json.dumps(client.generate_report(group_by=group_by, prompt=prompt, days=days), indent=2))


@main.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind.")
@click.option("--port", default=8000, help="Port to listen on.")
@click.pass_context
def serve(ctx, host: str, port: int):
    """Serve the JSON API."""
    import uvicorn

    from gitlit.server import create_app

    uvicorn.run(create_app(ctx.obj), host=host, port=port)
