import json
from pathlib import Path
from unittest.mock import patch, MagicMock

from click.testing import CliRunner

from gitlit.cli import main
from gitlit.clients.errors import GitHubError
from gitlit.config import Settings
from gitlit.discovery.base import EndpointRecord
from gitlit.runner.executor import TestResult, TestRun, summarize

FIXTURES = Path(__file__).parent / "fixtures"

DISCOVERED = [
    EndpointRecord(method="GET", path="/users/[id]", file="app/api/users/[id]/route.ts"),
    EndpointRecord(method="POST", path="/posts", file="app/api/posts/route.ts"),
]


def _settings(**overrides) -> Settings:
    return Settings(**{"github_token": "gh-test", **overrides})


def _fake_run(endpoints) -> TestRun:
    tests = [
        TestResult(method=ep.method, path=ep.path, url=f"http://x{ep.path}", status="success",
                   status_code=200, response_time_ms=10.0)
        for ep in endpoints
    ]
    return TestRun(tests=tests, summary=summarize(tests), mode="mock", timestamp="2025-01-01T00:00:00+00:00")


class TestCliDiscover:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.discover_endpoints")
    def test_writes_endpoints(self, mock_discover, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        mock_discover.return_value = DISCOVERED

        output_file = tmp_path / "endpoints.json"
        result = CliRunner().invoke(main, ["discover", "octo", "shop", "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text())
        assert data["total"] == 2
        assert data["endpoints"][0]["path"] == "/users/[id]"
        client = mock_discover.call_args[0][0]
        assert (client.owner, client.repo) == ("octo", "shop")

    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.discover_endpoints")
    def test_normalize_flag(self, mock_discover, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        mock_discover.return_value = DISCOVERED

        output_file = tmp_path / "endpoints.json"
        result = CliRunner().invoke(main, ["discover", "octo", "shop", "--normalize", "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        paths = [ep["path"] for ep in json.loads(output_file.read_text())["endpoints"]]
        assert paths == ["/users/:id", "/posts"]

    @patch("gitlit.cli.Settings.from_env")
    def test_missing_token(self, mock_settings):
        mock_settings.return_value = Settings()
        result = CliRunner(env={"GITHUB_TOKEN": None}).invoke(main, ["discover", "octo", "shop"])
        assert result.exit_code == 1
        assert "No GitHub token" in result.output

    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.discover_endpoints")
    def test_upstream_error(self, mock_discover, mock_settings):
        mock_settings.return_value = _settings()
        mock_discover.side_effect = GitHubError(404, "Not Found")
        result = CliRunner().invoke(main, ["discover", "octo", "missing"])
        assert result.exit_code == 1
        assert "Not Found [HTTP 404]" in result.output


class TestCliNormalize:
    @patch("gitlit.cli.Settings.from_env")
    def test_maps_file(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        output_file = tmp_path / "mapped.json"
        result = CliRunner().invoke(main, ["normalize", str(FIXTURES / "endpoints.json"), "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        paths = [ep["path"] for ep in json.loads(output_file.read_text())["endpoints"]]
        assert paths == ["/users/:id", "/posts", "/"]


class TestCliTest:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.EndpointExecutor")
    def test_prints_summary(self, MockExecutor, mock_settings, tmp_path):
        mock_settings.return_value = _settings(test_base_url="http://localhost:4000")
        mock_exec = MagicMock()
        mock_exec.run.side_effect = lambda endpoints, base_url, mode: _fake_run(endpoints)
        MockExecutor.return_value = mock_exec

        output_file = tmp_path / "results.json"
        result = CliRunner().invoke(main, [
            "test", str(FIXTURES / "endpoints.json"), "--mode", "mock", "-o", str(output_file),
        ])

        assert result.exit_code == 0, result.output
        assert "3/3 passed" in result.output
        args, kwargs = mock_exec.run.call_args
        assert args[1] == "http://localhost:4000"
        assert kwargs["mode"] == "mock"
        data = json.loads(output_file.read_text())
        assert data["summary"]["avgResponseTimeMs"] == 10.0
        assert data["tests"][0]["statusCode"] == 200

    @patch("gitlit.cli.Settings.from_env")
    def test_empty_input(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        empty = tmp_path / "empty.json"
        empty.write_text('{"endpoints": []}')
        result = CliRunner().invoke(main, ["test", str(empty)])
        assert result.exit_code == 1
        assert "No endpoints" in result.output


class TestCliExport:
    @patch("gitlit.cli.Settings.from_env")
    def test_from_endpoints(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        output_file = tmp_path / "collection.json"
        result = CliRunner().invoke(main, [
            "export", str(FIXTURES / "endpoints.json"), "-o", str(output_file), "--owner", "octo", "--repo", "shop",
        ])

        assert result.exit_code == 0, result.output
        collection = json.loads(output_file.read_text())
        assert collection["info"]["name"] == "octo/shop - API Collection"
        assert [g["name"] for g in collection["item"]] == ["Users", "Posts", "Misc"]

    @patch("gitlit.cli.Settings.from_env")
    def test_from_postman(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        output_file = tmp_path / "collection.json"
        result = CliRunner().invoke(main, ["export", str(FIXTURES / "sample.postman.json"), "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        assert "2 requests in 1 folders." in result.output


class TestCliRun:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.EndpointExecutor")
    @patch("gitlit.cli.discover_endpoints")
    def test_full_pipeline(self, mock_discover, MockExecutor, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        mock_discover.return_value = DISCOVERED
        mock_exec = MagicMock()
        mock_exec.run.side_effect = lambda endpoints, base_url, mode: _fake_run(endpoints)
        MockExecutor.return_value = mock_exec

        out_dir = tmp_path / "out"
        result = CliRunner().invoke(main, ["run", "octo", "shop", "-o", str(out_dir), "--mode", "mock"])

        assert result.exit_code == 0, result.output
        assert (out_dir / "endpoints.json").exists()
        assert (out_dir / "test-results.json").exists()
        collection = json.loads((out_dir / "postman_collection.json").read_text())
        assert collection["item"][0]["item"][0]["request"]["url"]["raw"] == "http://localhost:3001/users/:id"
        tested = mock_exec.run.call_args[0][0]
        assert [ep.path for ep in tested] == ["/users/:id", "/posts"]

    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.EndpointExecutor")
    @patch("gitlit.cli.discover_endpoints")
    def test_nothing_found(self, mock_discover, MockExecutor, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        mock_discover.return_value = []

        out_dir = tmp_path / "out"
        result = CliRunner().invoke(main, ["run", "octo", "shop", "-o", str(out_dir)])

        assert result.exit_code == 0, result.output
        assert "Nothing to test." in result.output
        assert not (out_dir / "test-results.json").exists()
        MockExecutor.return_value.run.assert_not_called()


class TestCliReview:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.RepoReviewer")
    @patch("gitlit.cli.LlmClient")
    def test_rate(self, MockLlm, MockReviewer, mock_settings):
        mock_settings.return_value = _settings(anthropic_api_key="sk-ant-test")
        MockReviewer.return_value.rate.return_value = ("**Score: 80/100**", "https://github.com/octo/shop")

        result = CliRunner().invoke(main, ["review", "octo", "shop", "--kind", "rate"])

        assert result.exit_code == 0, result.output
        assert "**Score: 80/100**" in result.output
        assert MockLlm.call_args[1]["api_key"] == "sk-ant-test"

    @patch("gitlit.cli.Settings.from_env")
    def test_missing_llm_key(self, mock_settings):
        mock_settings.return_value = _settings()
        result = CliRunner().invoke(main, ["review", "octo", "shop"])
        assert result.exit_code == 1
        assert "anthropic_api_key is not configured" in result.output


class TestCliEnv:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.fetch_env_template")
    def test_writes_env_file(self, mock_fetch, mock_settings, tmp_path):
        from gitlit.envfile import EnvVar

        mock_settings.return_value = _settings()
        mock_fetch.return_value = [EnvVar(name="PORT", default_value="3000")]

        output_file = tmp_path / ".env.test"
        result = CliRunner().invoke(main, ["env", "octo", "shop", "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        assert output_file.read_text() == "PORT=3000\n"

    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.fetch_env_template")
    def test_no_template(self, mock_fetch, mock_settings):
        mock_settings.return_value = _settings()
        mock_fetch.return_value = []
        result = CliRunner().invoke(main, ["env", "octo", "shop"])
        assert result.exit_code == 0
        assert "No .env.example file found." in result.output


class TestCliBadInput:
    def _bad_file(self, tmp_path):
        f = tmp_path / "bad.json"
        f.write_text(json.dumps([{"method": "OPTIONS", "path": "/x"}]), encoding="utf-8")
        return f

    @patch("gitlit.cli.Settings.from_env")
    def test_normalize(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        result = CliRunner().invoke(main, ["normalize", str(self._bad_file(tmp_path))])
        assert result.exit_code == 1
        assert "invalid endpoint" in result.output
        assert "Traceback" not in result.output

    @patch("gitlit.cli.Settings.from_env")
    def test_test(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        result = CliRunner().invoke(main, ["test", str(self._bad_file(tmp_path)), "--mode", "mock"])
        assert result.exit_code == 1
        assert "invalid endpoint" in result.output

    @patch("gitlit.cli.Settings.from_env")
    def test_export(self, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        bad = tmp_path / "bad.yaml"
        bad.write_text("hello\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["export", str(bad), "-o", str(tmp_path / "c.json")])
        assert result.exit_code == 1
        assert "expected a list of endpoints" in result.output
        assert not (tmp_path / "c.json").exists()


class TestCliRepos:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.GitHubClient")
    def test_lists_repos(self, MockGitHub, mock_settings):
        from gitlit.clients.github import RepoMeta

        mock_settings.return_value = _settings()
        MockGitHub.return_value.list_repos.return_value = [
            RepoMeta(full_name="octo/shop", private=True, language="TypeScript", stargazers_count=3),
            RepoMeta(full_name="octo/blog", private=False),
        ]

        result = CliRunner().invoke(main, ["repos", "--limit", "5"])

        assert result.exit_code == 0, result.output
        assert "octo/shop" in result.output
        assert "private" in result.output
        assert "2 repositories." in result.output
        MockGitHub.return_value.list_repos.assert_called_once_with(per_page=5, sort="updated")
        assert MockGitHub.call_args[0][0] == "gh-test"

    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.GitHubClient")
    def test_bad_token(self, MockGitHub, mock_settings):
        mock_settings.return_value = _settings()
        MockGitHub.return_value.list_repos.side_effect = GitHubError(401, "Bad credentials")
        result = CliRunner().invoke(main, ["repos"])
        assert result.exit_code == 1
        assert "Bad credentials [HTTP 401]" in result.output


def _analysis():
    from gitlit.analysis.patterns import CodeAnalysis, CodeMetrics, CodePatterns, RepoStructure

    return CodeAnalysis(
        structure=RepoStructure(languages={"Python": 1200}),
        patterns=CodePatterns(imports=["os"]),
        metrics=CodeMetrics(total_lines=42, average_file_size=21.0, complexity="low", test_coverage=50.0),
    )


class TestCliAnalyze:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.analyze_repository")
    def test_writes_report(self, mock_analyze, mock_settings, tmp_path):
        mock_settings.return_value = _settings()
        mock_analyze.return_value = _analysis()

        output_file = tmp_path / "analysis.json"
        result = CliRunner().invoke(main, ["analyze", "octo", "shop", "--ref", "dev", "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text())
        assert data["metrics"]["totalLines"] == 42
        assert data["structure"]["languages"] == {"Python": 1200}
        assert mock_analyze.call_args[1]["ref"] == "dev"
        client = mock_analyze.call_args[0][0]
        assert (client.owner, client.repo) == ("octo", "shop")


class TestCliReviewKinds:
    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.RepoReviewer")
    @patch("gitlit.cli.LlmClient")
    def test_quality(self, MockLlm, MockReviewer, mock_settings):
        mock_settings.return_value = _settings(anthropic_api_key="sk-ant-test")
        MockReviewer.return_value.quality.return_value = ("**Score: 71/100**", "https://github.com/octo/shop")

        result = CliRunner().invoke(main, ["review", "octo", "shop", "--kind", "quality"])

        assert result.exit_code == 0, result.output
        assert "**Score: 71/100**" in result.output

    @patch("gitlit.cli.Settings.from_env")
    @patch("gitlit.cli.RepoReviewer")
    @patch("gitlit.cli.LlmClient")
    def test_feedback(self, MockLlm, MockReviewer, mock_settings):
        from gitlit.review.reviewer import Feedback, FeedbackDetails

        mock_settings.return_value = _settings(anthropic_api_key="sk-ant-test")
        feedback = Feedback(
            analysis=FeedbackDetails(overall_score=85, strengths=["Readable"], security_issues=["No .env.example"]),
            summary="Solid.",
            source="rules",
        )
        MockReviewer.return_value.feedback.return_value = (feedback, _analysis())

        result = CliRunner().invoke(main, ["review", "octo", "shop", "--kind", "feedback", "--ref", "dev"])

        assert result.exit_code == 0, result.output
        assert "octo/shop: 85/100 (rules)" in result.output
        assert "  - Readable" in result.output
        assert "Security:" in result.output
        assert "Performance:" not in result.output
        MockReviewer.return_value.feedback.assert_called_once_with(ref="dev")
