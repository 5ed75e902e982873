"""LLM-backed repository reviews.

A scored JSON check, short text reviews, and a feedback report built on the
code-pattern analysis. The feedback report falls back to rule-based scoring
when the model fails or answers with something unparseable.
"""

import json
import logging
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gitlit.analysis.collector import analyze_repository
from gitlit.analysis.patterns import CodeAnalysis
from gitlit.clients.errors import GitHubError, UpstreamError
from gitlit.clients.github import GitHubClient, RepoMeta
from gitlit.llm import LlmClient
from gitlit.retry import RetryPolicy

from . import prompts

logger = logging.getLogger(__name__)

CHECK_RETRY = RetryPolicy(max_attempts=2)
TEXT_RETRY = RetryPolicy(max_attempts=3)
FEEDBACK_RETRY = RetryPolicy(max_attempts=2)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ReviewParseError(ValueError):
    """The model answered with something that is not the expected JSON."""


class ScoredSection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: int | None = None
    bullets: list[str] = Field(default_factory=list)


class ReadabilitySection(ScoredSection):
    assessment: str = ""


class RepoCheck(BaseModel):
    """Readability, bugs, security and design, each scored 0-25."""

    model_config = ConfigDict(extra="ignore")

    readability: ReadabilitySection = Field(default_factory=ReadabilitySection)
    bugs: ScoredSection = Field(default_factory=ScoredSection)
    security: ScoredSection = Field(default_factory=ScoredSection)
    design: ScoredSection = Field(default_factory=ScoredSection)

    @property
    def total(self) -> int:
        return sum(s.score or 0 for s in (self.readability, self.bugs, self.security, self.design))


class FeedbackDetails(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    overall_score: int = Field(default=0, ge=0, le=100, alias="overallScore")
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    security_issues: list[str] = Field(default_factory=list, alias="securityIssues")
    performance_issues: list[str] = Field(default_factory=list, alias="performanceIssues")
    code_quality: list[str] = Field(default_factory=list, alias="codeQuality")
    recommendations: list[str] = Field(default_factory=list)


class Feedback(BaseModel):
    """Scored feedback report. ``source`` says whether the model or the rules wrote it."""

    model_config = ConfigDict(extra="ignore")

    analysis: FeedbackDetails
    summary: str = ""
    source: str = "llm"


def _extract_json(text: str) -> dict:
    """Strict parse first, then the outermost ``{...}`` in the text."""
    text = text.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(text)
        if not match:
            raise ReviewParseError("LLM did not return valid JSON")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ReviewParseError(f"LLM did not return valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ReviewParseError("LLM returned JSON that is not an object")
    return data


def parse_check(text: str) -> RepoCheck:
    try:
        return RepoCheck.model_validate(_extract_json(text))
    except ValidationError as e:
        raise ReviewParseError(f"LLM JSON has the wrong shape: {e}") from e


def parse_feedback(text: str) -> Feedback:
    try:
        return Feedback.model_validate(_extract_json(text))
    except ValidationError as e:
        raise ReviewParseError(f"LLM JSON has the wrong shape: {e}") from e


def rule_based_feedback(repo_name: str, language: str | None, analysis: CodeAnalysis) -> Feedback:
    """Score a repository from its metrics alone: 70 plus bonuses, capped at 100."""
    structure, patterns, metrics = analysis.structure, analysis.patterns, analysis.metrics
    functions, classes = len(patterns.functions), len(patterns.classes)

    score = 70
    if metrics.test_coverage > 50:
        score += 10
    if metrics.complexity == "low":
        score += 5
    if functions > 10:
        score += 5
    if structure.has_script("test"):
        score += 5
    if structure.readme:
        score += 5
    score = min(100, score)

    d = FeedbackDetails(overall_score=score)
    if functions:
        d.strengths.append(f"Well-structured codebase with {functions} functions")
        d.code_quality.append("Good function organization")
    if classes:
        d.strengths.append(f"Object-oriented design with {classes} classes")
        d.code_quality.append("Proper class structure")
    if structure.readme:
        d.strengths.append("Comprehensive documentation with README")
    if metrics.test_coverage > 30:
        d.strengths.append(f"Good test coverage at {metrics.test_coverage:.1f}%")
    if structure.has_script("test"):
        d.strengths.append("Automated testing setup")
    if structure.package_json:
        d.code_quality.append("Well-configured package management")

    if metrics.test_coverage < 30:
        d.improvements.append(f"Increase test coverage (currently {metrics.test_coverage:.1f}%)")
    if functions < 5:
        d.improvements.append("Consider breaking down large files into smaller functions")
    if not structure.has_script("lint"):
        d.improvements.append("Add linting scripts to package.json")
    if metrics.complexity == "high":
        d.improvements.append("Consider refactoring to reduce code complexity")

    if len(patterns.dependencies) > 20:
        d.security_issues.append(
            "Large number of dependencies - consider auditing for security vulnerabilities"
        )
    if not any(f.name == ".env.example" for f in structure.files):
        d.security_issues.append("Missing .env.example file for environment variable documentation")

    if metrics.average_file_size > 200:
        d.performance_issues.append("Large average file size - consider code splitting")
    if len(patterns.imports) > 50:
        d.performance_issues.append("High number of imports - consider tree shaking optimization")

    if metrics.test_coverage < 50:
        d.recommendations.append("Implement comprehensive testing strategy")
    if not structure.has_script("build"):
        d.recommendations.append("Add build scripts for production deployment")
    if patterns.dependencies:
        d.recommendations.append("Regularly update dependencies for security patches")

    if score >= 80:
        verdict = "well-structured"
    elif score >= 60:
        verdict = "decent"
    else:
        verdict = "needs improvement"
    coverage_note = "Good test coverage" if metrics.test_coverage > 30 else "Test coverage could be improved"
    summary = (
        f"Based on analysis of the {repo_name} repository, this {language or 'codebase'} project shows "
        f"{metrics.complexity} complexity with {functions} functions and {classes} classes. "
        f"The codebase has {metrics.total_lines} total lines across {structure.total_files} files. "
        f"{coverage_note}. Overall, this is a {verdict} codebase."
    )
    return Feedback(analysis=d, summary=summary, source="rules")


class RepoReviewer:
    """Runs review prompts for one repository."""

    def __init__(self, llm: LlmClient, github: GitHubClient):
        self.llm = llm
        self.github = github

    def _metadata(self) -> RepoMeta | None:
        try:
            return self.github.get_repo()
        except GitHubError as e:
            logger.warning("Repository metadata unavailable: %s", e)
            return None

    def _repo_url(self, meta: RepoMeta | None) -> str:
        if meta and meta.html_url:
            return meta.html_url
        return f"https://github.com/{self.github.owner}/{self.github.repo}"

    def check(self, branch: str = "main") -> tuple[RepoCheck, str]:
        """Scored JSON check. Returns the check and the repository URL."""
        meta = self._metadata()
        repo_url = self._repo_url(meta)
        prompt = prompts.check_prompt(self.github.owner, self.github.repo, repo_url, branch, meta)
        text = self.llm.call(
            system=prompts.JSON_SYSTEM, user=prompt, max_tokens=2200, retry=CHECK_RETRY
        )
        result = parse_check(text)
        logger.info(
            "Check for %s/%s: readability=%s bugs=%s security=%s design=%s",
            self.github.owner, self.github.repo,
            result.readability.score, result.bugs.score, result.security.score, result.design.score,
        )
        return result, repo_url

    def rate(self) -> tuple[str, str]:
        """Short security audit as Markdown text."""
        repo_url = self._repo_url(self._metadata())
        text = self.llm.call(
            system=prompts.CONCISE_SYSTEM,
            user=prompts.rate_prompt(self.github.owner, self.github.repo),
            retry=TEXT_RETRY,
        )
        return text or "No content returned", repo_url

    def design(self) -> tuple[str, str]:
        """Short system design review as Markdown text."""
        meta = self._metadata()
        repo_url = self._repo_url(meta)
        text = self.llm.call(
            system=prompts.CONCISE_SYSTEM,
            user=prompts.design_prompt(self.github.owner, self.github.repo, repo_url, meta),
            retry=TEXT_RETRY,
        )
        return text or "No content returned", repo_url

    def quality(self) -> tuple[str, str]:
        """Short code quality review as Markdown text."""
        repo_url = self._repo_url(self._metadata())
        text = self.llm.call(
            system=prompts.QUALITY_SYSTEM,
            user=prompts.quality_prompt(self.github.owner, self.github.repo),
            max_tokens=2000,
            temperature=0.3,
            retry=TEXT_RETRY,
        )
        return text or "No content returned", repo_url

    def feedback(
        self,
        language: str | None = None,
        description: str | None = None,
        ref: str | None = None,
    ) -> tuple[Feedback, CodeAnalysis]:
        """Feedback report grounded in the code-pattern analysis.

        GitHub failures while collecting the analysis propagate. Model
        failures fall back to :func:`rule_based_feedback`.
        """
        if language is None or description is None:
            meta = self._metadata()
            if meta:
                language = language or meta.language
                description = description or meta.description

        analysis = analyze_repository(self.github, ref=ref)
        prompt = prompts.feedback_prompt(self.github.repo, language, description, analysis)
        try:
            text = self.llm.call(
                system=prompts.JSON_SYSTEM, user=prompt, max_tokens=4000, retry=FEEDBACK_RETRY
            )
            result = parse_feedback(text)
        except (UpstreamError, ReviewParseError) as e:
            logger.warning("LLM feedback failed for %s/%s, using rules: %s", self.github.owner, self.github.repo, e)
            result = rule_based_feedback(self.github.repo, language, analysis)

        logger.info(
            "Feedback for %s/%s: score=%s source=%s",
            self.github.owner, self.github.repo, result.analysis.overall_score, result.source,
        )
        return result, analysis
