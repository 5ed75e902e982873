"""Collect a repository's structure and code patterns through the GitHub client."""

import json
import logging

from gitlit.clients.errors import GitHubError
from gitlit.clients.github import GitHubClient

from .patterns import (
    CodeAnalysis,
    CodeMetrics,
    RepoStructure,
    complexity_level,
    coverage_estimate,
    extract_patterns,
    filter_important_files,
    package_patterns,
)

logger = logging.getLogger(__name__)

MAX_ANALYZED_FILES = 10


def _is_readme(name: str) -> bool:
    lowered = name.lower()
    return "readme" in lowered and (lowered.endswith(".md") or lowered.endswith(".txt"))


def repository_structure(github: GitHubClient, ref: str | None = None) -> RepoStructure:
    """Tree, languages, README text and parsed package.json.

    The tree and language calls must succeed. README and package.json are
    read best-effort: a failure is logged and the field stays empty.
    """
    files = [e for e in github.get_tree(ref=ref) if e.type == "blob"]
    languages = github.list_languages()

    readme = None
    readme_file = next((f for f in files if _is_readme(f.name)), None)
    if readme_file:
        try:
            readme = github.get_file_text(readme_file.path, ref=ref)
        except GitHubError as e:
            logger.warning("Could not read %s: %s", readme_file.path, e)

    package_json = None
    package_file = next((f for f in files if f.name == "package.json"), None)
    if package_file:
        try:
            package_json = json.loads(github.get_file_text(package_file.path, ref=ref))
        except (GitHubError, ValueError) as e:
            logger.warning("Could not read %s: %s", package_file.path, e)
        if package_json is not None and not isinstance(package_json, dict):
            package_json = None

    structure = RepoStructure(
        files=files,
        languages=languages,
        readme=readme,
        package_json=package_json,
        important_files=filter_important_files(files),
    )
    logger.info(
        "Structure of %s/%s: %d files, %d important, languages=%s",
        github.owner, github.repo, structure.total_files,
        len(structure.important_files), ",".join(languages) or "-",
    )
    return structure


def analyze_repository(
    github: GitHubClient,
    ref: str | None = None,
    max_files: int = MAX_ANALYZED_FILES,
) -> CodeAnalysis:
    """Extract patterns from the first ``max_files`` important files and derive metrics."""
    structure = repository_structure(github, ref=ref)
    patterns = package_patterns(structure.package_json)

    total_lines = 0
    analyzed = 0
    for entry in structure.important_files[:max_files]:
        try:
            content = github.get_file_text(entry.path, ref=ref)
        except GitHubError as e:
            logger.warning("Skipping %s: %s", entry.path, e)
            continue
        total_lines += len(content.split("\n"))
        analyzed += 1
        extract_patterns(content, entry.path, patterns)

    metrics = CodeMetrics(
        total_lines=total_lines,
        average_file_size=total_lines / analyzed if analyzed else 0.0,
        complexity=complexity_level(patterns, total_lines),
        test_coverage=coverage_estimate(structure.files),
    )
    logger.info(
        "Analyzed %d files of %s/%s: %d lines, %d functions, %d classes, complexity=%s",
        analyzed, github.owner, github.repo, total_lines,
        len(patterns.functions), len(patterns.classes), metrics.complexity,
    )
    return CodeAnalysis(structure=structure, patterns=patterns, metrics=metrics)
