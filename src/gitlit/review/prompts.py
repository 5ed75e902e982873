"""Prompts for the repository review calls."""

import json

from gitlit.analysis.patterns import CodeAnalysis
from gitlit.clients.github import RepoMeta

JSON_SYSTEM = "You are precise and return strictly valid JSON when asked."
CONCISE_SYSTEM = "Be precise, pragmatic, and concise. Prefer concrete, actionable guidance."


def describe_metadata(meta: RepoMeta | None) -> str:
    if meta is None:
        return "unavailable"
    return json.dumps({
        "private": meta.private,
        "visibility": meta.visibility,
        "language": meta.language,
        "topics": meta.topics,
        "archived": meta.archived,
        "disabled": meta.disabled,
    })


def check_prompt(owner: str, repo: str, repo_url: str, branch: str, meta: RepoMeta | None) -> str:
    return f"""You are a senior code reviewer. Produce a single, ULTRA-CONCISE repository check covering readability, bugs, security, and system design.

Context:
- Repository: {owner}/{repo}
- URL: {repo_url}
- Default branch (assumed): {branch}
- Metadata: {describe_metadata(meta)}

Return ONLY valid minified JSON with this exact shape. All scores are integers 0-25:
{{
  "readability": {{ "score": number, "assessment": string, "bullets": string[] }},
  "bugs":        {{ "score": number, "bullets": string[] }},
  "security":    {{ "score": number, "bullets": string[] }},
  "design":      {{ "score": number, "bullets": string[] }}
}}

Guidelines:
- Short, specific bullets (<=100 chars). No markdown. JSON only."""


def rate_prompt(owner: str, repo: str) -> str:
    return f"""Security audit for {owner}/{repo}. ULTRA-CONCISE.

Format:
**Score: XX/100**

**Critical Risks:**
- [Top vulnerability - one line max 60 chars]
- [Second risk - one line max 60 chars]

**Urgent Fixes:**
- [Priority action - one line max 60 chars]

Max 3 bullets. Actionable. Skip details."""


def design_prompt(owner: str, repo: str, repo_url: str, meta: RepoMeta | None) -> str:
    return f"""System design review for {owner}/{repo} ({repo_url}). ULTRA-CONCISE.
Metadata: {describe_metadata(meta)}

Format:
**Score: XX/100**

**Architecture:**
- [Main strength or weakness - one line max 60 chars]

**Scalability Risks:**
- [Top risk - one line max 60 chars]

**Recommendations:**
- [Priority change - one line max 60 chars]

Max 3 bullets per section. Actionable. Skip details."""


QUALITY_SYSTEM = "You are an experienced code quality and readability analyst. Provide clear, actionable insights."


def quality_prompt(owner: str, repo: str) -> str:
    return f"""Analyze code quality for {owner}/{repo}. Be ULTRA-CONCISE.

Format:
**Score: XX/100**

[Optional: 1-2 sentence summary]

**Top Issues:**
- [Most critical issue - one line max 60 chars]
- [Second critical issue - one line max 60 chars]

**Top Recommendations:**
- [Priority fix - one line max 60 chars]
- [Priority fix - one line max 60 chars]

Max 4 bullets total. Action-focused. Skip fluff."""


def _lines(items: list[str]) -> str:
    return "\n".join(items) or "- none"


def feedback_prompt(
    repo_name: str,
    language: str | None,
    description: str | None,
    analysis: CodeAnalysis,
) -> str:
    structure, patterns, metrics = analysis.structure, analysis.patterns, analysis.metrics
    languages = _lines([f"- {lang}: {size} bytes" for lang, size in structure.languages.items()])
    key_files = _lines([f"- {f.path} ({f.size or 0} bytes)" for f in structure.important_files[:10]])
    functions = _lines([f"- {s.name} in {s.file}:{s.line}" for s in patterns.functions[:15]])
    classes = _lines([f"- {s.name} in {s.file}:{s.line}" for s in patterns.classes[:10]])
    scripts = _lines([f"- {name}: {cmd}" for name, cmd in patterns.scripts.items()])
    dependencies = ", ".join(patterns.dependencies[:20]) or "none"

    return f"""You are an expert code reviewer and software architect. Analyze this codebase and provide detailed feedback.

REPOSITORY INFORMATION:
- Name: {repo_name}
- Primary Language: {language or "Unknown"}
- Description: {description or "No description provided"}

CODEBASE METRICS:
- Total Files: {structure.total_files}
- Total Lines of Code: {metrics.total_lines}
- Average File Size: {metrics.average_file_size:.1f} lines
- Complexity Level: {metrics.complexity}
- Test Coverage: {metrics.test_coverage:.1f}%
- Dependencies: {len(patterns.dependencies)} packages

CODE STRUCTURE:
- Functions: {len(patterns.functions)} total
- Classes: {len(patterns.classes)} total
- Imports: {len(patterns.imports)} total
- Exports: {len(patterns.exports)} total

LANGUAGES USED:
{languages}

KEY FILES:
{key_files}

FUNCTIONS FOUND:
{functions}

CLASSES FOUND:
{classes}

DEPENDENCIES:
{dependencies}

SCRIPTS AVAILABLE:
{scripts}

Return ONLY valid JSON in this format:

{{
  "analysis": {{
    "overallScore": <number between 0-100>,
    "strengths": ["<strength>", ...],
    "improvements": ["<improvement>", ...],
    "securityIssues": ["<security issue>", ...],
    "performanceIssues": ["<performance issue>", ...],
    "codeQuality": ["<quality note>", ...],
    "recommendations": ["<recommendation>", ...]
  }},
  "summary": "<detailed summary of the codebase analysis>"
}}

Focus on code organization, security, performance, testing and maintainability.
Be specific and give concrete, actionable recommendations."""
