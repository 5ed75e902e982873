"""Line-based code pattern extraction and repository metrics.

Counts imports, exports, functions and classes in JavaScript/TypeScript and
Python sources with per-line regexes, then derives a rough complexity level
and a test-file ratio. Like the route scanner, this reads text, not syntax.
"""

import re
from typing import Literal

from pydantic import BaseModel, Field

from gitlit.clients.github import TreeEntry

MAX_IMPORTANT_FILE_SIZE = 100_000

IMPORTANT_FILE_PATTERNS = [
    # configuration
    re.compile(r"package\.json$", re.I),
    re.compile(r"tsconfig\.json$", re.I),
    re.compile(r"next\.config\.(js|ts|mjs)$", re.I),
    re.compile(r"tailwind\.config\.(js|ts)$", re.I),
    re.compile(r"eslint\.config\.(js|ts|mjs)$", re.I),
    re.compile(r"\.env\.example$", re.I),
    re.compile(r"dockerfile$", re.I),
    re.compile(r"docker-compose\.yml$", re.I),
    # source
    re.compile(r"\.(ts|tsx|js|jsx)$", re.I),
    re.compile(r"\.(py|java|cpp|c|cs|go|rs|php|rb)$", re.I),
    # docs
    re.compile(r"readme\.(md|txt)$", re.I),
    re.compile(r"changelog\.(md|txt)$", re.I),
    re.compile(r"contributing\.(md|txt)$", re.I),
    re.compile(r"license$", re.I),
    # tests
    re.compile(r"\.(test|spec)\.(ts|tsx|js|jsx)$", re.I),
    re.compile(r"__tests__", re.I),
    # styles
    re.compile(r"\.(css|scss|sass|less)$", re.I),
    # repository settings
    re.compile(r"\.gitignore$", re.I),
    re.compile(r"\.github/", re.I),
]

SOURCE_FILE = re.compile(r"\.(ts|tsx|js|jsx|py|java|cpp|c|cs|go|rs|php|rb)$", re.I)
JS_FILE = re.compile(r"\.(ts|tsx|js|jsx)$")

JS_IMPORT = re.compile(r"import\s+.*\s+from\s+['\"]([^'\"]+)['\"]")
JS_EXPORT = re.compile(r"export\s+(?:default\s+)?(?:function|class|const|let|var)\s+(\w+)")
JS_FUNCTION = re.compile(r"(?:export\s+)?(?:async\s+)?function\s+(\w+)")
JS_CLASS = re.compile(r"(?:export\s+)?class\s+(\w+)")

PY_IMPORT = re.compile(r"^\s*(?:from\s+([\w.]+)\s+import|import\s+([\w.]+))")
PY_FUNCTION = re.compile(r"^\s*(?:async\s+)?def\s+(\w+)")
PY_CLASS = re.compile(r"^\s*class\s+(\w+)")

Complexity = Literal["low", "medium", "high"]


class Symbol(BaseModel):
    name: str
    file: str
    line: int


class CodePatterns(BaseModel):
    imports: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    functions: list[Symbol] = Field(default_factory=list)
    classes: list[Symbol] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    scripts: dict[str, str] = Field(default_factory=dict)


class CodeMetrics(BaseModel):
    total_lines: int = 0
    average_file_size: float = 0.0  # lines per analyzed file
    complexity: Complexity = "low"
    test_coverage: float = 0.0  # test files as a percentage of source files


class RepoStructure(BaseModel):
    """What the tree, languages, README and package.json say about a repository."""

    files: list[TreeEntry] = Field(default_factory=list)
    languages: dict[str, int] = Field(default_factory=dict)
    readme: str | None = None
    package_json: dict | None = None
    important_files: list[TreeEntry] = Field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    def has_script(self, name: str) -> bool:
        return bool(self.package_json and (self.package_json.get("scripts") or {}).get(name))


class CodeAnalysis(BaseModel):
    structure: RepoStructure
    patterns: CodePatterns
    metrics: CodeMetrics

    def report(self) -> dict:
        """JSON-ready view without file bodies or the full tree."""
        return {
            "structure": {
                "totalFiles": self.structure.total_files,
                "languages": self.structure.languages,
                "hasReadme": bool(self.structure.readme),
                "hasPackageJson": self.structure.package_json is not None,
                "importantFiles": [f.path for f in self.structure.important_files],
            },
            "patterns": self.patterns.model_dump(),
            "metrics": {
                "totalLines": self.metrics.total_lines,
                "averageFileSize": self.metrics.average_file_size,
                "complexity": self.metrics.complexity,
                "testCoverage": self.metrics.test_coverage,
            },
        }


def filter_important_files(files: list[TreeEntry]) -> list[TreeEntry]:
    """Config, source, docs, tests and styles under 100 KB."""
    return [
        f for f in files
        if f.size and f.size < MAX_IMPORTANT_FILE_SIZE
        and any(p.search(f.path) for p in IMPORTANT_FILE_PATTERNS)
    ]


def is_test_file(f: TreeEntry) -> bool:
    return "test" in f.name or "spec" in f.name or "__tests__" in f.path


def extract_javascript_patterns(content: str, file_path: str, patterns: CodePatterns) -> None:
    for number, line in enumerate(content.split("\n"), start=1):
        imported = JS_IMPORT.search(line)
        if imported:
            patterns.imports.append(imported.group(1))
        exported = JS_EXPORT.search(line)
        if exported:
            patterns.exports.append(exported.group(1))
        _add_symbol(patterns.functions, JS_FUNCTION.search(line), file_path, number)
        _add_symbol(patterns.classes, JS_CLASS.search(line), file_path, number)


def extract_python_patterns(content: str, file_path: str, patterns: CodePatterns) -> None:
    for number, line in enumerate(content.split("\n"), start=1):
        imported = PY_IMPORT.search(line)
        if imported:
            patterns.imports.append(imported.group(1) or imported.group(2))
        _add_symbol(patterns.functions, PY_FUNCTION.search(line), file_path, number)
        _add_symbol(patterns.classes, PY_CLASS.search(line), file_path, number)


def _add_symbol(symbols: list[Symbol], match: re.Match | None, file_path: str, line: int) -> None:
    if match:
        symbols.append(Symbol(name=match.group(1), file=file_path, line=line))


def extract_patterns(content: str, file_path: str, patterns: CodePatterns) -> None:
    """Dispatch on extension; other languages only count towards line totals."""
    if JS_FILE.search(file_path):
        extract_javascript_patterns(content, file_path, patterns)
    elif file_path.endswith(".py"):
        extract_python_patterns(content, file_path, patterns)


def package_patterns(package_json: dict | None) -> CodePatterns:
    """Dependencies and scripts declared in package.json."""
    if not package_json:
        return CodePatterns()
    return CodePatterns(
        dependencies=list((package_json.get("dependencies") or {}).keys()),
        scripts=dict(package_json.get("scripts") or {}),
    )


def complexity_level(patterns: CodePatterns, total_lines: int) -> Complexity:
    score = (
        len(patterns.functions) * 2
        + len(patterns.classes) * 3
        + len(patterns.imports) * 0.5
        + total_lines * 0.01
    )
    if score < 50:
        return "low"
    if score < 150:
        return "medium"
    return "high"


def coverage_estimate(files: list[TreeEntry]) -> float:
    """Share of test files among source files, in percent."""
    sources = sum(1 for f in files if SOURCE_FILE.search(f.name))
    if not sources:
        return 0.0
    return sum(1 for f in files if is_test_file(f)) / sources * 100

