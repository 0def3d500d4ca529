import re
from dataclasses import asdict, dataclass
from pathlib import Path

from pidea.services.analysis.workspace_scanner import ScannedFile, iter_files


LONG_FILE_WARNING = 500
LONG_FILE_CRITICAL = 1000
LONG_LINE = 120
LARGE_FUNCTION_WARNING = 50
LARGE_FUNCTION_CRITICAL = 100
MAX_INFO_PENALTY = 20

SOURCE_LANGUAGES = ("python", "javascript", "typescript")

MARKER_PATTERN = re.compile(r"\b(TODO|FIXME|HACK|XXX)\b")
PY_FUNCTION_PATTERN = re.compile(r"^(\s*)(async\s+)?def\s+(\w+)")
JS_FUNCTION_PATTERN = re.compile(
    r"(?:function\s+(\w+)\s*\(|(\w+)\s*[=:]\s*(?:async\s+)?(?:function\s*)?\([^)]*\)\s*(?:=>\s*)?\{)"
)


@dataclass
class QualityIssue:
    type: str
    severity: str
    file: str
    message: str
    line: int | None = None


@dataclass
class FunctionSpan:
    name: str
    start: int
    length: int


def python_functions(lines: list[str]) -> list[FunctionSpan]:
    """Functions end at the first non-blank line indented no deeper than their def"""
    spans = []
    for index, line in enumerate(lines):
        match = PY_FUNCTION_PATTERN.match(line)
        if not match:
            continue
        indent = len(match.group(1))
        end = index + 1
        for end in range(index + 1, len(lines) + 1):
            if end == len(lines):
                break
            candidate = lines[end]
            if candidate.strip() and len(candidate) - len(candidate.lstrip()) <= indent:
                break
        # Trailing blank lines belong to whatever follows
        while end > index + 1 and not lines[end - 1].strip():
            end -= 1
        spans.append(FunctionSpan(name=match.group(3), start=index + 1, length=end - index))
    return spans


def javascript_functions(lines: list[str]) -> list[FunctionSpan]:
    spans = []
    for index, line in enumerate(lines):
        match = JS_FUNCTION_PATTERN.search(line)
        if not match:
            continue
        depth = 0
        opened = False
        end = index
        for end in range(index, len(lines)):
            depth += lines[end].count("{") - lines[end].count("}")
            opened = opened or "{" in lines[end]
            if opened and depth <= 0:
                break
        spans.append(FunctionSpan(name=match.group(1) or match.group(2), start=index + 1, length=end - index + 1))
    return spans


def check_file(scanned: ScannedFile) -> list[QualityIssue]:
    try:
        text = scanned.path.read_text(errors="replace")
    except OSError:
        return []
    lines = text.splitlines()
    issues: list[QualityIssue] = []

    if len(lines) > LONG_FILE_WARNING:
        issues.append(
            QualityIssue(
                type="long_file",
                severity="critical" if len(lines) > LONG_FILE_CRITICAL else "warning",
                file=scanned.relative_path,
                message=f"File has {len(lines)} lines",
            )
        )

    long_lines = [i + 1 for i, line in enumerate(lines) if len(line) > LONG_LINE]
    if long_lines:
        issues.append(
            QualityIssue(
                type="long_lines",
                severity="info",
                file=scanned.relative_path,
                message=f"{len(long_lines)} lines longer than {LONG_LINE} characters",
                line=long_lines[0],
            )
        )

    for i, line in enumerate(lines):
        marker = MARKER_PATTERN.search(line)
        if marker:
            issues.append(
                QualityIssue(
                    type="todo_marker",
                    severity="info",
                    file=scanned.relative_path,
                    message=f"{marker.group(1)} marker",
                    line=i + 1,
                )
            )

    spans = python_functions(lines) if scanned.language == "python" else javascript_functions(lines)
    for span in spans:
        if span.length > LARGE_FUNCTION_WARNING:
            issues.append(
                QualityIssue(
                    type="large_function",
                    severity="critical" if span.length > LARGE_FUNCTION_CRITICAL else "warning",
                    file=scanned.relative_path,
                    message=f"Function {span.name} spans {span.length} lines",
                    line=span.start,
                )
            )

    return issues


def quality_score(issues: list[QualityIssue]) -> int:
    critical = sum(1 for i in issues if i.severity == "critical")
    warnings = sum(1 for i in issues if i.severity == "warning")
    info = sum(1 for i in issues if i.severity == "info")
    score = 100 - critical * 10 - warnings * 5 - min(info, MAX_INFO_PENALTY)
    return max(0, min(100, score))


def quality_level(score: int) -> str:
    if score >= 90:
        return "excellent"
    if score >= 80:
        return "good"
    if score >= 70:
        return "fair"
    if score >= 60:
        return "poor"
    return "critical"


def recommendations_for(issues: list[QualityIssue]) -> list[str]:
    kinds = {issue.type for issue in issues}
    recommendations = []
    if "long_file" in kinds:
        recommendations.append("Split long files into smaller modules")
    if "large_function" in kinds:
        recommendations.append("Break large functions into smaller, focused functions")
    if "long_lines" in kinds:
        recommendations.append(f"Wrap lines longer than {LONG_LINE} characters or configure a formatter")
    if "todo_marker" in kinds:
        recommendations.append("Resolve or track outstanding TODO/FIXME markers")
    return recommendations


def analyze_code_quality(root: Path) -> dict:
    files = [f for f in iter_files(root) if f.language in SOURCE_LANGUAGES]
    issues = [issue for scanned in files for issue in check_file(scanned)]
    score = quality_score(issues)

    return {
        "files_analyzed": len(files),
        "issues": [asdict(issue) for issue in issues],
        "issue_counts": {
            severity: sum(1 for i in issues if i.severity == severity)
            for severity in ("critical", "warning", "info")
        },
        "score": score,
        "quality_level": quality_level(score),
        "recommendations": recommendations_for(issues),
    }
