"""Tests for workspace analysis: structure, tech stack and code quality."""

import json
from pathlib import Path
from textwrap import dedent

import pytest

from pidea.services.analysis.code_quality import (
    analyze_code_quality,
    javascript_functions,
    python_functions,
    quality_level,
    quality_score,
    QualityIssue,
)
from pidea.services.analysis.manifest_parser import analyze_tech_stack, parse_manifests
from pidea.services.analysis.workspace_scanner import (
    WorkspaceNotFoundError,
    iter_files,
    resolve_workspace,
    scan_structure,
)
from pidea.steps.step_registry import StepRegistry


class TestWorkspaceScanner:
    """Test the workspace walk and structure summary."""

    def test_resolve_missing_workspace(self, tmp_path):
        with pytest.raises(WorkspaceNotFoundError, match="required"):
            resolve_workspace(None)
        with pytest.raises(WorkspaceNotFoundError, match="does not exist"):
            resolve_workspace(str(tmp_path / "nope"))

    def test_ignored_dirs_are_skipped(self, workspace):
        paths = [f.relative_path for f in iter_files(workspace)]
        assert "node_modules/left-pad/index.js" not in paths
        assert "src/app.py" in paths

    def test_max_files(self, workspace):
        assert len(list(iter_files(workspace, max_files=2))) == 2

    def test_scan_structure(self, workspace):
        structure = scan_structure(workspace)

        assert structure["total_files"] == 4
        assert structure["total_directories"] == 2
        assert structure["max_depth"] == 1
        assert structure["languages"] == {"python": 6, "javascript": 3, "markdown": 1}
        assert structure["total_lines"] == 10
        assert structure["extensions"][".py"] == 1
        assert len(structure["largest_files"]) == 4


class TestManifestParser:
    """Test dependency extraction from manifests."""

    def test_requirements_txt(self, workspace):
        deps, manifests = parse_manifests(workspace)

        assert manifests == ["requirements.txt"]
        assert [(d.name, d.version_spec) for d in deps] == [("fastapi", ">=0.110"), ("httpx", "*")]

    def test_package_json(self, tmp_path):
        (tmp_path / "package.json").write_text(
            json.dumps(
                {
                    "dependencies": {"react": "^18.2.0", "next": "14.1.0"},
                    "devDependencies": {"jest": "^29.0.0"},
                }
            )
        )
        (tmp_path / "yarn.lock").write_text("")

        report = analyze_tech_stack(tmp_path)

        assert report["package_manager"] == "yarn"
        assert report["frameworks"] == ["jest", "nextjs", "react"]
        assert report["dependency_count"] == 2
        assert [d["name"] for d in report["dev_dependencies"]] == ["jest"]
        assert report["recommendations"] == []

    def test_pyproject(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            dedent(
                """
                [project]
                name = "demo"
                dependencies = ["django>=5.0", "requests[socks]>=2.31; python_version > '3.8'"]

                [project.optional-dependencies]
                test = ["pytest>=8"]
                """
            )
        )

        deps, _ = parse_manifests(tmp_path)

        assert [(d.name, d.version_spec, d.dev) for d in deps] == [
            ("django", ">=5.0", False),
            ("requests", ">=2.31", False),
            ("pytest", ">=8", True),
        ]

    def test_broken_manifest_is_skipped(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        deps, manifests = parse_manifests(tmp_path)
        assert deps == []
        assert manifests == ["package.json"]

    def test_undecodable_bytes_are_tolerated(self, tmp_path):
        (tmp_path / "pyproject.toml").write_bytes(
            b'[project]\nname = "d\xffmo"\ndependencies = ["flask>=3"]\n'
        )
        (tmp_path / "requirements.txt").write_bytes(b"# caf\xe9\nhttpx\n")

        deps, manifests = parse_manifests(tmp_path)

        assert manifests == ["pyproject.toml", "requirements.txt"]
        assert [d.name for d in deps] == ["flask", "httpx"]

    @pytest.mark.parametrize(
        "content",
        ['{"dependencies": null, "devDependencies": {"jest": "^29"}}', "[1, 2, 3]", '"just a string"'],
    )
    def test_unexpected_package_json_shapes(self, tmp_path, content):
        (tmp_path / "package.json").write_text(content)

        report = analyze_tech_stack(tmp_path)

        assert report["package_manager"] == "npm"
        assert report["dependency_count"] == 0

    def test_unexpected_pyproject_shapes(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            dedent(
                """
                project = "not a table"

                [tool]
                poetry = 3
                """
            )
        )
        deps, _ = parse_manifests(tmp_path)
        assert deps == []

    def test_no_manifest(self, tmp_path):
        report = analyze_tech_stack(tmp_path)
        assert report["package_manager"] is None
        assert "No package manifest found" in report["recommendations"][0]


class TestCodeQuality:
    """Test function spans, scoring and the full report."""

    def test_python_function_spans(self):
        lines = dedent(
            """\
            def short():
                return 1


            class A:
                def method(self):
                    x = 1
                    return x

            def last():
                pass
            """
        ).splitlines()

        spans = {s.name: s.length for s in python_functions(lines)}
        assert spans == {"short": 2, "method": 3, "last": 2}

    def test_javascript_function_spans(self):
        lines = ["function a() {", "  if (x) {", "    y();", "  }", "}", "const b = () => {", "};"]
        spans = {s.name: (s.start, s.length) for s in javascript_functions(lines)}
        assert spans == {"a": (1, 5), "b": (6, 2)}

    def test_score(self):
        issues = [QualityIssue("large_function", "critical", "a.py", "")]
        issues += [QualityIssue("long_file", "warning", "a.py", "")] * 2
        issues += [QualityIssue("todo_marker", "info", "a.py", "")] * 30

        assert quality_score(issues) == 100 - 10 - 10 - 20
        assert quality_score([QualityIssue("x", "critical", "a.py", "")] * 20) == 0

    @pytest.mark.parametrize(
        "score,level",
        [(100, "excellent"), (90, "excellent"), (85, "good"), (70, "fair"), (60, "poor"), (10, "critical")],
    )
    def test_quality_level(self, score, level):
        assert quality_level(score) == level

    def test_report_for_workspace(self, workspace):
        report = analyze_code_quality(workspace)

        assert report["files_analyzed"] == 2
        assert report["issue_counts"] == {"critical": 0, "warning": 0, "info": 1}
        assert report["issues"][0]["type"] == "todo_marker"
        assert report["issues"][0]["line"] == 5
        assert report["score"] == 99
        assert report["quality_level"] == "excellent"

    def test_large_function_and_long_line(self, tmp_path):
        body = "\n".join(f"    value_{i} = {i}" for i in range(60))
        (tmp_path / "big.py").write_text(f"def big():\n{body}\n    return 0\n# {'x' * 130}\n")

        report = analyze_code_quality(tmp_path)
        kinds = {(i["type"], i["severity"]) for i in report["issues"]}

        assert ("large_function", "warning") in kinds
        assert ("long_lines", "info") in kinds
        assert "Break large functions into smaller, focused functions" in report["recommendations"]


class TestAnalysisSteps:
    """Test the analysis steps through the registry."""

    @pytest.fixture
    def registry(self) -> StepRegistry:
        registry = StepRegistry()
        registry.load_builtin_steps()
        return registry

    @pytest.mark.asyncio
    async def test_project_analysis_step(self, registry, workspace):
        result = await registry.execute_step("analysis/project_analysis_step", {"workspace_path": str(workspace)})

        assert result.success, result.error
        assert result.result["structure"]["total_files"] == 4
        assert result.result["workspace_path"] == str(workspace)

    @pytest.mark.asyncio
    async def test_manifest_analysis_step(self, registry, workspace):
        result = await registry.execute_step("manifest_analysis_step", {"workspace_path": str(workspace)})

        assert result.success, result.error
        assert result.result["frameworks"] == ["fastapi"]
        assert result.result["package_manager"] == "pip"

    @pytest.mark.asyncio
    async def test_missing_workspace_is_validation_error(self, registry, tmp_path):
        result = await registry.execute_step(
            "code_quality_analysis_step", {"workspace_path": str(Path(tmp_path) / "gone")}
        )

        assert not result.success
        assert result.error_type == "StepValidationError"
