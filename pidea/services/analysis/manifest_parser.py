import json
import re
import tomllib
from dataclasses import asdict, dataclass
from pathlib import Path

import structlog


logger = structlog.get_logger(__name__)

DEV_GROUPS = ("dev", "test", "testing", "development", "lint", "docs")

FRAMEWORK_PACKAGES = {
    "react": "react",
    "vue": "vue",
    "@angular/core": "angular",
    "express": "express",
    "@nestjs/core": "nestjs",
    "next": "nextjs",
    "nuxt": "nuxtjs",
    "svelte": "svelte",
    "fastapi": "fastapi",
    "django": "django",
    "flask": "flask",
    "starlette": "starlette",
    "pytest": "pytest",
    "jest": "jest",
}

LOCKFILE_MANAGERS = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("poetry.lock", "poetry"),
    ("uv.lock", "uv"),
    ("Pipfile.lock", "pipenv"),
)


@dataclass
class RawDependency:
    name: str
    version_spec: str
    dev: bool = False
    source: str = ""


def parse_manifests(root: Path) -> tuple[list[RawDependency], list[str]]:
    """Return the dependencies and the names of the manifests that were found"""
    deps: list[RawDependency] = []
    found: list[str] = []

    pkg_json = root / "package.json"
    if pkg_json.exists():
        found.append(pkg_json.name)
        deps.extend(_parse_package_json(pkg_json))

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        found.append(pyproject.name)
        deps.extend(_parse_pyproject_toml(pyproject))

    requirements = root / "requirements.txt"
    if requirements.exists():
        found.append(requirements.name)
        deps.extend(_parse_requirements_txt(requirements))

    return deps, found


def _read_manifest(path: Path) -> str:
    # Undecodable bytes are replaced rather than raised
    return path.read_text(encoding="utf-8", errors="replace")


def _table(data: object, key: str) -> dict:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, dict) else {}


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _parse_package_json(path: Path) -> list[RawDependency]:
    try:
        data = json.loads(_read_manifest(path))
    except (OSError, ValueError) as e:
        logger.warning("failed to parse package.json", path=str(path), error=str(e))
        return []

    deps: list[RawDependency] = []
    source = "package.json"
    for key, dev in (("dependencies", False), ("devDependencies", True), ("peerDependencies", False)):
        for name, version in _table(data, key).items():
            deps.append(RawDependency(name, version if isinstance(version, str) else "*", dev=dev, source=source))
    return deps


def _parse_pyproject_toml(path: Path) -> list[RawDependency]:
    try:
        data = tomllib.loads(_read_manifest(path))
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("failed to parse pyproject.toml", path=str(path), error=str(e))
        return []

    deps: list[RawDependency] = []
    source = "pyproject.toml"

    project = _table(data, "project")
    for dep_str in _string_list(project.get("dependencies")):
        name, version = _parse_pep508(dep_str)
        deps.append(RawDependency(name, version, dev=False, source=source))

    for group, group_deps in _table(project, "optional-dependencies").items():
        is_dev = group in DEV_GROUPS
        for dep_str in _string_list(group_deps):
            name, version = _parse_pep508(dep_str)
            deps.append(RawDependency(name, version, dev=is_dev, source=source))

    poetry = _table(_table(data, "tool"), "poetry")
    for name, spec in _table(poetry, "dependencies").items():
        if name == "python":
            continue
        deps.append(RawDependency(name, _extract_poetry_version(spec), dev=False, source=source))
    for name, spec in _table(poetry, "dev-dependencies").items():
        deps.append(RawDependency(name, _extract_poetry_version(spec), dev=True, source=source))
    for group_name, group_data in _table(poetry, "group").items():
        is_dev = group_name in DEV_GROUPS
        for name, spec in _table(group_data, "dependencies").items():
            deps.append(RawDependency(name, _extract_poetry_version(spec), dev=is_dev, source=source))

    return deps


def _parse_requirements_txt(path: Path) -> list[RawDependency]:
    try:
        lines = _read_manifest(path).splitlines()
    except OSError as e:
        logger.warning("failed to read requirements.txt", path=str(path), error=str(e))
        return []

    deps: list[RawDependency] = []
    for line in lines:
        line = line.split("#", 1)[0].strip()
        # Skip options like -r other.txt or -e .
        if not line or line.startswith("-"):
            continue
        name, version = _parse_pep508(line)
        deps.append(RawDependency(name, version, dev=False, source="requirements.txt"))
    return deps


def _parse_pep508(dep_str: str) -> tuple[str, str]:
    match = re.match(r"^([a-zA-Z0-9_.-]+)(\[[^\]]*\])?(.*)$", dep_str.strip())
    if match:
        version = match.group(3).split(";", 1)[0].strip()
        return match.group(1), version or "*"
    return dep_str, "*"


def _extract_poetry_version(spec: str | dict) -> str:
    if isinstance(spec, str):
        return spec
    if isinstance(spec, dict):
        return spec.get("version", "*")
    return "*"


def detect_frameworks(deps: list[RawDependency]) -> list[str]:
    names = {d.name.lower() for d in deps}
    return sorted({framework for package, framework in FRAMEWORK_PACKAGES.items() if package in names})


def detect_package_manager(root: Path, manifests: list[str]) -> str | None:
    for lockfile, manager in LOCKFILE_MANAGERS:
        if (root / lockfile).exists():
            return manager
    if "package.json" in manifests:
        return "npm"
    if "pyproject.toml" in manifests or "requirements.txt" in manifests:
        return "pip"
    return None


def analyze_tech_stack(root: Path) -> dict:
    deps, manifests = parse_manifests(root)
    frameworks = detect_frameworks(deps)

    recommendations = []
    if not manifests:
        recommendations.append("No package manifest found; add package.json, pyproject.toml or requirements.txt")
    unpinned = [d.name for d in deps if d.version_spec in ("*", "latest", "")]
    if unpinned:
        recommendations.append(f"Pin versions for {len(unpinned)} dependencies: {', '.join(sorted(unpinned)[:10])}")

    return {
        "manifests": manifests,
        "package_manager": detect_package_manager(root, manifests),
        "frameworks": frameworks,
        "dependencies": [asdict(d) for d in deps if not d.dev],
        "dev_dependencies": [asdict(d) for d in deps if d.dev],
        "dependency_count": sum(1 for d in deps if not d.dev),
        "dev_dependency_count": sum(1 for d in deps if d.dev),
        "recommendations": recommendations,
    }
