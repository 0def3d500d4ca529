import os
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import structlog

from pidea.settings import settings


logger = structlog.get_logger(__name__)

LANGUAGE_BY_EXTENSION = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".css": "css",
    ".scss": "css",
    ".html": "html",
    ".vue": "vue",
    ".sql": "sql",
    ".sh": "shell",
    ".md": "markdown",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
}
LARGEST_FILES_LIMIT = 10


class WorkspaceNotFoundError(Exception):
    pass


@dataclass
class ScannedFile:
    path: Path
    relative_path: str
    size: int
    depth: int

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def language(self) -> str | None:
        return LANGUAGE_BY_EXTENSION.get(self.extension)


def resolve_workspace(workspace_path: str | None) -> Path:
    if not workspace_path:
        raise WorkspaceNotFoundError("Workspace path is required")
    root = Path(workspace_path).expanduser()
    if not root.is_dir():
        raise WorkspaceNotFoundError(f"Workspace {workspace_path} does not exist or is not a directory")
    return root


def iter_files(
    root: Path,
    ignore_dirs: list[str] | None = None,
    max_files: int | None = None,
) -> Iterator[ScannedFile]:
    """Walk the workspace depth-first, skipping ignored directories"""
    ignored = set(settings.analysis_ignore_dirs if ignore_dirs is None else ignore_dirs)
    limit = settings.analysis_max_files if max_files is None else max_files

    count = 0
    for dir_path, dir_names, file_names in os.walk(root):
        dir_names[:] = sorted(d for d in dir_names if d not in ignored)
        for file_name in sorted(file_names):
            path = Path(dir_path) / file_name
            try:
                size = path.stat().st_size
            except OSError:
                continue
            relative = path.relative_to(root)
            yield ScannedFile(
                path=path,
                relative_path=relative.as_posix(),
                size=size,
                depth=len(relative.parts) - 1,
            )
            count += 1
            if count >= limit:
                logger.warning("workspace scan hit file limit", root=str(root), limit=limit)
                return


def count_lines(path: Path) -> int:
    try:
        with open(path, "rb") as f:
            return sum(1 for _ in f)
    except OSError:
        return 0


def scan_structure(root: Path) -> dict:
    files = list(iter_files(root))

    languages: Counter[str] = Counter()
    extensions: Counter[str] = Counter()
    total_lines = 0
    max_depth = 0
    directories = set()

    for scanned in files:
        extensions[scanned.extension or "(none)"] += 1
        max_depth = max(max_depth, scanned.depth)
        directories.add(str(Path(scanned.relative_path).parent))
        if scanned.language:
            lines = count_lines(scanned.path)
            languages[scanned.language] += lines
            total_lines += lines

    largest = sorted(files, key=lambda f: f.size, reverse=True)[:LARGEST_FILES_LIMIT]

    return {
        "total_files": len(files),
        "total_directories": len(directories - {"."}),
        "total_lines": total_lines,
        "total_size": sum(f.size for f in files),
        "max_depth": max_depth,
        "languages": dict(languages.most_common()),
        "extensions": dict(extensions.most_common()),
        "largest_files": [{"path": f.relative_path, "size": f.size} for f in largest],
    }
