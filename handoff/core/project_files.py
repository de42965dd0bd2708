"""
handoff Project Files - Pull selected project files into the context.

Patterns are shell-style. A pattern without a slash matches file names
anywhere in the tree; a pattern with a slash matches the path relative
to the project directory. VCS and dependency folders are never entered.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set, Tuple

logger = logging.getLogger(__name__)

IGNORE_DIRS = {
    ".git", ".hg", ".svn",
    "__pycache__", ".tox", ".mypy_cache", ".pytest_cache",
    "venv", ".venv",
    "node_modules", "bower_components",
}

MAX_FILE_SIZE = 50_000  # bytes


@dataclass
class ProjectFile:
    """A matched file with its text."""

    relative: str
    pattern: str
    body: str


@dataclass
class ProjectFileScan:
    """Outcome of matching include patterns against a project tree."""

    files: List[ProjectFile] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (relative, reason)
    unmatched: List[str] = field(default_factory=list)


def _walk(project_dir: Path) -> List[str]:
    """Relative POSIX paths of every file outside ignored folders, sorted."""
    found = []
    for root, dirs, filenames in os.walk(project_dir):
        # Prune ignored directories in-place
        dirs[:] = sorted(d for d in dirs if d not in IGNORE_DIRS)
        for name in filenames:
            found.append((Path(root) / name).relative_to(project_dir).as_posix())
    return sorted(found)


def _matches(relative: str, pattern: str) -> bool:
    if "/" in pattern:
        return fnmatch.fnmatchcase(relative, pattern)
    return fnmatch.fnmatchcase(relative.rsplit("/", 1)[-1], pattern)


def collect_project_files(
    project_dir: Path,
    patterns: List[str],
    max_file_size: int = MAX_FILE_SIZE,
) -> ProjectFileScan:
    """
    Read the files matching patterns, in pattern order.

    A file matched by several patterns is included once, under the first.
    Files that are too large, not UTF-8 or unreadable are skipped and
    reported in the scan.
    """
    scan = ProjectFileScan()
    if not patterns:
        return scan

    project_dir = Path(project_dir)
    candidates = _walk(project_dir)
    seen: Set[str] = set()

    for pattern in patterns:
        matched = [rel for rel in candidates if _matches(rel, pattern)]
        if not matched:
            scan.unmatched.append(pattern)
            continue

        for relative in matched:
            if relative in seen:
                continue
            seen.add(relative)
            path = project_dir / relative
            try:
                size = path.stat().st_size
                if size > max_file_size:
                    scan.skipped.append((relative, f"{size} bytes exceeds {max_file_size}"))
                    continue
                body = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                scan.skipped.append((relative, "not valid UTF-8"))
                continue
            except OSError as e:
                scan.skipped.append((relative, e.strerror or str(e)))
                continue
            scan.files.append(ProjectFile(relative=relative, pattern=pattern, body=body))

    logger.debug(
        "Matched %d project files (%d skipped, %d patterns unmatched)",
        len(scan.files),
        len(scan.skipped),
        len(scan.unmatched),
    )
    return scan
