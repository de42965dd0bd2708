"""
handoff Artifact Store - Filesystem-backed store of timestamped notes.

Layout under the store root:

    briefs/<YYYY-MM-DD>.md
    reports/<YYYY-MM-DD>-<HHMM>[-N].md
    plans/<tag-or-general>.md
    conventions.md
    architecture-decisions.md
    context-output.md

The directory is the only source of truth. Nothing is cached between
calls, so every list() reflects edits made by other processes (a sync
client, a human with an editor).
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from handoff.errors import (
    ArtifactNotFound,
    ArtifactUnreadable,
    InvalidCategory,
    StorageError,
    WriteCollision,
)

logger = logging.getLogger(__name__)

CONVENTIONS_ID = "conventions"
ARCHITECTURE_ID = "architecture-decisions"
CONTEXT_OUTPUT = "context-output.md"
MAX_DISAMBIGUATION_ATTEMPTS = 100

# 2025-01-09, 2025-01-09-1400, 2025-01-09-1400-2
_ID_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})(?:-(?P<hour>\d{2})(?P<minute>\d{2}))?(?:-(?P<seq>\d+))?$"
)


class Category(Enum):
    """Kinds of artifacts kept in the store."""

    BRIEF = "brief"
    REPORT = "report"
    PLAN = "plan"
    CONVENTION = "convention"
    ARCHITECTURE = "architecture"

    @classmethod
    def parse(cls, value: Union["Category", str]) -> "Category":
        """Coerce a string to a Category, raising InvalidCategory if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidCategory(f"Unknown artifact category: {value!r}")


_FOLDERS = {
    Category.BRIEF: "briefs",
    Category.REPORT: "reports",
    Category.PLAN: "plans",
}

# Categories that hold exactly one file at the store root
_CANONICAL = {
    Category.CONVENTION: CONVENTIONS_ID,
    Category.ARCHITECTURE: ARCHITECTURE_ID,
}


@dataclass
class ArtifactInfo:
    """Metadata for a stored artifact (no body)."""

    id: str
    category: Category
    created_at: datetime
    path: Path
    sequence: int = 0

    def sort_key(self):
        """Recency key: created_at, then disambiguator, then id."""
        return (self.created_at, self.sequence, self.id)


@dataclass
class Artifact:
    """A single timestamped document with its body."""

    id: str
    category: Category
    created_at: datetime
    body: str
    path: Path
    sequence: int = 0

    @classmethod
    def from_info(cls, info: ArtifactInfo, body: str) -> "Artifact":
        return cls(
            id=info.id,
            category=info.category,
            created_at=info.created_at,
            body=body,
            path=info.path,
            sequence=info.sequence,
        )


def parse_artifact_id(artifact_id: str) -> Optional[tuple]:
    """
    Extract (created_at, sequence) from a date-bearing id.

    Returns None when the id carries no parseable date.
    """
    match = _ID_PATTERN.match(artifact_id)
    if not match:
        return None
    try:
        day = datetime.strptime(match.group("date"), "%Y-%m-%d")
        if match.group("hour") is not None:
            day = day.replace(hour=int(match.group("hour")), minute=int(match.group("minute")))
    except ValueError:
        return None
    sequence = int(match.group("seq")) if match.group("seq") else 0
    return day, sequence


class ArtifactStore:
    """
    Read/write access to the artifact directory tree.

    Example:
        >>> store = ArtifactStore(Path("~/Drive/Context").expanduser())
        >>> info = store.write(Category.REPORT, "2025-01-09-1400", "# Report")
        >>> store.read(Category.REPORT, info.id).body
        '# Report'
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    # ── Paths ─────────────────────────────────────────────────────────────

    def category_dir(self, category: Union[Category, str]) -> Path:
        """Directory holding a category's files (the root for single-file categories)."""
        category = Category.parse(category)
        if category in _CANONICAL:
            return self.root
        return self.root / _FOLDERS[category]

    def path_for(self, category: Union[Category, str], artifact_id: str) -> Path:
        return self.category_dir(category) / f"{artifact_id}.md"

    @property
    def context_output_path(self) -> Path:
        return self.root / CONTEXT_OUTPUT

    def ensure_layout(self) -> None:
        """Create the category folders. Idempotent."""
        for folder in _FOLDERS.values():
            (self.root / folder).mkdir(parents=True, exist_ok=True)

    # ── Reading ───────────────────────────────────────────────────────────

    def list(self, category: Union[Category, str]) -> List[ArtifactInfo]:
        """
        Enumerate artifacts of a category, most recent first.

        Files that vanish during the scan are skipped.
        """
        category = Category.parse(category)

        if category in _CANONICAL:
            candidates = [self.path_for(category, _CANONICAL[category])]
        else:
            directory = self.category_dir(category)
            if not directory.is_dir():
                return []
            candidates = list(directory.glob("*.md"))

        infos = []
        for path in candidates:
            info = self._describe(category, path)
            if info is not None:
                infos.append(info)

        infos.sort(key=ArtifactInfo.sort_key, reverse=True)
        return infos

    def latest(self, category: Union[Category, str]) -> Optional[ArtifactInfo]:
        """Most recent artifact of a category, recomputed by a fresh scan."""
        infos = self.list(category)
        return infos[0] if infos else None

    def read(self, category: Union[Category, str], artifact_id: str) -> Artifact:
        """
        Read an artifact's body.

        Raises ArtifactNotFound if it is gone and ArtifactUnreadable if its
        bytes are not UTF-8 or the OS refuses the read.
        """
        category = Category.parse(category)
        path = self.path_for(category, artifact_id)
        try:
            body = path.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError):
            raise ArtifactNotFound(category.value, artifact_id)
        except UnicodeDecodeError as e:
            raise ArtifactUnreadable(category.value, artifact_id, f"not valid UTF-8 ({e.reason})")
        except OSError as e:
            raise ArtifactUnreadable(category.value, artifact_id, e.strerror or str(e))

        info = self._describe(category, path)
        if info is None:
            raise ArtifactNotFound(category.value, artifact_id)
        return Artifact.from_info(info, body)

    def exists(self, category: Union[Category, str], artifact_id: str) -> bool:
        return self.path_for(category, artifact_id).is_file()

    # ── Writing ───────────────────────────────────────────────────────────

    def create(self, category: Union[Category, str], artifact_id: str, body: str) -> ArtifactInfo:
        """
        Create an artifact only if its id is free.

        Uses an exclusive open so two writers cannot both win. Raises
        WriteCollision if the id is taken.
        """
        category = Category.parse(category)
        path = self.path_for(category, artifact_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "x", encoding="utf-8", newline="") as f:
                f.write(body)
        except FileExistsError:
            raise WriteCollision(category.value, artifact_id)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")

        self._verify(path, body)
        info = self._describe(category, path)
        if info is None:
            raise StorageError(f"Artifact disappeared right after being written: {path}")
        logger.debug("Created %s artifact %s", category.value, artifact_id)
        return info

    def write(self, category: Union[Category, str], suggested_id: str, body: str) -> ArtifactInfo:
        """
        Write a new artifact, never overwriting an existing one.

        On collision the id gets a disambiguator (-2, -3, ...). Gives up
        with StorageError after MAX_DISAMBIGUATION_ATTEMPTS.
        """
        category = Category.parse(category)
        if category in _CANONICAL:
            # Single canonical file; there is nothing to disambiguate to.
            return self.create(category, _CANONICAL[category], body)

        candidate = suggested_id
        for attempt in range(1, MAX_DISAMBIGUATION_ATTEMPTS + 1):
            try:
                return self.create(category, candidate, body)
            except WriteCollision:
                logger.debug("Id %s taken, trying next disambiguator", candidate)
                candidate = f"{suggested_id}-{attempt + 1}"

        raise StorageError(
            f"Could not find a free id for {category.value} {suggested_id!r} "
            f"after {MAX_DISAMBIGUATION_ATTEMPTS} attempts"
        )

    def write_context(self, text: str) -> Path:
        """Replace context-output.md atomically (temp file + rename)."""
        target = self.context_output_path
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".context-", suffix=".tmp", dir=self.root)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, target)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {target}: {e}")
        return target

    # ── Internals ─────────────────────────────────────────────────────────

    def _describe(self, category: Category, path: Path) -> Optional[ArtifactInfo]:
        """Build metadata for a file, or None if it no longer exists."""
        artifact_id = path.stem
        parsed = parse_artifact_id(artifact_id)
        if parsed is not None:
            if not path.is_file():
                return None
            created_at, sequence = parsed
        else:
            try:
                created_at = datetime.fromtimestamp(path.stat().st_mtime)
            except FileNotFoundError:
                return None
            sequence = 0
        return ArtifactInfo(
            id=artifact_id,
            category=category,
            created_at=created_at,
            path=path,
            sequence=sequence,
        )

    def _verify(self, path: Path, body: str) -> None:
        """Read back what was just written; a mismatch means another writer won."""
        try:
            with open(path, encoding="utf-8", newline="") as f:
                written = f.read()
        except OSError as e:
            raise StorageError(f"Could not verify {path}: {e}")
        if written != body:
            raise StorageError(f"Content of {path} changed right after writing it")
