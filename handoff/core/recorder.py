"""
handoff Session Recorder - Materialize briefs, reports and conventions.

Every command reads the store, writes one file, and exits. The recorder
keeps no state of its own.
"""

import logging
from datetime import datetime
from typing import List, Optional

from handoff.core.templates import (
    DEFAULT_CONVENTIONS,
    DEFAULT_FOCUS_ITEMS,
    DEFAULT_NOTES,
    BriefTemplate,
)
from handoff.errors import ArtifactNotFound, EmptyReport, WriteCollision
from handoff.store.artifacts import CONVENTIONS_ID, Artifact, ArtifactStore, Category

logger = logging.getLogger(__name__)


def brief_id(now: datetime) -> str:
    return now.strftime("%Y-%m-%d")


def report_id(now: datetime) -> str:
    return now.strftime("%Y-%m-%d-%H%M")


class SessionRecorder:
    """
    Creates artifacts with canonical, collision-free ids.

    Example:
        >>> recorder = SessionRecorder(ArtifactStore(root))
        >>> brief = recorder.start_session(datetime.now())
        >>> report = recorder.record_report(datetime.now(), "## Completed Tasks\\n- auth")
    """

    def __init__(
        self,
        store: ArtifactStore,
        focus_items: Optional[List[str]] = None,
        notes: Optional[List[str]] = None,
    ):
        self.store = store
        self.focus_items = list(focus_items) if focus_items else list(DEFAULT_FOCUS_ITEMS)
        self.notes = list(notes) if notes else list(DEFAULT_NOTES)

    def start_session(self, now: datetime, status_text: Optional[str] = None) -> Artifact:
        """
        Create today's brief, or return it unchanged if it already exists.

        Args:
            now: Time of the session start; the brief id is its date.
            status_text: Opaque status summary (e.g. VCS status) to embed.

        Returns:
            The brief for now's date.
        """
        artifact_id = brief_id(now)
        if self.store.exists(Category.BRIEF, artifact_id):
            existing = self._read_existing(Category.BRIEF, artifact_id)
            if existing is not None:
                logger.info("Brief for %s already exists, leaving it untouched", artifact_id)
                return existing

        latest_report = self.store.latest(Category.REPORT)
        template = BriefTemplate.for_time(
            now,
            status=status_text,
            previous_report=latest_report.id if latest_report else None,
            focus_items=self.focus_items,
            notes=self.notes,
        )
        body = template.render()

        try:
            info = self.store.create(Category.BRIEF, artifact_id, body)
        except WriteCollision:
            # Someone else started the session between our check and create.
            return self.store.read(Category.BRIEF, artifact_id)

        logger.info("Created brief %s", info.id)
        return Artifact.from_info(info, body)

    def record_report(self, now: datetime, body: str) -> Artifact:
        """
        Append a new report. Same-minute calls get disambiguated ids.

        Raises:
            EmptyReport: If body is empty.
        """
        if not body or not body.strip():
            raise EmptyReport("Report body is empty")

        info = self.store.write(Category.REPORT, report_id(now), body)
        logger.info("Recorded report %s", info.id)
        return Artifact.from_info(info, body)

    def ensure_conventions(self) -> Artifact:
        """Return the conventions artifact, persisting the default if it is missing."""
        existing = self._read_existing(Category.CONVENTION, CONVENTIONS_ID)
        if existing is not None:
            return existing

        try:
            info = self.store.create(Category.CONVENTION, CONVENTIONS_ID, DEFAULT_CONVENTIONS)
        except WriteCollision:
            existing = self._read_existing(Category.CONVENTION, CONVENTIONS_ID)
            if existing is not None:
                return existing
            raise

        logger.info("No conventions found, wrote the default to %s", info.path)
        return Artifact.from_info(info, DEFAULT_CONVENTIONS)

    def _read_existing(self, category: Category, artifact_id: str) -> Optional[Artifact]:
        try:
            return self.store.read(category, artifact_id)
        except ArtifactNotFound:
            return None
