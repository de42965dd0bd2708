"""
handoff Context Aggregator - Scan, select, read and compose.

Flow of one aggregation:
1. Scan every category (fresh directory listing, no cache)
2. Select what is relevant for "now"
3. Read selected bodies, skipping artifacts that vanished meanwhile or
   cannot be decoded
4. Fall back to default conventions if none exist
5. Add any requested project files at the lowest priority
6. Compose under the budget and hand back the text plus warnings
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from handoff.core.composer import (
    ComposeResult,
    ContextWarning,
    Priority,
    Section,
    SectionOutcome,
    WarningKind,
    compose,
)
from handoff.core.project_files import MAX_FILE_SIZE, collect_project_files
from handoff.core.recorder import SessionRecorder
from handoff.core.selector import Selection, SelectionPolicy, select
from handoff.core.templates import DEFAULT_CONVENTIONS, ContextFooter, ContextHeader, fenced
from handoff.errors import ArtifactNotFound, ArtifactUnreadable
from handoff.store.artifacts import Artifact, ArtifactInfo, ArtifactStore, Category

logger = logging.getLogger(__name__)

DEFAULT_BUDGET_CHARS = 24000
DEFAULT_REPORT_TAIL_LINES = 50


@dataclass
class AggregationResult:
    """Outcome of one aggregate-context run."""

    text: str
    budget_chars: int
    feature: Optional[str] = None
    outcomes: List[SectionOutcome] = field(default_factory=list)
    warnings: List[ContextWarning] = field(default_factory=list)
    output_path: Optional[Path] = None
    sections_chars: int = 0

    @classmethod
    def from_compose(
        cls,
        composed: ComposeResult,
        feature: Optional[str],
        warnings: List[ContextWarning],
    ) -> "AggregationResult":
        return cls(
            text=composed.text,
            budget_chars=composed.budget_chars,
            feature=feature,
            outcomes=composed.outcomes,
            warnings=warnings + composed.warnings,
            sections_chars=composed.sections_chars,
        )

    @property
    def stats(self) -> dict:
        """Size of the composed document."""
        return {
            "chars": len(self.text),
            "words": len(self.text.split()),
            "lines": self.text.count("\n"),
        }


def tail_lines(text: str, count: int) -> str:
    """Keep the last count lines of text (all of it when count <= 0)."""
    if count <= 0:
        return text
    lines = text.splitlines()
    if len(lines) <= count:
        return text
    return "\n".join(lines[-count:]) + "\n"


class ContextAggregator:
    """
    Builds the context document from the artifact store.

    Holds only configuration; every call re-reads the store.
    """

    def __init__(
        self,
        store: ArtifactStore,
        policy: Optional[SelectionPolicy] = None,
        budget_chars: int = DEFAULT_BUDGET_CHARS,
        report_tail_lines: int = DEFAULT_REPORT_TAIL_LINES,
        recorder: Optional[SessionRecorder] = None,
        instructions: Optional[List[str]] = None,
        max_include_bytes: int = MAX_FILE_SIZE,
    ):
        self.store = store
        self.policy = policy or SelectionPolicy()
        self.budget_chars = budget_chars
        self.report_tail_lines = report_tail_lines
        self.recorder = recorder or SessionRecorder(store)
        self.footer = ContextFooter() if instructions is None else ContextFooter(instructions)
        self.max_include_bytes = max_include_bytes

    def snapshot(self) -> dict:
        """List every category once."""
        return {category: self.store.list(category) for category in Category}

    def aggregate(
        self,
        now: datetime,
        feature: Optional[str] = None,
        budget_chars: Optional[int] = None,
        include: Optional[List[str]] = None,
        project_dir: Optional[Path] = None,
    ) -> AggregationResult:
        """
        Select and compose the current context.

        Args:
            now: Reference time for the report window and the header.
            feature: Optional feature tag for plan selection.
            budget_chars: Overrides the configured budget.
            include: File name patterns to pull in from project_dir.
            project_dir: Tree searched for include patterns (default: cwd).

        Returns:
            AggregationResult (not yet written to disk).
        """
        budget = self.budget_chars if budget_chars is None else budget_chars
        selection = select(self.snapshot(), now, feature=feature, policy=self.policy)
        warnings: List[ContextWarning] = []
        sections = self._build_sections(selection, feature, warnings)
        if include:
            sections += self._project_sections(Path(project_dir or "."), include, warnings)

        header = ContextHeader(generated_at=now, feature=feature).render()
        composed = compose(sections, budget, header=header, footer=self.footer.render())
        result = AggregationResult.from_compose(composed, feature, warnings)
        logger.debug(
            "Composed %d sections, %d warnings", len(result.outcomes), len(result.warnings)
        )
        return result

    def write(self, result: AggregationResult) -> Path:
        """Persist the composed text to <root>/context-output.md."""
        result.output_path = self.store.write_context(result.text)
        logger.info("Wrote context to %s (%d chars)", result.output_path, len(result.text))
        return result.output_path

    def _build_sections(
        self,
        selection: Selection,
        feature: Optional[str],
        warnings: List[ContextWarning],
    ) -> List[Section]:
        sections: List[Section] = []

        brief = self._read(selection.brief, warnings)
        if brief is not None:
            sections.append(_section(Priority.BRIEF, "Today's Daily Brief", brief))

        plan = self._read(selection.feature_plan, warnings)
        if plan is not None:
            sections.append(_section(Priority.FEATURE_PLAN, f"Feature Plan: {feature}", plan))

        plan = self._read(selection.general_plan, warnings)
        if plan is not None:
            sections.append(_section(Priority.GENERAL_PLAN, "Current Development Plan", plan))

        sections.append(self._conventions_section(selection, warnings))

        decisions = self._read(selection.architecture, warnings)
        if decisions is not None and decisions.body.strip():
            sections.append(_section(Priority.ARCHITECTURE, "Architectural Decisions", decisions))

        for info in selection.reports:
            report = self._read(info, warnings)
            if report is None:
                continue
            body = tail_lines(report.body, self.report_tail_lines)
            sections.append(
                Section(
                    priority=Priority.REPORT,
                    title=f"Implementation Report {report.id}",
                    body=body,
                    source=report.path.name,
                )
            )
        return sections

    def _conventions_section(
        self, selection: Selection, warnings: List[ContextWarning]
    ) -> Section:
        conventions = self._read(selection.convention, warnings)
        if conventions is None and selection.convention is None:
            conventions = self.recorder.ensure_conventions()
        if conventions is None or not conventions.body.strip():
            # An unreadable file is left alone; the default stands in for it.
            return Section(Priority.CONVENTIONS, "Project Conventions", DEFAULT_CONVENTIONS)
        return _section(Priority.CONVENTIONS, "Project Conventions", conventions)

    def _project_sections(
        self, project_dir: Path, patterns: List[str], warnings: List[ContextWarning]
    ) -> List[Section]:
        scan = collect_project_files(project_dir, patterns, self.max_include_bytes)
        for pattern in scan.unmatched:
            warnings.append(
                ContextWarning(
                    WarningKind.INCLUDE_UNMATCHED,
                    f"No project files match {pattern!r} under {project_dir}",
                )
            )
        for relative, reason in scan.skipped:
            logger.warning("Skipping project file %s: %s", relative, reason)
            warnings.append(
                ContextWarning(
                    WarningKind.PROJECT_FILE_SKIPPED,
                    f"Skipped project file {relative}: {reason}",
                    relative,
                )
            )
        return [
            Section(
                priority=Priority.PROJECT_FILE,
                title=f"Project File: {f.relative}",
                body=fenced(f.body),
                source=f.relative,
            )
            for f in scan.files
        ]

    def _read(
        self, info: Optional[ArtifactInfo], warnings: List[ContextWarning]
    ) -> Optional[Artifact]:
        if info is None:
            return None
        try:
            return self.store.read(info.category, info.id)
        except ArtifactNotFound as e:
            logger.warning("%s, skipping it", e)
            warnings.append(
                ContextWarning(WarningKind.ARTIFACT_MISSING, f"Skipped: {e}", info.id)
            )
        except ArtifactUnreadable as e:
            logger.warning("%s, skipping it", e)
            warnings.append(
                ContextWarning(WarningKind.ARTIFACT_UNREADABLE, f"Skipped: {e}", info.id)
            )
        return None


def _section(priority: Priority, title: str, artifact: Artifact) -> Section:
    return Section(priority=priority, title=title, body=artifact.body, source=artifact.path.name)
