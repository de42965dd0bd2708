"""
handoff Composer - Render prioritised sections under a size budget.

Sections are accumulated in priority order. The first one that does not
fit is cut back to a line boundary and marked as truncated; everything
after it is dropped. Output depends only on the inputs: no clock, no
randomness.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional

CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "[... truncated to fit the context budget ...]"


class Priority(IntEnum):
    """Section priority, lower value is more important."""

    BRIEF = 0
    FEATURE_PLAN = 1
    GENERAL_PLAN = 2
    CONVENTIONS = 3
    ARCHITECTURE = 4
    REPORT = 5
    PROJECT_FILE = 6


class SectionStatus(Enum):
    INCLUDED = "included"
    TRUNCATED = "truncated"
    DROPPED = "dropped"


class WarningKind(Enum):
    BUDGET_EXCEEDED_BY_SINGLE_SECTION = "budget_exceeded_by_single_section"
    SECTION_TRUNCATED = "section_truncated"
    SECTION_DROPPED = "section_dropped"
    ARTIFACT_MISSING = "artifact_missing"
    ARTIFACT_UNREADABLE = "artifact_unreadable"
    PROJECT_FILE_SKIPPED = "project_file_skipped"
    INCLUDE_UNMATCHED = "include_unmatched"


@dataclass
class Section:
    """One block of the context document."""

    priority: int
    title: str
    body: str
    source: str = ""


@dataclass
class ContextWarning:
    """Something the operator should know about the composed context."""

    kind: WarningKind
    message: str
    section: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class SectionOutcome:
    title: str
    source: str
    status: SectionStatus
    chars: int = 0


@dataclass
class ComposeResult:
    """Composed document plus a record of what made it in."""

    text: str
    budget_chars: int
    outcomes: List[SectionOutcome] = field(default_factory=list)
    warnings: List[ContextWarning] = field(default_factory=list)
    sections_chars: int = 0

    @property
    def included(self) -> List[str]:
        """Titles of sections present in the output, truncated or not."""
        return [o.title for o in self.outcomes if o.status is not SectionStatus.DROPPED]

    @property
    def dropped(self) -> List[str]:
        return [o.title for o in self.outcomes if o.status is SectionStatus.DROPPED]

    @property
    def truncated(self) -> List[str]:
        return [o.title for o in self.outcomes if o.status is SectionStatus.TRUNCATED]


def chars_for_tokens(tokens: int) -> int:
    """Convert a token budget into a character budget."""
    return tokens * CHARS_PER_TOKEN


def estimate_tokens(text: str) -> int:
    return len(text) // CHARS_PER_TOKEN


def render_section(section: Section, body: Optional[str] = None) -> str:
    """Render a section with its title, source line and separator."""
    body = section.body if body is None else body
    parts = [f"## {section.title}", ""]
    if section.source:
        parts += [f"Source: `{section.source}`", ""]
    parts.append(body.rstrip("\n"))
    parts += ["", "---", "", ""]
    return "\n".join(parts)


def _cut_to_line(text: str, limit: int) -> str:
    """Longest prefix of text within limit, ending on a line boundary if possible."""
    if len(text) <= limit:
        return text
    if limit <= 0:
        return ""
    if text[limit] == "\n":
        return text[:limit]
    cut = text[:limit]
    newline = cut.rfind("\n")
    if newline > 0:
        return cut[:newline]
    return cut


def _truncate(section: Section, space: int) -> Optional[str]:
    """
    Fit a section into space chars with a truncation marker.

    Returns None when not even the frame and marker fit.
    """
    marker_only = render_section(section, TRUNCATION_MARKER)
    if len(marker_only) > space:
        return None

    # +1 for the newline between the kept body and the marker
    room = space - len(marker_only) - 1
    kept = _cut_to_line(section.body.rstrip("\n"), room).rstrip("\n") if room > 0 else ""
    if not kept:
        return marker_only
    return render_section(section, f"{kept}\n{TRUNCATION_MARKER}")


def _hard_cut(rendered: str, space: int) -> str:
    """Last resort for the top section: keep whatever prefix fits."""
    if space <= 0:
        return ""
    cut = rendered[:space]
    newline = cut.rfind("\n")
    if newline > 0:
        return cut[: newline + 1]
    return cut


def compose(
    sections: List[Section],
    budget_chars: int,
    header: str = "",
    footer: str = "",
) -> ComposeResult:
    """
    Render sections into one document without exceeding budget_chars.

    Args:
        sections: Sections in any order; sorted by priority (stable).
        budget_chars: Ceiling for the rendered sections. Header and
            footer are not counted.
        header: Preamble placed before the sections.
        footer: Closing text placed after the sections.

    Returns:
        ComposeResult with the text, per-section outcomes and warnings.
    """
    ordered = sorted(sections, key=lambda s: s.priority)
    result = ComposeResult(text="", budget_chars=budget_chars)
    parts: List[str] = []
    used = 0
    stopped = False

    for section in ordered:
        if stopped:
            _drop(result, section)
            continue

        full = render_section(section)
        if used + len(full) <= budget_chars:
            parts.append(full)
            used += len(full)
            result.outcomes.append(
                SectionOutcome(section.title, section.source, SectionStatus.INCLUDED, len(full))
            )
            continue

        stopped = True
        space = budget_chars - used
        first = not parts
        text = _truncate(section, space)
        if text is None and first:
            text = _hard_cut(full, space)

        if not text:
            _drop(result, section)
            continue

        parts.append(text)
        used += len(text)
        result.outcomes.append(
            SectionOutcome(section.title, section.source, SectionStatus.TRUNCATED, len(text))
        )
        if first:
            result.warnings.append(
                ContextWarning(
                    WarningKind.BUDGET_EXCEEDED_BY_SINGLE_SECTION,
                    f"'{section.title}' alone needs {len(full)} chars but the budget is "
                    f"{budget_chars}; it was truncated",
                    section.title,
                )
            )
        else:
            result.warnings.append(
                ContextWarning(
                    WarningKind.SECTION_TRUNCATED,
                    f"'{section.title}' truncated to {len(text)} of {len(full)} chars",
                    section.title,
                )
            )

    result.text = header + "".join(parts) + footer
    result.sections_chars = used
    return result


def _drop(result: ComposeResult, section: Section) -> None:
    result.outcomes.append(SectionOutcome(section.title, section.source, SectionStatus.DROPPED))
    result.warnings.append(
        ContextWarning(
            WarningKind.SECTION_DROPPED,
            f"'{section.title}' dropped: context budget exhausted",
            section.title,
        )
    )
