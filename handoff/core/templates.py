"""
handoff Templates - Typed documents rendered from named fields.

Values are joined into the output as-is and never re-expanded, so text
that happens to contain markup or placeholder syntax cannot leak into
the structure of the document.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

DEFAULT_FOCUS_ITEMS = [
    "To be determined based on current state",
    "Review implementation reports",
    "Plan next features",
]

DEFAULT_NOTES = [
    "Keep test coverage high",
    "Update implementation reports frequently",
]

DEFAULT_CONVENTIONS = """# Project Conventions

## Code Style
- Use dependency injection for services
- Keep data access behind a repository layer
- Store all timestamps in UTC
- Log every call to an external API

## Testing
- Aim for 80%+ test coverage
- Follow the Arrange, Act, Assert pattern
- Mock external dependencies

## Git Commits
- Use the conventional commits format
- Reference issue numbers
- Keep commits focused and atomic

## Security
- Never log sensitive data
- Encrypt data at rest
- Use parameterized queries
- Validate all inputs
"""

_BACKTICK_RUN = re.compile(r"`+")


def fenced(text: str, info: str = "") -> str:
    """Wrap text in a code fence longer than any backtick run inside it."""
    longest = max((len(m) for m in _BACKTICK_RUN.findall(text)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}{info}\n{text.rstrip()}\n{fence}"


@dataclass
class BriefTemplate:
    """Fields of a daily brief."""

    date: str
    generated_at: str
    status: Optional[str] = None
    previous_report: Optional[str] = None
    focus_items: List[str] = field(default_factory=lambda: list(DEFAULT_FOCUS_ITEMS))
    blockers: List[str] = field(default_factory=lambda: ["None identified"])
    notes: List[str] = field(default_factory=lambda: list(DEFAULT_NOTES))

    @classmethod
    def for_time(cls, now: datetime, **kwargs) -> "BriefTemplate":
        return cls(
            date=now.strftime("%Y-%m-%d"),
            generated_at=now.strftime("%H:%M:%S"),
            **kwargs,
        )

    def render(self) -> str:
        lines = [
            f"# Daily Development Brief - {self.date}",
            "",
            f"Generated at: {self.generated_at}",
            "",
            "## Overview",
            "",
            "This brief captures the current state of the project to provide "
            "context for today's development session.",
            "",
        ]

        if self.status and self.status.strip():
            lines += ["## Current Status", "", fenced(self.status), ""]

        if self.previous_report:
            lines += [
                "## Previous Progress",
                "",
                f"Latest implementation report: `{self.previous_report}`",
                "",
            ]

        lines += ["## Focus Areas for Today", ""]
        lines += [f"{i}. [ ] {item}" for i, item in enumerate(self.focus_items, 1)]
        lines += ["", "## Blocking Issues", ""]
        lines += [f"- {item}" for item in self.blockers]
        lines += ["", "## Notes", ""]
        lines += [f"- {item}" for item in self.notes]
        return "\n".join(lines) + "\n"


@dataclass
class ContextHeader:
    """Preamble of the composed context document."""

    generated_at: datetime
    feature: Optional[str] = None

    def render(self) -> str:
        return (
            "# DEVELOPMENT CONTEXT\n"
            "\n"
            f"Generated: {self.generated_at.strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"Feature Focus: {self.feature or 'general'}\n"
            "\n"
            "---\n"
            "\n"
        )


DEFAULT_INSTRUCTIONS = [
    "Read this entire context document",
    "Focus on the feature named in the header",
    "Follow all project conventions",
    "Keep test coverage high",
    "Handle errors explicitly and add logging where it helps",
    "Update the relevant documentation",
    "Record an implementation report when the session ends",
]


@dataclass
class ContextFooter:
    """Closing instructions appended after the composed sections."""

    instructions: List[str] = field(default_factory=lambda: list(DEFAULT_INSTRUCTIONS))

    def render(self) -> str:
        if not self.instructions:
            return ""
        lines = ["## Instructions", ""]
        lines += [f"{i}. {item}" for i, item in enumerate(self.instructions, 1)]
        lines += ["", "---", "", "*Generated by handoff aggregate-context*", ""]
        return "\n".join(lines)
