"""Tests for the budget-aware composer."""

import pytest

from handoff.core.composer import (
    TRUNCATION_MARKER,
    Priority,
    Section,
    SectionStatus,
    WarningKind,
    chars_for_tokens,
    compose,
    estimate_tokens,
    render_section,
)


def corpus():
    """Fixture corpus with one section per priority level."""
    return [
        Section(Priority.REPORT, "Report 2025-01-09-1400", "## Completed Tasks\n- login\n" * 8, "r1.md"),
        Section(Priority.BRIEF, "Today's Daily Brief", "# Brief\n\n1. [ ] ship auth\n" * 5, "b.md"),
        Section(Priority.CONVENTIONS, "Project Conventions", "- UTC everywhere\n" * 10, "c.md"),
        Section(Priority.FEATURE_PLAN, "Feature Plan: auth", "- token refresh\n" * 6, "auth.md"),
        Section(Priority.REPORT, "Report 2025-01-08-0900", "- earlier work\n" * 8, "r0.md"),
        Section(Priority.GENERAL_PLAN, "Current Development Plan", "- roadmap item\n" * 6, "g.md"),
    ]


class TestRenderSection:
    """Tests for section rendering."""

    def test_layout(self):
        """Test the rendered section layout."""
        text = render_section(Section(0, "Title", "body\n", "file.md"))
        assert text == "## Title\n\nSource: `file.md`\n\nbody\n\n---\n\n"

    def test_without_source(self):
        """Test rendering a section without a source line."""
        text = render_section(Section(0, "Title", "body"))
        assert text == "## Title\n\nbody\n\n---\n\n"


class TestCompose:
    """Tests for composition under a budget."""

    def test_everything_fits(self):
        """Test composing when the budget is ample."""
        result = compose(corpus(), 100000, header="# HEADER\n\n")
        assert result.text.startswith("# HEADER\n\n")
        assert result.warnings == []
        assert result.dropped == []
        assert len(result.included) == 6

    def test_priority_order(self):
        """Test that sections appear in priority order."""
        result = compose(corpus(), 100000)
        assert result.included == [
            "Today's Daily Brief",
            "Feature Plan: auth",
            "Current Development Plan",
            "Project Conventions",
            "Report 2025-01-09-1400",
            "Report 2025-01-08-0900",
        ]
        positions = [result.text.index(f"## {title}") for title in result.included]
        assert positions == sorted(positions)

    def test_sections_within_budget(self):
        """Test that sections never exceed the budget."""
        for budget in (10, 100, 250, 1000, 100000):
            result = compose(corpus(), budget, header="# HEADER\n")
            assert len(result.text) - len("# HEADER\n") <= budget

    def test_deterministic(self):
        """Test that composing twice gives the same output."""
        first = compose(corpus(), 700, header="h\n")
        second = compose(corpus(), 700, header="h\n")
        assert first.text == second.text
        assert first.outcomes == second.outcomes

    def test_truncated_section_then_drops(self):
        """Test truncation of one section and dropping of the rest."""
        sections = corpus()
        full = [render_section(s) for s in sorted(sections, key=lambda s: s.priority)]
        # Room for the brief and part of the feature plan
        budget = len(full[0]) + len(full[1]) // 2 + 40

        result = compose(sections, budget)

        statuses = [o.status for o in result.outcomes]
        assert statuses[0] is SectionStatus.INCLUDED
        assert statuses[1] is SectionStatus.TRUNCATED
        assert all(s is SectionStatus.DROPPED for s in statuses[2:])
        assert TRUNCATION_MARKER in result.text
        kinds = [w.kind for w in result.warnings]
        assert kinds.count(WarningKind.SECTION_TRUNCATED) == 1
        assert kinds.count(WarningKind.SECTION_DROPPED) == 4

    def test_truncation_on_line_boundary(self):
        """Test that truncation keeps whole lines."""
        body = "".join(f"line {i:02d} of the plan\n" for i in range(40))
        section = Section(Priority.BRIEF, "Brief", body, "b.md")
        budget = len(render_section(Section(Priority.BRIEF, "Brief", "", "b.md"))) + 200

        result = compose([section], budget)

        kept = result.text.split("Source: `b.md`\n\n", 1)[1].split(TRUNCATION_MARKER)[0]
        for line in kept.strip("\n").split("\n"):
            assert line.startswith("line ") and line.endswith("of the plan")

    def test_single_section_over_budget(self):
        """Test a top section larger than the whole budget."""
        section = Section(Priority.BRIEF, "Today's Daily Brief", "x" * 5000, "b.md")
        result = compose([section], 300)

        assert result.text
        assert len(result.text) <= 300
        assert result.outcomes[0].status is SectionStatus.TRUNCATED
        assert result.warnings[0].kind is WarningKind.BUDGET_EXCEEDED_BY_SINGLE_SECTION

    def test_tiny_budget_still_produces_output(self):
        """Test that a tiny budget still yields text."""
        result = compose(corpus(), 10)
        assert 0 < len(result.text) <= 10
        assert result.included == ["Today's Daily Brief"]
        assert result.warnings[0].kind is WarningKind.BUDGET_EXCEEDED_BY_SINGLE_SECTION

    def test_no_sections(self):
        """Test composing with no sections."""
        result = compose([], 100, header="# H\n")
        assert result.text == "# H\n"
        assert result.outcomes == []

    def test_footer_not_counted(self):
        """Test that the footer is appended outside the budget."""
        footer = "## Instructions\n\n1. Read everything\n"
        result = compose(corpus(), 300, header="# H\n", footer=footer)

        assert result.text.startswith("# H\n")
        assert result.text.endswith(footer)
        assert result.sections_chars <= 300
        assert result.sections_chars == len(result.text) - len("# H\n") - len(footer)

    def test_architecture_and_project_files_order(self):
        """Test that architecture decisions precede reports and project files come last."""
        sections = [
            Section(Priority.PROJECT_FILE, "Project File: app.py", "print()\n", "app.py"),
            Section(Priority.REPORT, "Report", "- done\n", "r.md"),
            Section(Priority.ARCHITECTURE, "Architectural Decisions", "- ADR 1\n", "a.md"),
            Section(Priority.CONVENTIONS, "Project Conventions", "- UTC\n", "c.md"),
        ]
        result = compose(sections, 100000)
        assert result.included == [
            "Project Conventions",
            "Architectural Decisions",
            "Report",
            "Project File: app.py",
        ]

    @pytest.mark.parametrize("budget", [10, 100, 1000, 100000])
    def test_dropped_sections_are_lowest_priority_suffix(self, budget):
        """Test that dropped sections form the lowest-priority suffix."""
        result = compose(corpus(), budget)
        statuses = [o.status for o in result.outcomes]
        if SectionStatus.DROPPED in statuses:
            first_dropped = statuses.index(SectionStatus.DROPPED)
            assert all(s is SectionStatus.DROPPED for s in statuses[first_dropped:])
        # A truncated section is always the last one present
        present = [s for s in statuses if s is not SectionStatus.DROPPED]
        assert SectionStatus.TRUNCATED not in present[:-1]

    def test_budget_monotonicity(self):
        """Test that a smaller budget never includes more sections."""
        budgets = [100000, 1000, 100, 10]
        included = [set(compose(corpus(), b).included) for b in budgets]
        for larger, smaller in zip(included, included[1:]):
            assert smaller <= larger

    def test_budget_monotonicity_fine_grained(self):
        """Test monotonicity in small budget steps."""
        previous = None
        for budget in range(1000, 0, -7):
            current = set(compose(corpus(), budget).included)
            if previous is not None:
                assert current <= previous
            previous = current


class TestTokens:
    """Tests for token conversion."""

    def test_chars_for_tokens(self):
        """Test converting tokens to characters."""
        assert chars_for_tokens(1000) == 4000

    def test_estimate_tokens(self):
        """Test estimating tokens from text."""
        assert estimate_tokens("x" * 41) == 10
