"""
handoff Selector - Decide which artifacts are relevant "now".

A pure function over a metadata snapshot. It never touches the
filesystem and never reads the clock; the caller passes both in.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from handoff.store.artifacts import ArtifactInfo, Category

GENERAL_PLAN_ID = "general"


@dataclass
class SelectionPolicy:
    """Recency limits applied during selection."""

    report_window_days: float = 3
    max_reports: int = 10


@dataclass
class Selection:
    """The artifacts chosen for one aggregation."""

    brief: Optional[ArtifactInfo] = None
    feature_plan: Optional[ArtifactInfo] = None
    general_plan: Optional[ArtifactInfo] = None
    convention: Optional[ArtifactInfo] = None
    architecture: Optional[ArtifactInfo] = None
    reports: List[ArtifactInfo] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            [
                self.brief,
                self.feature_plan,
                self.general_plan,
                self.convention,
                self.architecture,
                self.reports,
            ]
        )


def _newest_first(infos: List[ArtifactInfo]) -> List[ArtifactInfo]:
    return sorted(infos, key=ArtifactInfo.sort_key, reverse=True)


def _plan_matches(info: ArtifactInfo, feature: str) -> bool:
    return info.id in (feature, f"plan-{feature}")


def select(
    snapshot: Dict[Category, List[ArtifactInfo]],
    now: datetime,
    feature: Optional[str] = None,
    policy: Optional[SelectionPolicy] = None,
) -> Selection:
    """
    Pick the latest brief, the relevant plans, the single-file artifacts
    and recent reports.

    Args:
        snapshot: Metadata per category. Missing categories count as empty.
        now: Reference time for the report window.
        feature: Optional feature tag used to pick a feature plan.
        policy: Window and cap for reports.

    Returns:
        A Selection. Empty categories simply leave their slot empty.
    """
    policy = policy or SelectionPolicy()
    selection = Selection()

    briefs = _newest_first(snapshot.get(Category.BRIEF, []))
    if briefs:
        selection.brief = briefs[0]

    plans = _newest_first(snapshot.get(Category.PLAN, []))
    if feature:
        selection.feature_plan = next((p for p in plans if _plan_matches(p, feature)), None)
    if selection.feature_plan is not None:
        selection.general_plan = next(
            (
                p
                for p in plans
                if p.id == GENERAL_PLAN_ID and p.id != selection.feature_plan.id
            ),
            None,
        )
    elif plans:
        selection.general_plan = plans[0]

    conventions = _newest_first(snapshot.get(Category.CONVENTION, []))
    if conventions:
        selection.convention = conventions[0]

    decisions = _newest_first(snapshot.get(Category.ARCHITECTURE, []))
    if decisions:
        selection.architecture = decisions[0]

    cutoff = now - timedelta(days=policy.report_window_days)
    recent = [r for r in snapshot.get(Category.REPORT, []) if r.created_at >= cutoff]
    selection.reports = _newest_first(recent)[: max(policy.max_reports, 0)]

    return selection
