"""
handoff core module.

Selection, composition and session recording on top of the artifact store.
"""

from handoff.core.aggregator import AggregationResult, ContextAggregator
from handoff.core.composer import ComposeResult, Section, compose
from handoff.core.project_files import ProjectFileScan, collect_project_files
from handoff.core.recorder import SessionRecorder
from handoff.core.selector import Selection, SelectionPolicy, select

__all__ = [
    "AggregationResult",
    "ContextAggregator",
    "ComposeResult",
    "Section",
    "compose",
    "ProjectFileScan",
    "collect_project_files",
    "SessionRecorder",
    "Selection",
    "SelectionPolicy",
    "select",
]
