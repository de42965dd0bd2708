"""
handoff - Context aggregation for multi-assistant development sessions.

Keeps daily briefs, implementation reports, plans and conventions as
plain markdown files in one directory (often a cloud-synced folder) and
turns the relevant slice of them into a single, size-bounded context
document for the next assistant in the chain.

Architecture:
- The directory is the only source of truth; nothing is cached
- Every command reads files → does work → writes files → exits
- Selection and composition are pure functions of their inputs
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

from handoff.core.aggregator import ContextAggregator
from handoff.core.recorder import SessionRecorder
from handoff.store.artifacts import ArtifactStore, Category

__all__ = [
    "ArtifactStore",
    "Category",
    "ContextAggregator",
    "SessionRecorder",
    "__version__",
]
