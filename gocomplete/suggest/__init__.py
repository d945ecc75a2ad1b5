"""Completion core: cursor context, candidate collection and orchestration."""
from .candidate import FAULT_CANDIDATE, Candidate, CandidateClass
from .collector import CandidateCollector
from .cursor_context import CursorContext, deduce_cursor_context
from .suggest import AutoCompleteReply, AutoCompleteRequest, Suggester

__all__ = [
    "AutoCompleteReply",
    "AutoCompleteRequest",
    "Candidate",
    "CandidateClass",
    "CandidateCollector",
    "CursorContext",
    "FAULT_CANDIDATE",
    "Suggester",
    "deduce_cursor_context",
]
