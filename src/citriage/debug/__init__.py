"""CI-debug comment helpers."""

from .comment import (
    CommentTriageState,
    build_triage_comment,
    compute_marker_id,
    extract_comment_state,
)

__all__ = [
    "CommentTriageState",
    "build_triage_comment",
    "compute_marker_id",
    "extract_comment_state",
]
