"""Pure helpers for the single marked CI-debug comment on a pull request.

The surrounding service upserts one comment per ``(repo, pull request)``,
found again through the id marker. The comment also embeds the triage state
(attempt count and last signature) that becomes ``prior_signature`` on the
next attempt.
"""

from __future__ import annotations

import json
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from citriage.signature.fingerprint import fnv1a_hex
from citriage.triage.models import Action, TriageRecord

MARKER_PREFIX = "ci-triage"
MARKER_ID_LENGTH = 12
COMMENT_STATE_VERSION = 1

_STATE_LINE_PATTERN = re.compile(rf"^<!-- {MARKER_PREFIX}:state=(.+) -->$", re.MULTILINE)

_ACTION_LINES = {
    Action.resume: "Action: resuming the existing session to fix failing checks.",
    Action.spawn: "Action: spawning a dedicated CI-debug run to make required checks green.",
    Action.quarantine: "Action: quarantining this failure as suspected flake/infra.",
}


class CommentTriageState(BaseModel):
    """Triage state carried inside the debug comment."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    version: int = COMMENT_STATE_VERSION
    attempt_count: int = Field(ge=0)
    last_signature: str | None = None


def compute_marker_id(repo: str, pr_number: int | str) -> str:
    """Stable comment id for ``(repo, pr_number)``."""
    base = f"{repo}|{pr_number}"
    return f"{fnv1a_hex(base)}{fnv1a_hex(base[::-1])}"[:MARKER_ID_LENGTH]


def id_marker(marker_id: str) -> str:
    return f"<!-- {MARKER_PREFIX}:id={marker_id} -->"


def state_marker(state: CommentTriageState) -> str:
    payload = {
        "version": COMMENT_STATE_VERSION,
        "triage": state.model_dump(mode="json", by_alias=True),
    }
    return f"<!-- {MARKER_PREFIX}:state={json.dumps(payload, sort_keys=True)} -->"


def build_triage_comment(
    *,
    marker_id: str,
    pr_url: str,
    record: TriageRecord,
    base_ref: str | None = None,
    head_ref: str | None = None,
    review_at: str | None = None,
) -> str:
    """Render the full comment body for ``record``."""
    state = CommentTriageState(attempt_count=record.attempt, last_signature=record.signature)
    lines = [
        id_marker(marker_id),
        state_marker(state),
        "",
        "CI triage status",
        "",
        f"PR: {pr_url}",
        f"Base: {(base_ref or '').strip() or '(unknown)'}",
        f"Head: {(head_ref or '').strip() or '(unknown)'}",
        "",
        "Failing required checks:",
    ]
    if record.failing_checks:
        lines.extend(f"- {check.name}: {check.raw_state}" for check in record.failing_checks)
    else:
        lines.append("- (none listed)")

    if record.timed_out:
        lines.extend(["", "Timed out waiting for required checks to complete."])

    lines.extend(["", _ACTION_LINES[record.action]])
    if record.action is Action.quarantine:
        lines.append("Automatic retries halted; task parked pending human review.")
        if review_at:
            lines.append(f"Review after: {review_at}")

    lines.append(f"Classification: {record.classification.value} ({record.classification_reason.value})")
    lines.append(f"Attempts: {record.attempt}/{record.max_attempts}")
    lines.append(f"Signature: {record.signature}")
    return "\n".join(lines)


def extract_comment_state(body: str, marker_id: str | None = None) -> CommentTriageState | None:
    """
    Read the embedded triage state back out of a comment body.

    Returns None when ``marker_id`` is given and the body belongs to another
    comment, or when the state marker is missing or malformed.
    """
    if marker_id is not None and id_marker(marker_id) not in body:
        return None

    match = _STATE_LINE_PATTERN.search(body)
    if match is None:
        return None
    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("triage"), dict):
        return None

    try:
        return CommentTriageState.model_validate(payload["triage"])
    except ValidationError:
        return None
