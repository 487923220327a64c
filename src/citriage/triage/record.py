"""Codec for persisted triage records.

Records are written as camelCase JSON tagged with :data:`RECORD_KIND`. Parsing
never raises: malformed input comes back as ``invalid`` and records written
by an unknown envelope version as ``unsupported_version``, so a reader can
keep going over a history that spans several releases.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from .models import (
    RECORD_VERSION,
    ActionReason,
    Classification,
    ClassificationReason,
    TriageRecord,
)

logger = logging.getLogger(__name__)

RECORD_KIND = "ci-triage-record"

# Envelope versions this reader understands.
SUPPORTED_RECORD_VERSIONS: frozenset[int] = frozenset({RECORD_VERSION})

# Version of pre-envelope artifacts, which carry no ``kind`` tag.
LEGACY_RECORD_VERSION = 1

MAX_FAILING_CHECKS = 20
MAX_COMMANDS = 20
MAX_TEXT_VALUE_CHARS = 500

# Legacy reason codes with a direct counterpart in the current rule set.
LEGACY_CLASSIFICATION_REASONS: dict[str, ClassificationReason] = {
    "infra_timeout": ClassificationReason.infra_timeout,
    "infra_network": ClassificationReason.infra_network_error,
    "infra_network_error": ClassificationReason.infra_network_error,
    "flake_transient": ClassificationReason.flake_transient,
    "regression_checks": ClassificationReason.regression_default,
    "regression_commands": ClassificationReason.regression_default,
    "regression_unknown": ClassificationReason.regression_default,
    "regression_default": ClassificationReason.regression_default,
}

LEGACY_ACTION_REASONS: dict[str, ActionReason] = {
    reason.value: reason for reason in ActionReason
}

ParseStatus = Literal["ok", "unsupported_version", "invalid"]


class ParsedTriageRecord(BaseModel):
    """Outcome of reading a persisted record."""

    model_config = ConfigDict(frozen=True)

    status: ParseStatus
    version: int | None = None
    record: TriageRecord | None = None


_INVALID = ParsedTriageRecord(status="invalid")


def _sanitize_text(value: object, max_chars: int = MAX_TEXT_VALUE_CHARS) -> str:
    text = "" if value is None else str(value).strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip()


def _sanitize_optional_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return _sanitize_text(value) or None


def _as_positive_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _sanitize_checks(value: object) -> list[dict[str, str]]:
    if not isinstance(value, list):
        return []
    checks: list[dict[str, str]] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        name = _sanitize_text(item.get("name"))
        raw_state = _sanitize_text(item.get("rawState"))
        if not name or not raw_state:
            continue
        checks.append({"name": name, "rawState": raw_state})
        if len(checks) >= MAX_FAILING_CHECKS:
            break
    return checks


def _sanitize_commands(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    commands: list[str] = []
    for item in value:
        command = _sanitize_text(item)
        if not command:
            continue
        commands.append(command)
        if len(commands) >= MAX_COMMANDS:
            break
    return commands


def _normalize(raw: dict[str, Any], version: int) -> TriageRecord | None:
    signature = _sanitize_text(raw.get("signature"))
    signature_version = _as_positive_int(raw.get("signatureVersion"))
    if not signature or signature_version is None:
        return None
    try:
        return TriageRecord.model_validate({
            "version": version,
            "signatureVersion": signature_version,
            "classifierVersion": _as_positive_int(raw.get("classifierVersion")) or 1,
            "signature": signature,
            "priorSignature": _sanitize_optional_text(raw.get("priorSignature")),
            "classification": raw.get("classification"),
            "classificationReason": raw.get("classificationReason"),
            "action": raw.get("action"),
            "actionReason": raw.get("actionReason"),
            "timedOut": raw.get("timedOut") is True,
            "attempt": _as_positive_int(raw.get("attempt")),
            "maxAttempts": _as_positive_int(raw.get("maxAttempts")),
            "failingChecks": _sanitize_checks(raw.get("failingChecks")),
            "commands": _sanitize_commands(raw.get("commands")),
        })
    except ValidationError as exc:
        logger.debug("TriageRecordRejected errors=%d", exc.error_count())
        return None


def _upgrade_legacy(raw: dict[str, Any]) -> TriageRecord | None:
    if _as_positive_int(raw.get("version")) != LEGACY_RECORD_VERSION:
        return None

    classification_reason = LEGACY_CLASSIFICATION_REASONS.get(str(raw.get("classificationReason")))
    if classification_reason is None:
        return None

    action_reason_code = str(raw.get("actionReason"))
    if action_reason_code == "spawn_no_session":
        if raw.get("classification") == Classification.regression.value:
            action_reason: ActionReason | None = ActionReason.spawn_regression
        else:
            action_reason = ActionReason.spawn_flake_or_infra
    else:
        action_reason = LEGACY_ACTION_REASONS.get(action_reason_code)
    if action_reason is None:
        return None

    upgraded = {
        **raw,
        "classificationReason": classification_reason.value,
        "actionReason": action_reason.value,
    }
    return _normalize(upgraded, LEGACY_RECORD_VERSION)


def _load_object(payload_json: str | None) -> dict[str, Any] | None:
    text = (payload_json or "").strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def serialize_record(record: TriageRecord) -> str:
    """Serialize ``record`` to its persisted JSON form."""
    payload = {"kind": RECORD_KIND, **record.model_dump(mode="json", by_alias=True)}
    return json.dumps(payload, sort_keys=True)


def parse_triage_record(version: int | None, payload_json: str | None) -> ParsedTriageRecord:
    """Parse a record stored alongside its envelope ``version``."""
    envelope_version = _as_positive_int(version)
    if envelope_version is None:
        return _INVALID
    if envelope_version not in SUPPORTED_RECORD_VERSIONS:
        return ParsedTriageRecord(status="unsupported_version", version=envelope_version)

    raw = _load_object(payload_json)
    if raw is None or raw.get("kind") != RECORD_KIND:
        return _INVALID
    if _as_positive_int(raw.get("version")) != envelope_version:
        return _INVALID

    record = _normalize(raw, envelope_version)
    if record is None:
        return _INVALID
    return ParsedTriageRecord(status="ok", version=envelope_version, record=record)


def parse_legacy_artifact(content: str | None) -> ParsedTriageRecord:
    """
    Parse a standalone artifact that may predate the ``kind``-tagged envelope.

    Current records are accepted as-is. Version 1 artifacts are upgraded by
    translating their reason codes; codes with no current counterpart make the
    artifact ``invalid``.
    """
    raw = _load_object(content)
    if raw is None:
        return _INVALID

    if raw.get("kind") == RECORD_KIND:
        version = _as_positive_int(raw.get("version"))
        if version in SUPPORTED_RECORD_VERSIONS:
            record = _normalize(raw, version)
            if record is not None:
                return ParsedTriageRecord(status="ok", version=version, record=record)

    record = _upgrade_legacy(raw)
    if record is not None:
        return ParsedTriageRecord(status="ok", version=LEGACY_RECORD_VERSION, record=record)
    return _INVALID


def format_triage_summary(record: TriageRecord) -> str:
    """One-line summary for logs and status output."""
    return (
        f"classification={record.classification.value} action={record.action.value} "
        f"attempt={record.attempt}/{record.max_attempts} signature={record.signature}"
    )
