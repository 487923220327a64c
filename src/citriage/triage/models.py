"""
Data model for the CI failure triage engine.

Every value here is immutable and constructed per invocation. Classification,
action and reason codes are closed enumerations; their string values are the
stable identifiers written to persisted records and telemetry.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Decision shape version. Bumped when TriageDecision gains or renames a field.
DECISION_VERSION = 1

# Rule-set version. Bumped whenever a classification or action rule changes.
CLASSIFIER_VERSION = 1

# Persisted envelope version. Evolves independently of DECISION_VERSION.
RECORD_VERSION = 2

# Signature algorithm the service computes when the caller does not pick one.
DEFAULT_SIGNATURE_VERSION = 3


class Classification(str, Enum):
    """Root-cause family of a failing CI run."""

    infra = "infra"
    flake_suspected = "flake-suspected"
    regression = "regression"


class Action(str, Enum):
    """Operational response routed to the session runtime."""

    resume = "resume"  # continue the live coding session
    spawn = "spawn"  # start a fresh session
    quarantine = "quarantine"  # park the task, stop automatic retries


class ClassificationReason(str, Enum):
    """Machine-readable reason attached to a classification."""

    infra_timeout = "infra_timeout"
    infra_network_error = "infra_network_error"
    flake_transient = "flake_transient"
    regression_default = "regression_default"


class ActionReason(str, Enum):
    """Machine-readable reason attached to an action."""

    quarantine_repeated_signature = "quarantine_repeated_signature"
    resume_has_session = "resume_has_session"
    spawn_regression = "spawn_regression"
    spawn_flake_or_infra = "spawn_flake_or_infra"


# Each reason code belongs to exactly one classification / action.
REASON_CLASSIFICATION: dict[ClassificationReason, Classification] = {
    ClassificationReason.infra_timeout: Classification.infra,
    ClassificationReason.infra_network_error: Classification.infra,
    ClassificationReason.flake_transient: Classification.flake_suspected,
    ClassificationReason.regression_default: Classification.regression,
}

REASON_ACTION: dict[ActionReason, Action] = {
    ActionReason.quarantine_repeated_signature: Action.quarantine,
    ActionReason.resume_has_session: Action.resume,
    ActionReason.spawn_regression: Action.spawn,
    ActionReason.spawn_flake_or_infra: Action.spawn,
}


class CiFailureEntry(BaseModel):
    """One failing check as reported by the CI provider."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Check or job name")
    raw_state: str = Field(description="Provider terminal state, e.g. FAILURE or TIMED_OUT")
    excerpt: str | None = Field(default=None, description="Snippet of the failure log")


class CiRunObservation(BaseModel):
    """
    Outcome of a single CI run.

    ``failures`` is an unordered set: nothing downstream may depend on its order.
    ``commands`` is classification evidence only and never feeds the signature.
    """

    model_config = ConfigDict(frozen=True)

    timed_out: bool = False
    failures: list[CiFailureEntry] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)


class TriageContext(BaseModel):
    """Caller-owned decision inputs for one triage attempt."""

    model_config = ConfigDict(frozen=True)

    attempt: int = Field(ge=1, strict=True, description="1-based attempt number")
    max_attempts: int = Field(ge=1, strict=True, description="Attempt budget ceiling")
    has_session: bool = Field(description="True when a live coding session exists")
    signature: str = Field(description="Fingerprint of the current run")
    prior_signature: str | None = Field(
        default=None,
        description="Fingerprint of the previous attempt; None on a first attempt",
    )
    signature_version: int = Field(
        default=DEFAULT_SIGNATURE_VERSION,
        ge=1,
        strict=True,
        description="Signature algorithm that produced ``signature``",
    )

    @property
    def repeated_signature(self) -> bool:
        """True when this run hashed identically to the previous attempt."""
        return self.prior_signature is not None and self.prior_signature == self.signature


class TriageDecision(BaseModel):
    """The pure output of classification plus action selection."""

    model_config = ConfigDict(frozen=True)

    classification: Classification
    classification_reason: ClassificationReason
    action: Action
    action_reason: ActionReason
    version: int = DECISION_VERSION
    classifier_version: int = CLASSIFIER_VERSION


class FailingCheck(BaseModel):
    """Check summary carried in the persisted record."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str
    raw_state: str


class TriageRecord(BaseModel):
    """
    Persisted form of a triage decision.

    ``version`` describes this envelope, not the decision shape, so it can move
    without a parallel revision of ``TriageDecision``. Serialized with camelCase
    keys via ``model_dump(by_alias=True)``.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    version: int = RECORD_VERSION
    signature_version: int = Field(ge=1)
    classifier_version: int = CLASSIFIER_VERSION
    signature: str
    prior_signature: str | None = None
    classification: Classification
    classification_reason: ClassificationReason
    action: Action
    action_reason: ActionReason
    timed_out: bool = False
    attempt: int = Field(ge=1)
    max_attempts: int = Field(ge=1)
    failing_checks: list[FailingCheck] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_reason_mapping(self) -> "TriageRecord":
        if REASON_CLASSIFICATION[self.classification_reason] is not self.classification:
            raise ValueError(
                f"classificationReason '{self.classification_reason.value}' does not "
                f"belong to classification '{self.classification.value}'."
            )
        if REASON_ACTION[self.action_reason] is not self.action:
            raise ValueError(
                f"actionReason '{self.action_reason.value}' does not belong to "
                f"action '{self.action.value}'."
            )
        return self


class ExecutionPlan(BaseModel):
    """A triage decision wrapped with attempt-budget arithmetic."""

    model_config = ConfigDict(frozen=True)

    attempt_allowed: bool
    exhausted_budget: bool
    decision: TriageDecision
    record: TriageRecord
