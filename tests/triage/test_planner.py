"""Tests for the execution planner."""

from __future__ import annotations

import logging

import pytest

from citriage.signature.fingerprint import build_signature
from citriage.triage.models import (
    Action,
    ActionReason,
    CiFailureEntry,
    CiRunObservation,
    Classification,
    ClassificationReason,
    TriageContext,
)
from citriage.triage.planner import build_decision, plan
from citriage.triage.record import serialize_record


def _make_observation(excerpt: str | None = "AssertionError", timed_out: bool = False) -> CiRunObservation:
    return CiRunObservation(
        timed_out=timed_out,
        failures=[CiFailureEntry(name="Test", raw_state="FAILURE", excerpt=excerpt)],
        commands=["bun test"],
    )


def _make_context(
    *,
    attempt: int = 1,
    max_attempts: int = 5,
    has_session: bool = False,
    signature: str = "abcd1234",
    prior_signature: str | None = None,
    signature_version: int = 3,
) -> TriageContext:
    return TriageContext(
        attempt=attempt,
        max_attempts=max_attempts,
        has_session=has_session,
        signature=signature,
        prior_signature=prior_signature,
        signature_version=signature_version,
    )


@pytest.mark.parametrize(
    ("attempt", "max_attempts", "exhausted"),
    [
        (1, 5, False),
        (5, 5, False),
        (6, 5, True),
        (2, 1, True),
    ],
)
def test_budget_arithmetic(attempt: int, max_attempts: int, exhausted: bool) -> None:
    result = plan(_make_observation(), _make_context(attempt=attempt, max_attempts=max_attempts))
    assert result.exhausted_budget is exhausted
    assert result.attempt_allowed is not exhausted


def test_exhausted_budget_still_carries_a_decision() -> None:
    result = plan(_make_observation(), _make_context(attempt=6, max_attempts=5, has_session=True))
    assert result.decision.action == Action.resume


def test_versions_are_stable() -> None:
    result = plan(_make_observation(), _make_context(signature_version=2))

    assert result.decision.version == 1
    assert result.decision.classifier_version == 1
    assert result.record.version == 2
    assert result.record.signature_version == 2
    assert result.record.classifier_version == 1


def test_record_mirrors_decision_and_context() -> None:
    observation = _make_observation()
    context = _make_context(attempt=3, prior_signature="ffff0000")
    result = plan(observation, context)
    record = result.record

    assert record.classification == result.decision.classification
    assert record.classification_reason == result.decision.classification_reason
    assert record.action == result.decision.action
    assert record.action_reason == result.decision.action_reason
    assert record.signature == "abcd1234"
    assert record.prior_signature == "ffff0000"
    assert record.attempt == 3
    assert record.max_attempts == 5
    assert [c.name for c in record.failing_checks] == ["Test"]
    assert record.commands == ["bun test"]


def test_record_serializes_with_camel_case_keys() -> None:
    dumped = plan(_make_observation(), _make_context()).record.model_dump(mode="json", by_alias=True)
    assert dumped["version"] == 2
    assert dumped["signatureVersion"] == 3
    assert dumped["classificationReason"] == "regression_default"
    assert dumped["actionReason"] == "spawn_regression"
    assert dumped["failingChecks"] == [{"name": "Test", "rawState": "FAILURE"}]


def test_regression_default_with_session_resumes() -> None:
    decision = build_decision(_make_observation(), _make_context(has_session=True))
    assert decision.classification == Classification.regression
    assert decision.classification_reason == ClassificationReason.regression_default
    assert decision.action == Action.resume
    assert decision.action_reason == ActionReason.resume_has_session


def test_regression_default_without_session_spawns() -> None:
    decision = build_decision(_make_observation(), _make_context(has_session=False))
    assert decision.action == Action.spawn
    assert decision.action_reason == ActionReason.spawn_regression


def test_repeated_infra_signature_is_quarantined_end_to_end() -> None:
    observation = _make_observation("network error ETIMEDOUT")
    signature = build_signature(observation).signature

    first = plan(observation, _make_context(signature=signature, has_session=True))
    second = plan(
        observation,
        _make_context(attempt=2, signature=signature, prior_signature=signature, has_session=True),
    )

    assert first.decision.classification == Classification.infra
    assert first.decision.action == Action.resume
    assert second.decision.action == Action.quarantine
    assert second.decision.action_reason == ActionReason.quarantine_repeated_signature


def test_plan_is_idempotent() -> None:
    observation = _make_observation("flaky")
    context = _make_context(has_session=True)
    assert plan(observation, context) == plan(observation, context)


def test_plan_logs_decision(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="citriage.triage.planner"):
        plan(_make_observation(timed_out=True), _make_context())
    assert "TriagePlanned" in caplog.text
    assert "reason=infra_timeout" in caplog.text


def test_record_is_independent_of_failure_order() -> None:
    failures = [
        CiFailureEntry(name="test", raw_state="FAILURE", excerpt="AssertionError"),
        CiFailureEntry(name="lint", raw_state="FAILURE", excerpt="eslint: 3 problems"),
        CiFailureEntry(name="build", raw_state="TIMED_OUT"),
    ]
    forward = CiRunObservation(failures=failures, commands=["bun test"])
    backward = CiRunObservation(failures=failures[::-1], commands=["bun test"])
    context = _make_context(signature=build_signature(forward).signature)

    first = plan(forward, context).record
    second = plan(backward, context).record

    assert serialize_record(first) == serialize_record(second)
    assert [check.name for check in first.failing_checks] == ["build", "lint", "test"]
