"""Execution planner: classification + action selection + attempt budget."""

from __future__ import annotations

import logging

from .actions import select_action
from .classifier import classify
from .models import (
    CiRunObservation,
    ExecutionPlan,
    FailingCheck,
    TriageContext,
    TriageDecision,
    TriageRecord,
)

logger = logging.getLogger(__name__)


def build_decision(observation: CiRunObservation, context: TriageContext) -> TriageDecision:
    """Classify ``observation`` and pick the next action for it."""
    classification = classify(observation)
    action = select_action(classification.classification, context)
    return TriageDecision(
        classification=classification.classification,
        classification_reason=classification.reason,
        action=action.action,
        action_reason=action.reason,
    )


def build_record(
    observation: CiRunObservation,
    context: TriageContext,
    decision: TriageDecision,
) -> TriageRecord:
    """Wrap ``decision`` in the persisted envelope."""
    return TriageRecord(
        signature_version=context.signature_version,
        classifier_version=decision.classifier_version,
        signature=context.signature,
        prior_signature=context.prior_signature,
        classification=decision.classification,
        classification_reason=decision.classification_reason,
        action=decision.action,
        action_reason=decision.action_reason,
        timed_out=observation.timed_out,
        attempt=context.attempt,
        max_attempts=context.max_attempts,
        failing_checks=[
            FailingCheck(name=name, raw_state=raw_state)
            for name, raw_state in sorted(
                (failure.name, failure.raw_state) for failure in observation.failures
            )
        ],
        commands=list(observation.commands),
    )


def plan(observation: CiRunObservation, context: TriageContext) -> ExecutionPlan:
    """
    Produce the versioned execution plan for one triage attempt.

    The planner only reports whether the attempt budget is exhausted. What to
    do about an exhausted budget (force quarantine, escalate) is left to the
    caller.
    """
    exhausted_budget = context.attempt > context.max_attempts
    decision = build_decision(observation, context)
    record = build_record(observation, context, decision)

    logger.info(
        "TriagePlanned signature=%s classification=%s reason=%s action=%s "
        "action_reason=%s attempt=%d/%d exhausted_budget=%s",
        context.signature,
        decision.classification.value,
        decision.classification_reason.value,
        decision.action.value,
        decision.action_reason.value,
        context.attempt,
        context.max_attempts,
        exhausted_budget,
    )

    return ExecutionPlan(
        attempt_allowed=not exhausted_budget,
        exhausted_budget=exhausted_budget,
        decision=decision,
        record=record,
    )
