"""Next-action selector for classified CI failures."""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

from .models import Action, ActionReason, Classification, TriageContext

# Classifications that claim the failure is transient.
TRANSIENT_CLASSIFICATIONS: frozenset[Classification] = frozenset({
    Classification.infra,
    Classification.flake_suspected,
})


class ActionResult(NamedTuple):
    action: Action
    reason: ActionReason


class ActionRule(NamedTuple):
    """A guard in the action chain. ``select`` returns None when it does not apply."""

    name: str
    select: Callable[[Classification, TriageContext], ActionResult | None]


def _quarantine_repeated(
    classification: Classification, context: TriageContext
) -> ActionResult | None:
    # A transient label that repeats identically is not transient.
    if classification in TRANSIENT_CLASSIFICATIONS and context.repeated_signature:
        return ActionResult(Action.quarantine, ActionReason.quarantine_repeated_signature)
    return None


def _regression_continuity(
    classification: Classification, context: TriageContext
) -> ActionResult | None:
    if classification is not Classification.regression:
        return None
    if context.has_session:
        return ActionResult(Action.resume, ActionReason.resume_has_session)
    return ActionResult(Action.spawn, ActionReason.spawn_regression)


def _first_seen_transient(
    classification: Classification, context: TriageContext
) -> ActionResult | None:
    # First-seen infra/flake is retried the same way a regression would be.
    if classification not in TRANSIENT_CLASSIFICATIONS:
        return None
    if context.has_session:
        return ActionResult(Action.resume, ActionReason.resume_has_session)
    return ActionResult(Action.spawn, ActionReason.spawn_flake_or_infra)


DEFAULT_ACTION_RULES: tuple[ActionRule, ...] = (
    ActionRule("quarantine_repeated_signature", _quarantine_repeated),
    ActionRule("regression_session_continuity", _regression_continuity),
    ActionRule("first_seen_transient", _first_seen_transient),
)


def select_action(
    classification: Classification,
    context: TriageContext,
    rules: tuple[ActionRule, ...] = DEFAULT_ACTION_RULES,
) -> ActionResult:
    """
    Select the next operational action for a classified failure.

    Rules (evaluated in priority order):
    1. Infra or flake with a signature identical to the prior attempt:
       quarantine. Overrides session continuity.
    2. Regression: resume when a session exists, else spawn.
    3. First-seen infra or flake: resume when a session exists, else spawn.
    """
    for rule in rules:
        result = rule.select(classification, context)
        if result is not None:
            return result
    raise ValueError(f"No action rule matched classification '{classification.value}'.")
