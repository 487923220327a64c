"""
Failure classifier for CI run observations.

Maps a run observation to a (Classification, ClassificationReason) pair.
Classification is deterministic and based only on the timed-out flag and
known excerpt signals. Rules are evaluated in priority order, first match wins.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

from .models import CiRunObservation, Classification, ClassificationReason

NETWORK_SIGNALS: tuple[str, ...] = (
    "econnreset",
    "etimedout",
    "eai_again",
    "enotfound",
    "socket hang up",
    "connection reset",
    "connection refused",
    "network is unreachable",
    "could not resolve host",
    "name or service not known",
    "temporary failure in name resolution",
    "network error",
    "service unavailable",
    "502 bad gateway",
    "504 gateway timeout",
)

FLAKE_SIGNALS: tuple[str, ...] = (
    "flaky",
    "flake",
    "intermittent",
    "nondeterministic",
    "non-deterministic",
)


class ClassificationResult(NamedTuple):
    classification: Classification
    reason: ClassificationReason


class ClassificationRule(NamedTuple):
    """A guard in the classification chain."""

    matches: Callable[[CiRunObservation], bool]
    classification: Classification
    reason: ClassificationReason


def _excerpt_text(observation: CiRunObservation) -> str:
    return "\n".join(failure.excerpt or "" for failure in observation.failures).lower()


def _timed_out(observation: CiRunObservation) -> bool:
    return observation.timed_out


def _has_network_signal(observation: CiRunObservation) -> bool:
    text = _excerpt_text(observation)
    return any(sig in text for sig in NETWORK_SIGNALS)


def _has_flake_signal(observation: CiRunObservation) -> bool:
    text = _excerpt_text(observation)
    return any(sig in text for sig in FLAKE_SIGNALS)


# Priority order matters: an explicit timeout is ground truth and beats any
# textual heuristic, and infra beats flake.
DEFAULT_CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(_timed_out, Classification.infra, ClassificationReason.infra_timeout),
    ClassificationRule(
        _has_network_signal, Classification.infra, ClassificationReason.infra_network_error
    ),
    ClassificationRule(
        _has_flake_signal, Classification.flake_suspected, ClassificationReason.flake_transient
    ),
)

FALLBACK_CLASSIFICATION = ClassificationResult(
    Classification.regression, ClassificationReason.regression_default
)


def classify(
    observation: CiRunObservation,
    rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES,
) -> ClassificationResult:
    """
    Classify a CI run observation.

    Rules (evaluated in priority order):
    1. Timed out: infra / infra_timeout.
    2. Network or transport error in any excerpt: infra / infra_network_error.
    3. Flakiness marker in any excerpt: flake-suspected / flake_transient.
    4. Otherwise: regression / regression_default.

    Callers may pass an extended ``rules`` tuple; the regression fallback
    always applies when nothing matches.
    """
    for rule in rules:
        if rule.matches(observation):
            return ClassificationResult(rule.classification, rule.reason)
    return FALLBACK_CLASSIFICATION
