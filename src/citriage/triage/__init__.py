"""CI failure triage: classification, action selection and planning."""

from .actions import ActionResult, select_action
from .classifier import ClassificationResult, classify
from .models import (
    Action,
    ActionReason,
    CiFailureEntry,
    CiRunObservation,
    Classification,
    ClassificationReason,
    ExecutionPlan,
    TriageContext,
    TriageDecision,
    TriageRecord,
)
from .planner import build_decision, plan

__all__ = [
    "Action",
    "ActionReason",
    "ActionResult",
    "CiFailureEntry",
    "CiRunObservation",
    "Classification",
    "ClassificationReason",
    "ClassificationResult",
    "ExecutionPlan",
    "TriageContext",
    "TriageDecision",
    "TriageRecord",
    "build_decision",
    "classify",
    "plan",
    "select_action",
]
