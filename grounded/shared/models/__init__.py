"""Shared domain models for the Grounded pipeline."""
from .crisis import (
    Severity,
    CrisisCategory,
    RecommendedAction,
    CrisisPhrase,
    DetectionResult,
    EmergencyContact,
    MentalStateAssessment,
)
from .journal import (
    LogType,
    LogEntry,
    GoalFrequency,
    GoalUpdate,
    Goal,
    ValueItem,
    GeneratedVia,
    DegradeReason,
    SynthesisDegraded,
    Report,
)

__all__ = [
    "Severity",
    "CrisisCategory",
    "RecommendedAction",
    "CrisisPhrase",
    "DetectionResult",
    "EmergencyContact",
    "MentalStateAssessment",
    "LogType",
    "LogEntry",
    "GoalFrequency",
    "GoalUpdate",
    "Goal",
    "ValueItem",
    "GeneratedVia",
    "DegradeReason",
    "SynthesisDegraded",
    "Report",
]
