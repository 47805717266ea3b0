"""LLM Service for Grounded.

Owns the lifecycle of on-device models: a fallback cascade of candidates per
slot, single-flight loading with bounded waits, and forced reloads that
clear cached artifacts first.
"""

from .config import (
    COUNSELING_COACH_CANDIDATES,
    MOOD_TRACKER_CANDIDATES,
    OrchestratorConfig,
)
from .models import (
    ClassificationOptions,
    GenerationOptions,
    InferenceError,
    InferenceFailureReason,
    ModelBackend,
    ModelCandidate,
    ModelHandle,
    ModelKind,
    ModelSlot,
    ModelState,
    classify_exception,
)
from .orchestrator import ModelOrchestrator, SlotStatus
from .single_flight import SingleFlight
from .transformers_backend import TransformersBackend, create_orchestrator

__version__ = "0.1.0"

__all__ = [
    "COUNSELING_COACH_CANDIDATES",
    "MOOD_TRACKER_CANDIDATES",
    "OrchestratorConfig",
    "ClassificationOptions",
    "GenerationOptions",
    "InferenceError",
    "InferenceFailureReason",
    "ModelBackend",
    "ModelCandidate",
    "ModelHandle",
    "ModelKind",
    "ModelSlot",
    "ModelState",
    "classify_exception",
    "ModelOrchestrator",
    "SlotStatus",
    "SingleFlight",
    "TransformersBackend",
    "create_orchestrator",
]
