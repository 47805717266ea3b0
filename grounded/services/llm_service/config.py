"""Model orchestrator configuration.

Default candidates are small instruction-tuned and sentiment models that run
on a laptop CPU. Each slot's list is tried in order until one loads.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .models import ModelCandidate, ModelKind, ModelSlot

MOOD_TRACKER_CANDIDATES: Tuple[ModelCandidate, ...] = (
    ModelCandidate(
        model_id="distilbert-base-uncased-finetuned-sst-2-english",
        kind=ModelKind.CLASSIFIER,
        task="sentiment-analysis",
    ),
    ModelCandidate(
        model_id="cardiffnlp/twitter-roberta-base-sentiment-latest",
        kind=ModelKind.CLASSIFIER,
        task="sentiment-analysis",
    ),
)

COUNSELING_COACH_CANDIDATES: Tuple[ModelCandidate, ...] = (
    ModelCandidate(
        model_id="MBZUAI/LaMini-Flan-T5-77M",
        kind=ModelKind.GENERATOR,
        task="text2text-generation",
    ),
    ModelCandidate(
        model_id="MBZUAI/LaMini-Flan-T5-248M",
        kind=ModelKind.GENERATOR,
        task="text2text-generation",
    ),
    ModelCandidate(
        model_id="MBZUAI/LaMini-Flan-T5-783M",
        kind=ModelKind.GENERATOR,
        task="text2text-generation",
    ),
)


def _default_candidates() -> Dict[ModelSlot, Tuple[ModelCandidate, ...]]:
    return {
        ModelSlot.MOOD_TRACKER: MOOD_TRACKER_CANDIDATES,
        ModelSlot.COUNSELING_COACH: COUNSELING_COACH_CANDIDATES,
    }


@dataclass(frozen=True)
class OrchestratorConfig:
    """Configuration for model loading behavior."""

    # Ceiling for callers joining a load that is already in flight
    max_wait_seconds: float = 30.0

    # Ceiling for a single candidate load before moving to the next one
    candidate_timeout_seconds: float = 30.0

    # Device for inference ("cpu" or "cuda")
    device: str = "cpu"

    # Local model cache; None uses the huggingface_hub default
    cache_dir: Optional[str] = None

    candidates: Dict[ModelSlot, Tuple[ModelCandidate, ...]] = field(
        default_factory=_default_candidates
    )

    def __post_init__(self):
        if self.max_wait_seconds <= 0:
            raise ValueError(f"max_wait_seconds must be positive, got {self.max_wait_seconds}")
        if self.candidate_timeout_seconds <= 0:
            raise ValueError(
                f"candidate_timeout_seconds must be positive, got {self.candidate_timeout_seconds}"
            )

    def candidates_for(self, slot: ModelSlot) -> Tuple[ModelCandidate, ...]:
        return self.candidates.get(slot, ())

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Create config from environment variables.

        Environment variables:
            GROUNDED_MODEL_MAX_WAIT: Seconds to wait on an in-flight load (default 30)
            GROUNDED_MODEL_LOAD_TIMEOUT: Seconds per candidate load (default 30)
            GROUNDED_MODEL_DEVICE: Inference device (default cpu)
            GROUNDED_MODEL_CACHE_DIR: Model cache directory
            GROUNDED_COACH_MODELS: Comma-separated generator ids, tried in order
            GROUNDED_MOOD_MODELS: Comma-separated classifier ids, tried in order
        """
        candidates = _default_candidates()

        coach_ids = os.environ.get("GROUNDED_COACH_MODELS", "").strip()
        if coach_ids:
            candidates[ModelSlot.COUNSELING_COACH] = tuple(
                ModelCandidate(model_id=m.strip(), kind=ModelKind.GENERATOR, task="text2text-generation")
                for m in coach_ids.split(",") if m.strip()
            )

        mood_ids = os.environ.get("GROUNDED_MOOD_MODELS", "").strip()
        if mood_ids:
            candidates[ModelSlot.MOOD_TRACKER] = tuple(
                ModelCandidate(model_id=m.strip(), kind=ModelKind.CLASSIFIER, task="sentiment-analysis")
                for m in mood_ids.split(",") if m.strip()
            )

        return cls(
            max_wait_seconds=float(os.environ.get("GROUNDED_MODEL_MAX_WAIT", "30")),
            candidate_timeout_seconds=float(os.environ.get("GROUNDED_MODEL_LOAD_TIMEOUT", "30")),
            device=os.environ.get("GROUNDED_MODEL_DEVICE", "cpu"),
            cache_dir=os.environ.get("GROUNDED_MODEL_CACHE_DIR") or None,
            candidates=candidates,
        )
