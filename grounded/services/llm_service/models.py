"""Model slots, candidates, handles and the backend interface.

Classifier and generator models share one orchestrator but are never
invoked interchangeably: every handle carries a ModelKind, and invocation
options are kind-specific.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union


class ModelKind(Enum):
    """Tagged variant for what a loaded model can do."""
    CLASSIFIER = "classifier"
    GENERATOR = "generator"


class ModelSlot(Enum):
    """Logical model slots; each holds at most one loaded handle."""
    MOOD_TRACKER = "mood_tracker"
    COUNSELING_COACH = "counseling_coach"


class ModelState(Enum):
    """Per-slot lifecycle. FAILED is terminal until force_reload."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class InferenceFailureReason(Enum):
    UNSUPPORTED_BACKEND = "unsupported_backend"  # permanent for this session
    NETWORK = "network"                          # transient, retryable
    RUNTIME = "runtime"


class InferenceError(Exception):
    """Model load or invocation failure.

    Attributes:
        reason: Failure class used to decide whether a retry makes sense
        model_id: Model that failed, when known
    """

    def __init__(
        self,
        reason: InferenceFailureReason,
        message: str,
        model_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.model_id = model_id

    @property
    def retryable(self) -> bool:
        return self.reason == InferenceFailureReason.NETWORK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason.value,
            "message": self.message,
            "model_id": self.model_id,
            "retryable": self.retryable,
        }


_UNSUPPORTED_MARKERS = (
    "unsupported",
    "not supported",
    "no available backend",
    "unrecognized model",
    "unrecognized configuration",
    "onnx",
    "cuda",
)

_NETWORK_MARKERS = (
    "network",
    "fetch",
    "connect",
    "connection",
    "timed out",
    "timeout",
    "offline",
    "name resolution",
)


def classify_exception(exc: BaseException, model_id: Optional[str] = None) -> InferenceError:
    """Map an arbitrary backend exception onto an InferenceError.

    ImportError means the runtime itself is missing. Otherwise the exception
    type and message decide between network and runtime; memory errors and
    anything unrecognised are runtime.
    """
    if isinstance(exc, InferenceError):
        return exc

    message = str(exc) or type(exc).__name__
    lowered = message.lower()

    if isinstance(exc, ImportError):
        reason = InferenceFailureReason.UNSUPPORTED_BACKEND
    elif isinstance(exc, MemoryError):
        reason = InferenceFailureReason.RUNTIME
    elif isinstance(exc, (ConnectionError, TimeoutError)):
        reason = InferenceFailureReason.NETWORK
    elif any(marker in lowered for marker in _UNSUPPORTED_MARKERS):
        reason = InferenceFailureReason.UNSUPPORTED_BACKEND
    elif any(marker in lowered for marker in _NETWORK_MARKERS):
        reason = InferenceFailureReason.NETWORK
    else:
        reason = InferenceFailureReason.RUNTIME

    return InferenceError(reason, message, model_id=model_id)


@dataclass(frozen=True)
class ModelCandidate:
    """One entry in a slot's fallback cascade."""
    model_id: str
    kind: ModelKind
    task: str

    def __post_init__(self):
        if not self.model_id:
            raise ValueError("ModelCandidate.model_id is required")


@dataclass(frozen=True)
class ClassificationOptions:
    top_k: int = 1
    truncation: bool = True
    max_length: int = 512

    def to_kwargs(self) -> Dict[str, Any]:
        return {
            "top_k": self.top_k,
            "truncation": self.truncation,
            "max_length": self.max_length,
        }


@dataclass(frozen=True)
class GenerationOptions:
    """Bounded sampling options for text generation."""
    max_new_tokens: int = 2000
    temperature: float = 0.3
    repetition_penalty: float = 1.3
    do_sample: bool = True

    def __post_init__(self):
        if self.max_new_tokens <= 0:
            raise ValueError(f"max_new_tokens must be positive, got {self.max_new_tokens}")
        if not 0.0 < self.temperature <= 2.0:
            raise ValueError(f"temperature must be in (0, 2], got {self.temperature}")
        if self.repetition_penalty < 1.0:
            raise ValueError(f"repetition_penalty must be >= 1.0, got {self.repetition_penalty}")

    def to_kwargs(self) -> Dict[str, Any]:
        return {
            "max_new_tokens": self.max_new_tokens,
            "temperature": self.temperature,
            "repetition_penalty": self.repetition_penalty,
            "do_sample": self.do_sample,
        }


InvocationOptions = Union[ClassificationOptions, GenerationOptions]


def default_options(kind: ModelKind) -> InvocationOptions:
    if kind == ModelKind.GENERATOR:
        return GenerationOptions()
    return ClassificationOptions()


def options_match(kind: ModelKind, options: InvocationOptions) -> bool:
    if kind == ModelKind.GENERATOR:
        return isinstance(options, GenerationOptions)
    return isinstance(options, ClassificationOptions)


@dataclass(frozen=True)
class ModelHandle:
    """A loaded model. Reused until force_reload clears it."""
    model_id: str
    kind: ModelKind
    task: str
    runner: Any = field(repr=False, compare=False)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_candidate(cls, candidate: ModelCandidate, runner: Any) -> "ModelHandle":
        return cls(
            model_id=candidate.model_id,
            kind=candidate.kind,
            task=candidate.task,
            runner=runner,
        )


class ModelBackend(ABC):
    """Abstract runtime that can load, run and evict models."""

    @abstractmethod
    async def load(self, candidate: ModelCandidate) -> Any:
        """Load a candidate and return an opaque runner object.

        Raises:
            Any exception; the orchestrator classifies it.
        """
        pass

    @abstractmethod
    async def run(
        self,
        handle: ModelHandle,
        prompt: str,
        options: InvocationOptions,
    ) -> str:
        """Run inference. Classifiers return their top label."""
        pass

    @abstractmethod
    async def clear_cache(self, model_ids: Sequence[str]) -> None:
        """Remove every cached artifact for the given models.

        Must either clear fully or raise.
        """
        pass
