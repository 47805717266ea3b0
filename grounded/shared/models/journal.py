"""Journal inputs and report outputs.

Log entries, goals and values are read-only inputs owned by the persistence
layer. Reports are produced fresh per synthesis call and never cached here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .crisis import DetectionResult


class LogType(Enum):
    STANDARD = "standard"
    GOAL_UPDATE = "goal-update"
    GOAL_COMPLETION = "goal-completion"


class GoalFrequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, accepting snake_case or camelCase."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class LogEntry:
    """A single reflection log as stored by the app.

    `date` is an ISO-8601 string; grouping uses its calendar-day prefix.
    """
    id: str
    date: str
    value_id: str
    note: str = ""
    deep_reflection: Optional[str] = None
    emotional_state: Optional[str] = None
    selected_feeling: Optional[str] = None
    goal_text: Optional[str] = None
    type: Optional[LogType] = None
    mood: Optional[str] = None
    reflection_analysis: Optional[Any] = None

    def __post_init__(self):
        if not self.date:
            raise ValueError("LogEntry.date is required")

    @property
    def day_key(self) -> str:
        """Calendar day (YYYY-MM-DD) of the entry."""
        return self.date.split("T")[0][:10]

    @property
    def time_of_day(self) -> Optional[str]:
        parts = self.date.split("T")
        if len(parts) < 2 or len(parts[1]) < 5:
            return None
        return parts[1][:5]

    @property
    def is_goal_completion(self) -> bool:
        return self.type == LogType.GOAL_COMPLETION

    def text_fields(self) -> List[str]:
        """Free-text fields considered by the safety gate."""
        return [t for t in (self.note, self.deep_reflection, self.goal_text) if t]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        raw_type = _pick(data, "type")
        return cls(
            id=str(_pick(data, "id", default="")),
            date=str(_pick(data, "date", default="")),
            value_id=str(_pick(data, "value_id", "valueId", default="")),
            note=_pick(data, "note", default="") or "",
            deep_reflection=_pick(data, "deep_reflection", "deepReflection"),
            emotional_state=_pick(data, "emotional_state", "emotionalState"),
            selected_feeling=_pick(data, "selected_feeling", "selectedFeeling"),
            goal_text=_pick(data, "goal_text", "goalText"),
            type=LogType(raw_type) if raw_type else None,
            mood=_pick(data, "mood"),
            reflection_analysis=_pick(data, "reflection_analysis", "reflectionAnalysis"),
        )


@dataclass(frozen=True)
class GoalUpdate:
    timestamp: str
    note: str = ""
    mood: Optional[str] = None


@dataclass(frozen=True)
class Goal:
    """A committed action tied to a value."""
    value_id: str
    text: str
    frequency: GoalFrequency = GoalFrequency.WEEKLY
    completed: bool = False
    id: str = ""
    created_at: Optional[str] = None
    updates: Tuple[GoalUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Goal":
        updates = tuple(
            GoalUpdate(
                timestamp=str(u.get("timestamp", "")),
                note=u.get("note", "") or "",
                mood=u.get("mood"),
            )
            for u in _pick(data, "updates", default=[])
        )
        return cls(
            id=str(_pick(data, "id", default="")),
            value_id=str(_pick(data, "value_id", "valueId", default="")),
            text=_pick(data, "text", default="") or "",
            frequency=GoalFrequency(_pick(data, "frequency", default="weekly")),
            completed=bool(_pick(data, "completed", default=False)),
            created_at=_pick(data, "created_at", "createdAt"),
            updates=updates,
        )


@dataclass(frozen=True)
class ValueItem:
    """A personal value the user reflects against."""
    id: str
    name: str
    description: str = ""
    category: str = ""


class GeneratedVia(Enum):
    """Which path produced a report."""
    MODEL = "model"
    FALLBACK = "fallback"


class DegradeReason(Enum):
    """Why synthesis used the deterministic path."""
    NO_LOGS = "no_logs"
    SAFETY_GATE = "safety_gate"
    MODEL_UNAVAILABLE = "model_unavailable"
    LOAD_TIMEOUT = "load_timeout"
    UNSUPPORTED_MODEL_KIND = "unsupported_model_kind"
    INFERENCE_ERROR = "inference_error"
    INSUFFICIENT_OUTPUT = "insufficient_output"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class SynthesisDegraded:
    """Diagnostic record of a fallback; never raised to the caller."""
    reason: DegradeReason
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"reason": self.reason.value, "detail": self.detail}


@dataclass(frozen=True)
class Report:
    """A finished report or safety message."""
    text: str
    generated_via: GeneratedVia
    detection: Optional[DetectionResult] = None
    degraded: Optional[SynthesisDegraded] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "text": self.text,
            "generated_via": self.generated_via.value,
            "detection": self.detection.to_dict() if self.detection else None,
            "degraded": self.degraded.to_dict() if self.degraded else None,
            "diagnostics": dict(self.diagnostics),
        }
