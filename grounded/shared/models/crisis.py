"""Crisis severity, category and detection domain models.

This file defines the core enums and data structures for crisis detection.
Detection results are derived purely from input text and the fixed phrase
taxonomy; nothing here carries persisted identity.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Severity(Enum):
    """Ordinal crisis severity assigned by phrase match.

    Ordering is low < moderate < high < critical. Escalation never downgrades.
    """
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    @staticmethod
    def max_of(a: "Severity", b: "Severity") -> "Severity":
        return a if a.rank >= b.rank else b


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MODERATE: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class CrisisCategory(Enum):
    """Risk categories of the fixed phrase taxonomy."""
    SUICIDAL_IDEATION_DIRECT = "crisis_suicidal_ideation_direct"
    SUICIDAL_IDEATION_INDIRECT = "crisis_suicidal_ideation_indirect"
    PLANNING_OR_METHOD = "crisis_planning_or_method"
    SELF_HARM = "crisis_self_harm"
    SEVERE_HOPELESSNESS = "risk_severe_hopelessness"
    BEHAVIORAL_RED_FLAGS = "risk_behavioral_red_flags"
    THIRD_PARTY_SUICIDE_RISK = "crisis_third_party_suicide_risk"
    IMMINENT_DANGER = "crisis_imminent_danger"

    @property
    def is_crisis_group(self) -> bool:
        """True for every `crisis_*` category."""
        return self.value.startswith("crisis_")

    @property
    def is_moderate_risk_group(self) -> bool:
        """Hopelessness and behavioral red flags escalate when combined."""
        return self in (CrisisCategory.SEVERE_HOPELESSNESS, CrisisCategory.BEHAVIORAL_RED_FLAGS)

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]


_CATEGORY_DISPLAY_NAMES = {
    CrisisCategory.SUICIDAL_IDEATION_DIRECT: "Direct Suicide Statements",
    CrisisCategory.SUICIDAL_IDEATION_INDIRECT: "Indirect Suicide Statements",
    CrisisCategory.PLANNING_OR_METHOD: "Suicide Planning or Methods",
    CrisisCategory.SELF_HARM: "Self-Harm",
    CrisisCategory.SEVERE_HOPELESSNESS: "Severe Hopelessness",
    CrisisCategory.BEHAVIORAL_RED_FLAGS: "Behavioral Warning Signs",
    CrisisCategory.THIRD_PARTY_SUICIDE_RISK: "Concern for Others",
    CrisisCategory.IMMINENT_DANGER: "Immediate Danger",
}


class RecommendedAction(Enum):
    """Action the caller should take for a detection result."""
    CONTINUE = "continue"
    SHOW_INFO = "show_info"
    CONTACT_SUPPORT = "contact_support"
    EMERGENCY = "emergency"


@dataclass(frozen=True)
class CrisisPhrase:
    """A single taxonomy entry.

    Immutable - the taxonomy is loaded once at import time.
    """
    phrase: str
    category: CrisisCategory
    severity: Severity

    def __post_init__(self):
        if self.phrase != self.phrase.lower():
            raise ValueError(f"Taxonomy phrases must be lowercase, got {self.phrase!r}")
        if self.severity == Severity.LOW:
            raise ValueError("Taxonomy phrases cannot carry LOW severity")


@dataclass(frozen=True)
class DetectionResult:
    """Result of crisis detection on a piece of text.

    Same text always yields an equal DetectionResult.
    """
    is_crisis: bool
    severity: Severity
    detected_phrases: Tuple[str, ...] = ()
    categories: Tuple[CrisisCategory, ...] = ()
    recommended_action: RecommendedAction = RecommendedAction.CONTINUE

    def has_category(self, *categories: CrisisCategory) -> bool:
        return any(category in self.categories for category in categories)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "is_crisis": self.is_crisis,
            "severity": self.severity.value,
            "detected_phrases": list(self.detected_phrases),
            "categories": [c.value for c in self.categories],
            "recommended_action": self.recommended_action.value,
        }


@dataclass(frozen=True)
class EmergencyContact:
    """Caller-supplied contact used only for message interpolation."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["EmergencyContact"]:
        if not data:
            return None
        return cls(
            name=data.get("name") or None,
            phone=data.get("phone") or None,
            email=data.get("email") or None,
            notes=data.get("notes") or None,
        )


@dataclass(frozen=True)
class MentalStateAssessment:
    """Mood-tracker style assessment of recent journaling."""
    anxiety_severity: Severity
    depression_severity: Severity
    key_themes: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)
    timestamp: str = ""
    model_label: Optional[str] = None

    def __post_init__(self):
        for severity in (self.anxiety_severity, self.depression_severity):
            if severity == Severity.CRITICAL:
                raise ValueError("Assessment severities are limited to low, moderate and high")
