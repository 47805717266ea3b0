"""Report Service configuration.

ClinicianConfig influences prompt framing only. Nothing in it reaches the
crisis detector as detection input.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from grounded.shared.models import EmergencyContact
from grounded.services.llm_service import GenerationOptions


class TherapyProtocol(Enum):
    """Treatment protocols a clinician may work in."""
    CBT = "CBT"
    DBT = "DBT"
    ACT = "ACT"
    EMDR = "EMDR"
    OTHER = "Other"


def _parse_protocols(raw: Any) -> Tuple[TherapyProtocol, ...]:
    if not raw:
        return ()
    items = raw.split(",") if isinstance(raw, str) else raw
    by_name = {p.value.upper(): p for p in TherapyProtocol}
    protocols = [
        by_name.get(str(item).strip().upper(), TherapyProtocol.OTHER)
        for item in items
        if str(item).strip()
    ]
    # Unknown names collapse to OTHER; keep first-seen order without repeats
    return tuple(dict.fromkeys(protocols))


@dataclass(frozen=True)
class ClinicianConfig:
    """Clinician (LCSW) preferences for report framing.

    `crisis_phrases` is accepted for compatibility with stored settings and
    ignored by detection: the fixed taxonomy cannot be edited.
    """
    protocols: Tuple[TherapyProtocol, ...] = ()
    allow_structured_recommendations: bool = True
    emergency_contact: Optional[EmergencyContact] = None
    crisis_phrases: Tuple[str, ...] = ()
    custom_prompts: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClinicianConfig":
        """Build from stored settings (snake_case or camelCase keys)."""
        if not data:
            return cls()

        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        return cls(
            protocols=_parse_protocols(pick("protocols", default=())),
            allow_structured_recommendations=bool(
                pick("allow_structured_recommendations", "allowStructuredRecommendations", default=True)
            ),
            emergency_contact=EmergencyContact.from_dict(
                pick("emergency_contact", "emergencyContact")
            ),
            crisis_phrases=tuple(pick("crisis_phrases", "crisisPhrases", default=())),
            custom_prompts=tuple(pick("custom_prompts", "customPrompts", default=())),
        )

    @classmethod
    def from_env(cls) -> "ClinicianConfig":
        """Create config from environment variables.

        Environment variables:
            GROUNDED_PROTOCOLS: Comma-separated protocols (e.g. "CBT,DBT")
            GROUNDED_STRUCTURED_RECOMMENDATIONS: "true"/"false" (default true)
            GROUNDED_CONTACT_NAME: Emergency contact name
            GROUNDED_CONTACT_PHONE: Emergency contact phone
        """
        name = os.environ.get("GROUNDED_CONTACT_NAME")
        phone = os.environ.get("GROUNDED_CONTACT_PHONE")
        contact = EmergencyContact(name=name, phone=phone) if (name or phone) else None

        return cls(
            protocols=_parse_protocols(os.environ.get("GROUNDED_PROTOCOLS", "")),
            allow_structured_recommendations=os.environ.get(
                "GROUNDED_STRUCTURED_RECOMMENDATIONS", "true"
            ).lower() == "true",
            emergency_contact=contact,
        )


@dataclass(frozen=True)
class SynthesisConfig:
    """Limits and thresholds for report synthesis."""

    # Aggregation and prompt size limits
    detail_days: int = 14
    top_feelings: int = 10
    reflection_chars: int = 500
    analysis_chars: int = 300
    note_chars: int = 200

    # Output repair
    dedup_window: int = 5
    similarity_threshold: float = 0.85
    min_compared_chars: int = 20
    echo_min_chars: int = 100
    min_report_chars: int = 50
    unstructured_min_chars: int = 200

    generation: GenerationOptions = field(default_factory=GenerationOptions)

    def __post_init__(self):
        if self.dedup_window < 1:
            raise ValueError(f"dedup_window must be >= 1, got {self.dedup_window}")
        if not 0.0 < self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be in (0, 1], got {self.similarity_threshold}"
            )
