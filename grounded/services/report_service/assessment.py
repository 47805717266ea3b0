"""Mental state assessment - mood-tracker view of recent journaling.

Combines keyword themes from recent notes with an optional classifier label
from the mood-tracker slot. The current reflection is always screened for
crisis language before anything else runs.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from grounded.shared.models import LogEntry, MentalStateAssessment, Severity
from grounded.shared.utils import hash_text_for_audit
from grounded.services.llm_service import (
    ClassificationOptions,
    InferenceError,
    ModelOrchestrator,
    ModelSlot,
)
from grounded.services.safety_service import CrisisDetector
from .config import ClinicianConfig

logger = logging.getLogger(__name__)

CRISIS_THEME = "CRISIS_DETECTED"
CRISIS_ACTION = "Contact emergency services (911) or crisis hotline (988) immediately"
DEFAULT_ACTION = "Continue journaling and reflecting on your values"

THEME_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "anxiety": ("worried", "anxious", "nervous", "stressed", "panic", "fear"),
    "depression": ("sad", "depressed", "hopeless", "empty", "tired", "worthless"),
    "anger": ("angry", "frustrated", "irritated", "mad", "rage"),
    "gratitude": ("grateful", "thankful", "appreciate", "blessed"),
    "growth": ("learned", "progress", "improved", "better", "growing"),
}

THEME_ACTIONS: Dict[str, Tuple[str, ...]] = {
    "anxiety": (
        "Practice deep breathing exercises",
        "Consider discussing anxiety management strategies with your LCSW",
    ),
    "depression": (
        "Engage in gentle physical activity",
        "Reach out to your support network",
    ),
    "growth": ("Acknowledge your progress and celebrate small wins",),
}

_INTENSIFIERS = re.compile(r"\b(very|extremely|severely)\b")

# Only the most recent notes feed the keyword scan
RECENT_LOG_LIMIT = 10


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def extract_themes(text: str) -> List[str]:
    lower = text.lower()
    return [
        theme for theme, keywords in THEME_KEYWORDS.items()
        if any(keyword in lower for keyword in keywords)
    ]


def theme_severity(text: str, present: bool) -> Severity:
    """High with an intensifier, moderate when the theme is present, else low."""
    if not present:
        return Severity.LOW
    if _INTENSIFIERS.search(text.lower()):
        return Severity.HIGH
    return Severity.MODERATE


class MentalStateAssessor:
    """Keyword and classifier based assessment of recent logs."""

    def __init__(
        self,
        detector: Optional[CrisisDetector] = None,
        orchestrator: Optional[ModelOrchestrator] = None,
    ):
        self.detector = detector or CrisisDetector()
        self.orchestrator = orchestrator

    async def assess(
        self,
        logs: Sequence[LogEntry],
        current_reflection: str,
        config: Optional[ClinicianConfig] = None,
    ) -> MentalStateAssessment:
        """Assess anxiety and depression levels from recent journaling.

        Args:
            logs: Recent logs, most recent first
            current_reflection: Reflection being written now
            config: Clinician settings; crisis phrases are passed to the
                detector and ignored there

        Returns:
            MentalStateAssessment (never raises for well-formed input)

        Logs:
            - ASSESSMENT_CRISIS_SHORT_CIRCUIT: Critical language in the reflection
            - MENTAL_STATE_ASSESSED: After keyword assessment
            - ASSESSMENT_FAILED: Unexpected error, safe defaults returned
        """
        config = config or ClinicianConfig()

        detection = self.detector.detect(
            current_reflection or "",
            clinician_phrases=config.crisis_phrases,
        )
        if detection.severity == Severity.CRITICAL:
            logger.warning(
                "ASSESSMENT_CRISIS_SHORT_CIRCUIT",
                extra={"categories": [c.value for c in detection.categories]}
            )
            return MentalStateAssessment(
                anxiety_severity=Severity.HIGH,
                depression_severity=Severity.HIGH,
                key_themes=[CRISIS_THEME],
                recommended_actions=[CRISIS_ACTION],
                timestamp=_now(),
            )

        try:
            notes = [log.note for log in list(logs)[:RECENT_LOG_LIMIT] if log.note]
            combined = " ".join(notes + [current_reflection or ""]).strip()
            if not combined:
                return MentalStateAssessment(
                    anxiety_severity=Severity.LOW,
                    depression_severity=Severity.LOW,
                    timestamp=_now(),
                )

            themes = extract_themes(combined)
            actions: List[str] = []
            for theme in themes:
                actions.extend(THEME_ACTIONS.get(theme, ()))

            assessment = MentalStateAssessment(
                anxiety_severity=theme_severity(combined, "anxiety" in themes),
                depression_severity=theme_severity(combined, "depression" in themes),
                key_themes=themes,
                recommended_actions=actions,
                timestamp=_now(),
                model_label=await self._classify(combined),
            )
        except Exception as e:
            logger.exception(
                "ASSESSMENT_FAILED",
                extra={"error_type": type(e).__name__}
            )
            return MentalStateAssessment(
                anxiety_severity=Severity.LOW,
                depression_severity=Severity.LOW,
                recommended_actions=[DEFAULT_ACTION],
                timestamp=_now(),
            )

        logger.info(
            "MENTAL_STATE_ASSESSED",
            extra={
                "text_hash": hash_text_for_audit(combined),
                "themes": assessment.key_themes,
                "anxiety": assessment.anxiety_severity.value,
                "depression": assessment.depression_severity.value,
                "model_label": assessment.model_label,
            }
        )
        return assessment

    async def _classify(self, text: str) -> Optional[str]:
        """Mood-tracker label, or None when no classifier is available."""
        if self.orchestrator is None:
            return None

        if not await self.orchestrator.ensure_loaded(ModelSlot.MOOD_TRACKER):
            return None

        try:
            return await self.orchestrator.invoke(
                ModelSlot.MOOD_TRACKER, text, ClassificationOptions()
            )
        except InferenceError as e:
            logger.warning(
                "MOOD_CLASSIFICATION_SKIPPED",
                extra={"reason": e.reason.value, "model_id": e.model_id}
            )
            return None
