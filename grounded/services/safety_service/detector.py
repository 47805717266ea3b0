"""Crisis phrase detector.

Every piece of reflection text passes through here BEFORE any model sees it.
Detection is a deterministic substring scan over the fixed taxonomy in
config.py: no tokenization, no stemming, no fuzzy matching. A phrase quoted
inside an unrelated sentence still matches; false positives are preferred
over false negatives.
"""
import logging
import time
from typing import List, Optional, Sequence

from grounded.shared.models import (
    CrisisCategory,
    DetectionResult,
    RecommendedAction,
    Severity,
)
from grounded.shared.utils import hash_text_for_audit
from .config import CRISIS_PHRASES, DetectorConfig

logger = logging.getLogger(__name__)


class DetectionInputError(TypeError):
    """Raised when detect() receives something other than text.

    This is a programming error in the caller, not a runtime condition.
    """


class CrisisDetector:
    """Deterministic crisis detector over the fixed phrase taxonomy.

    Pure and total for string input: the same text always yields an equal
    DetectionResult, and no caller-supplied data changes what counts as a
    crisis.
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self._phrases = CRISIS_PHRASES

        logger.info(
            "CRISIS_DETECTOR_INITIALIZED",
            extra={
                "pattern_version": self.config.pattern_version,
                "phrase_count": len(self._phrases),
            }
        )

    def detect(
        self,
        text: str,
        clinician_phrases: Optional[Sequence[str]] = None,
    ) -> DetectionResult:
        """Scan text for crisis phrases.

        Args:
            text: Free text to classify
            clinician_phrases: Phrases from clinician configuration. Accepted
                for interface compatibility and ignored.

        Returns:
            DetectionResult with severity, categories and recommended action

        Raises:
            DetectionInputError: If text is not a string

        Logs:
            - CLINICIAN_PHRASES_IGNORED: If clinician phrases were supplied
            - CRISIS_DETECTED: If any phrase matched
            - CRISIS_DETECTION_COMPLETED: After every scan
        """
        if not isinstance(text, str):
            raise DetectionInputError(
                f"detect() expects str, got {type(text).__name__}"
            )

        start_time = time.perf_counter()

        if clinician_phrases:
            logger.info(
                "CLINICIAN_PHRASES_IGNORED",
                extra={"phrase_count": len(clinician_phrases)}
            )

        lower_text = text.lower()
        detected_phrases: List[str] = []
        categories: List[CrisisCategory] = []
        severity = Severity.LOW

        for entry in self._phrases:
            if entry.phrase in lower_text:
                detected_phrases.append(entry.phrase)
                if entry.category not in categories:
                    categories.append(entry.category)
                severity = Severity.max_of(severity, entry.severity)

        severity = self._escalate(severity, categories)
        is_crisis = bool(detected_phrases)
        action = self._recommend_action(severity, categories, is_crisis)

        result = DetectionResult(
            is_crisis=is_crisis,
            severity=severity,
            detected_phrases=tuple(detected_phrases),
            categories=tuple(categories),
            recommended_action=action,
        )

        latency_ms = (time.perf_counter() - start_time) * 1000
        self._log_result(result, text, latency_ms)
        return result

    def _escalate(
        self,
        severity: Severity,
        categories: List[CrisisCategory],
    ) -> Severity:
        """Raise moderate to high when risk factors combine with a crisis group.

        Never lowers severity. Every crisis group phrase in the built-in
        table is already high or critical, so this only changes results for
        phrase tables that add moderate crisis entries.
        """
        has_moderate_group = any(c.is_moderate_risk_group for c in categories)
        has_crisis_group = any(c.is_crisis_group for c in categories)
        if has_moderate_group and has_crisis_group and severity == Severity.MODERATE:
            return Severity.HIGH
        return severity

    def _recommend_action(
        self,
        severity: Severity,
        categories: List[CrisisCategory],
        is_crisis: bool,
    ) -> RecommendedAction:
        if severity == Severity.CRITICAL:
            return RecommendedAction.EMERGENCY
        if (
            severity == Severity.HIGH
            or CrisisCategory.SELF_HARM in categories
            or CrisisCategory.THIRD_PARTY_SUICIDE_RISK in categories
        ):
            return RecommendedAction.CONTACT_SUPPORT
        if is_crisis:
            return RecommendedAction.SHOW_INFO
        return RecommendedAction.CONTINUE

    def _log_result(self, result: DetectionResult, text: str, latency_ms: float) -> None:
        text_hash = hash_text_for_audit(text)

        if result.is_crisis:
            log = logger.critical if result.severity == Severity.CRITICAL else logger.warning
            log(
                "CRISIS_DETECTED",
                extra={
                    "text_hash": text_hash,
                    "severity": result.severity.value,
                    "categories": [c.value for c in result.categories],
                    "phrase_count": len(result.detected_phrases),
                    "recommended_action": result.recommended_action.value,
                }
            )

        if latency_ms > self.config.max_scan_latency_ms:
            logger.warning(
                "CRISIS_DETECTION_SLOW",
                extra={"latency_ms": latency_ms, "text_length": len(text)}
            )

        logger.info(
            "CRISIS_DETECTION_COMPLETED",
            extra={
                "text_hash": text_hash,
                "is_crisis": result.is_crisis,
                "severity": result.severity.value,
                "pattern_version": self.config.pattern_version,
                "latency_ms": latency_ms,
            }
        )
