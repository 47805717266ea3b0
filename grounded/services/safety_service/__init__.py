"""Safety Service: crisis phrase detection and safety messaging.

This service is the first line of defense. All reflection text passes through
the detector BEFORE any model is loaded or invoked, and a detected crisis is
answered with a fixed template rather than generated text.

Components:
- config.py: Fixed crisis phrase taxonomy and DetectorConfig
- detector.py: CrisisDetector (substring scan, escalation, action mapping)
- responses.py: Five-tier safety messages and CRISIS_RESOURCES

Usage:
    from grounded.services.safety_service import CrisisDetector, select_response
    detector = CrisisDetector()
    result = detector.detect(text)
    if result.is_crisis:
        message = select_response(result, contact)
"""

from .config import (
    CRISIS_PHRASES,
    DetectorConfig,
    phrases_by_category,
    phrases_by_severity,
)
from .detector import CrisisDetector, DetectionInputError
from .responses import (
    CRISIS_RESOURCES,
    CrisisResource,
    ResponseSelector,
    ResponseTier,
    format_contact,
    select_response,
    select_tier,
)

__all__ = [
    "CRISIS_PHRASES",
    "DetectorConfig",
    "phrases_by_category",
    "phrases_by_severity",
    "CrisisDetector",
    "DetectionInputError",
    "CRISIS_RESOURCES",
    "CrisisResource",
    "ResponseSelector",
    "ResponseTier",
    "format_contact",
    "select_response",
    "select_tier",
]
