"""Report synthesis - the end-to-end report flow.

Order of operations for every request:
1. Safety gate: all log text goes through the crisis detector. A critical
   result returns a safety message and no model is touched.
2. Aggregation and prompt construction.
3. Counseling-coach model invocation and output repair.
4. Deterministic fallback whenever step 3 cannot produce a usable report.

The caller always receives a finished Report, never an exception, for
well-formed input.
"""
import logging
import time
from typing import Any, Dict, Optional, Sequence, Union

from grounded.shared.models import (
    DegradeReason,
    DetectionResult,
    EmergencyContact,
    GeneratedVia,
    Goal,
    LogEntry,
    Report,
    Severity,
    SynthesisDegraded,
    ValueItem,
)
from grounded.shared.utils import hash_text_for_audit
from grounded.services.llm_service import (
    InferenceError,
    ModelKind,
    ModelOrchestrator,
    ModelSlot,
)
from grounded.services.safety_service import CrisisDetector, ResponseSelector
from .aggregation import LogAggregate, aggregate_logs, safety_gate_text
from .config import ClinicianConfig, SynthesisConfig
from .fallback_report import generate_fallback_report
from .formats import (
    NO_LOGS_MESSAGE,
    ON_DEVICE_DISCLAIMER,
    RULE_BASED_DISCLAIMER,
    with_disclaimer,
)
from .output_repair import repair_output
from .prompt_builder import PromptBuilder

logger = logging.getLogger(__name__)

SAFETY_REPORT_HEADING = "# 🚨 SAFETY CONCERN DETECTED IN YOUR RECORDS"
SAFETY_REVIEW_NOTE = (
    "# Clinical Summary\n\n"
    "Due to safety concerns detected in these logs, a full clinical summary should "
    "be reviewed with your LCSW or mental health professional in person."
)

LogInput = Union[LogEntry, Dict[str, Any]]


class _Degrade(Exception):
    """Internal signal that the model path cannot produce a report."""

    def __init__(self, reason: DegradeReason, detail: str = ""):
        super().__init__(detail)
        self.record = SynthesisDegraded(reason=reason, detail=detail)


def _coerce(items, model):
    return [item if isinstance(item, model) else model.from_dict(item) for item in items or ()]


class ReportSynthesizer:
    """Builds SOAP, DAP and BIRP reports from journal logs."""

    def __init__(
        self,
        orchestrator: ModelOrchestrator,
        detector: Optional[CrisisDetector] = None,
        config: Optional[ClinicianConfig] = None,
        synthesis_config: Optional[SynthesisConfig] = None,
    ):
        """Initialize synthesizer.

        Args:
            orchestrator: Model orchestrator owning the counseling-coach slot
            detector: Crisis detector for the safety gate
            config: Clinician preferences (prompt framing, default contact)
            synthesis_config: Limits and repair thresholds
        """
        self.orchestrator = orchestrator
        self.detector = detector or CrisisDetector()
        self.config = config or ClinicianConfig()
        self.synthesis_config = synthesis_config or SynthesisConfig()
        self.responses = ResponseSelector(default_contact=self.config.emergency_contact)
        self.prompt_builder = PromptBuilder(self.config, self.synthesis_config)

    async def synthesize(
        self,
        logs: Sequence[LogInput],
        contact: Optional[Union[EmergencyContact, Dict[str, Any]]] = None,
        goals: Optional[Sequence[Union[Goal, Dict[str, Any]]]] = None,
        values: Optional[Sequence[ValueItem]] = None,
    ) -> Report:
        """Produce a report for a set of logs.

        Args:
            logs: Journal entries (LogEntry or stored dicts)
            contact: Emergency contact for safety messaging (EmergencyContact or stored dict)
            goals: Optional goals (Goal or stored dicts)
            values: Optional value catalogue for naming value ids

        Returns:
            Report from the model path or the deterministic fallback

        Logs:
            - REPORT_SYNTHESIS_STARTED
            - REPORT_SAFETY_GATE_TRIGGERED: Critical language found in logs
            - REPORT_SYNTHESIS_DEGRADED: Fallback path used (warning)
            - REPORT_SYNTHESIS_COMPLETED
        """
        start_time = time.perf_counter()
        entries = _coerce(logs, LogEntry)
        if isinstance(contact, dict):
            contact = EmergencyContact.from_dict(contact)

        if not entries:
            degraded = SynthesisDegraded(DegradeReason.NO_LOGS)
            self._log_degraded(degraded)
            return Report(
                text=with_disclaimer(NO_LOGS_MESSAGE, ON_DEVICE_DISCLAIMER),
                generated_via=GeneratedVia.FALLBACK,
                degraded=degraded,
            )

        gate_text = safety_gate_text(entries)
        logger.info(
            "REPORT_SYNTHESIS_STARTED",
            extra={
                "log_count": len(entries),
                "text_hash": hash_text_for_audit(gate_text),
            }
        )

        detection = self.detector.detect(gate_text, clinician_phrases=self.config.crisis_phrases)
        if detection.severity == Severity.CRITICAL:
            return self._safety_report(detection, contact)

        aggregate = aggregate_logs(entries, _coerce(goals, Goal), values)

        try:
            text = await self._generate(aggregate)
            report = Report(
                text=with_disclaimer(text, ON_DEVICE_DISCLAIMER),
                generated_via=GeneratedVia.MODEL,
                detection=detection,
                diagnostics={"model_id": self._coach_model_id()},
            )
        except _Degrade as e:
            report = self._fallback(aggregate, detection, e.record)
        except Exception as e:
            logger.exception(
                "REPORT_SYNTHESIS_UNEXPECTED_ERROR",
                extra={"error_type": type(e).__name__}
            )
            report = self._fallback(
                aggregate,
                detection,
                SynthesisDegraded(DegradeReason.UNEXPECTED_ERROR, type(e).__name__),
            )

        logger.info(
            "REPORT_SYNTHESIS_COMPLETED",
            extra={
                "generated_via": report.generated_via.value,
                "report_length": len(report.text),
                "day_count": len(aggregate.days),
                "latency_ms": (time.perf_counter() - start_time) * 1000,
            }
        )
        return report

    async def _generate(self, aggregate: LogAggregate) -> str:
        """Model path. Raises _Degrade whenever the fallback must be used."""
        slot = ModelSlot.COUNSELING_COACH

        if not await self.orchestrator.ensure_loaded(slot):
            status = self.orchestrator.status(slot)
            if status.loading:
                raise _Degrade(DegradeReason.LOAD_TIMEOUT, "coach model still loading")
            detail = status.last_error.message if status.last_error else status.state.value
            raise _Degrade(DegradeReason.MODEL_UNAVAILABLE, detail)

        handle = self.orchestrator.handle(slot)
        if handle is None or handle.kind != ModelKind.GENERATOR:
            kind = handle.kind.value if handle else "none"
            raise _Degrade(DegradeReason.UNSUPPORTED_MODEL_KIND, kind)

        prompt = self.prompt_builder.build(aggregate)
        try:
            generated = await self.orchestrator.invoke(
                slot, prompt, self.synthesis_config.generation
            )
        except InferenceError as e:
            raise _Degrade(DegradeReason.INFERENCE_ERROR, e.reason.value) from e

        repaired = repair_output(generated, prompt, self.synthesis_config)
        if repaired is None:
            raise _Degrade(DegradeReason.INSUFFICIENT_OUTPUT, f"{len(generated or '')} chars")
        return repaired

    def _coach_model_id(self) -> Optional[str]:
        handle = self.orchestrator.handle(ModelSlot.COUNSELING_COACH)
        return handle.model_id if handle else None

    def _fallback(
        self,
        aggregate: LogAggregate,
        detection: DetectionResult,
        degraded: SynthesisDegraded,
    ) -> Report:
        self._log_degraded(degraded)
        text = generate_fallback_report(aggregate, self.synthesis_config)
        text = with_disclaimer(text, RULE_BASED_DISCLAIMER)
        return Report(
            text=with_disclaimer(text, ON_DEVICE_DISCLAIMER),
            generated_via=GeneratedVia.FALLBACK,
            detection=detection,
            degraded=degraded,
        )

    def _safety_report(
        self,
        detection: DetectionResult,
        contact: Optional[EmergencyContact],
    ) -> Report:
        logger.critical(
            "REPORT_SAFETY_GATE_TRIGGERED",
            extra={
                "severity": detection.severity.value,
                "categories": [c.value for c in detection.categories],
                "phrase_count": len(detection.detected_phrases),
            }
        )
        message = self.responses.select(detection, contact)
        text = f"{SAFETY_REPORT_HEADING}\n\n{message}\n\n---\n\n{SAFETY_REVIEW_NOTE}"
        degraded = SynthesisDegraded(DegradeReason.SAFETY_GATE, detection.severity.value)
        self._log_degraded(degraded)
        return Report(
            text=with_disclaimer(text, ON_DEVICE_DISCLAIMER),
            generated_via=GeneratedVia.FALLBACK,
            detection=detection,
            degraded=degraded,
        )

    @staticmethod
    def _log_degraded(degraded: SynthesisDegraded) -> None:
        logger.warning(
            "REPORT_SYNTHESIS_DEGRADED",
            extra={"reason": degraded.reason.value, "detail": degraded.detail}
        )
