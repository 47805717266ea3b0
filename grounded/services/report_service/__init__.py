"""Report Service: clinical report synthesis from journal logs.

Components:
- aggregation.py: Day grouping and frequency tables
- prompt_builder.py: Three-format (SOAP, DAP, BIRP) coach prompt
- output_repair.py: Echo strip, windowed sentence dedup, loop collapse
- fallback_report.py: Deterministic rule-based report
- assessment.py: MentalStateAssessor (keyword themes + mood classifier)
- synthesizer.py: ReportSynthesizer, the end-to-end flow

Usage:
    from grounded.services.report_service import ReportSynthesizer
    synthesizer = ReportSynthesizer(orchestrator)
    report = await synthesizer.synthesize(logs, contact)
"""

from .aggregation import (
    DayGroup,
    LogAggregate,
    aggregate_logs,
    format_reflection_analysis,
    group_by_day,
)
from .assessment import MentalStateAssessor
from .config import ClinicianConfig, SynthesisConfig, TherapyProtocol
from .fallback_report import generate_fallback_report
from .formats import (
    ON_DEVICE_DISCLAIMER,
    RULE_BASED_DISCLAIMER,
    ReportFormat,
)
from .output_repair import deduplicate_segments, repair_output
from .prompt_builder import PromptBuilder
from .synthesizer import ReportSynthesizer

__all__ = [
    "DayGroup",
    "LogAggregate",
    "aggregate_logs",
    "format_reflection_analysis",
    "group_by_day",
    "MentalStateAssessor",
    "ClinicianConfig",
    "SynthesisConfig",
    "TherapyProtocol",
    "generate_fallback_report",
    "ON_DEVICE_DISCLAIMER",
    "RULE_BASED_DISCLAIMER",
    "ReportFormat",
    "deduplicate_segments",
    "repair_output",
    "PromptBuilder",
    "ReportSynthesizer",
]
