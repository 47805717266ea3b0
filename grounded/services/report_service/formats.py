"""Clinical note formats and the fixed markers shared by every report."""
from enum import Enum
from typing import Tuple

BANNER = "═" * 63

RULE_BASED_DISCLAIMER = (
    "*This report was generated using rule-based analysis. "
    "All processing happens on your device for privacy.*"
)

ON_DEVICE_DISCLAIMER = (
    "*This report is generated on-device for your personal review and discussion "
    "with your LCSW. It is not a substitute for professional clinical assessment.*"
)

NO_LOGS_MESSAGE = "No logs available for synthesis."

# Markers that identify generated text as an actual report
STRUCTURE_MARKERS: Tuple[str, ...] = ("SOAP", "DAP", "BIRP", "Subjective", "Assessment")


class ReportFormat(Enum):
    SOAP = "SOAP"
    DAP = "DAP"
    BIRP = "BIRP"

    @property
    def sections(self) -> Tuple[str, ...]:
        return _SECTIONS[self]

    @property
    def heading(self) -> str:
        return f"# {self.value} FORMAT REPORT"

    def banner(self) -> str:
        """Banner block opening this format's section."""
        return f"{BANNER}\n{self.heading}\n{BANNER}"


_SECTIONS = {
    ReportFormat.SOAP: ("Subjective", "Objective", "Assessment", "Plan"),
    ReportFormat.DAP: ("Data", "Assessment", "Plan"),
    ReportFormat.BIRP: ("Behavior", "Intervention", "Response", "Plan"),
}


def with_disclaimer(text: str, disclaimer: str) -> str:
    return f"{text}\n\n---\n\n{disclaimer}"
