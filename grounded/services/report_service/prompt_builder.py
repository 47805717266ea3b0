"""Prompt construction for the counseling-coach model.

One prompt asks for three complete, standalone reports (SOAP, DAP, BIRP)
over the same data. Each must restate the mood-trend analysis.
"""
from typing import Dict, List, Optional, Tuple

from grounded.shared.models import LogEntry
from .aggregation import LogAggregate, format_reflection_analysis
from .config import ClinicianConfig, SynthesisConfig
from .formats import BANNER, ReportFormat

PROMPT_OPENING = (
    "Generate a clinical report for therapist review. "
    "Format as THREE SEPARATE TEMPLATES: SOAP, DAP, and BIRP."
)

MOOD_TREND_GUIDANCE = (
    "[Analyze the mood trends data provided above - include patterns, shifts, and insights]"
)

_SECTION_GUIDANCE: Dict[Tuple[ReportFormat, str], str] = {
    (ReportFormat.SOAP, "Subjective"): (
        "[Client's reported experiences, feelings, reflections organized by day. Include:\n"
        "- Daily reflections and what they worked on\n"
        "- Emotional states and feelings\n"
        "- Goals committed to and completed\n"
        "- Patterns over time]"
    ),
    (ReportFormat.SOAP, "Objective"): (
        "[Observable data and patterns:\n"
        "- Number of entries, date range\n"
        "- Mood indicators and emotional state patterns\n"
        "- Goal completion rates\n"
        "- Engagement patterns]"
    ),
    (ReportFormat.SOAP, "Assessment"): (
        "[Clinical interpretation:\n"
        "- Themes and patterns identified\n"
        "- Progress observed\n"
        "- Areas of focus\n"
        "- Connection to treatment goals]"
    ),
    (ReportFormat.SOAP, "Plan"): (
        "[Recommendations for continued work:\n"
        "- Suggested focus areas\n"
        "- Goals to maintain or adjust\n"
        "- Therapeutic considerations]"
    ),
    (ReportFormat.DAP, "Data"): (
        "[Factual information from logs:\n"
        "- Daily activities organized by date\n"
        "- Reflections, goals, emotional states\n"
        "- Completed goals and progress\n"
        "- Engagement metrics]"
    ),
    (ReportFormat.DAP, "Assessment"): (
        "[Clinical assessment:\n"
        "- Patterns in mood and emotional states\n"
        "- Progress toward goals\n"
        "- Themes in reflections\n"
        "- Strengths and areas for growth]"
    ),
    (ReportFormat.DAP, "Plan"): (
        "[Next steps and recommendations:\n"
        "- Continued focus areas\n"
        "- Goal adjustments if needed\n"
        "- Therapeutic interventions to consider]"
    ),
    (ReportFormat.BIRP, "Behavior"): (
        "[Observed behaviors and activities:\n"
        "- Daily reflection practices\n"
        "- Goal-setting and completion behaviors\n"
        "- Engagement with values\n"
        "- Self-monitoring activities]"
    ),
    (ReportFormat.BIRP, "Intervention"): (
        "[Therapeutic interventions and strategies:\n"
        "- Value-based reflection practice\n"
        "- Goal-setting and tracking\n"
        "- Mood monitoring\n"
        "- Self-advocacy activities]"
    ),
    (ReportFormat.BIRP, "Response"): (
        "[Client's response to interventions:\n"
        "- Mood and emotional state changes\n"
        "- Goal completion rates\n"
        "- Engagement levels\n"
        "- Progress indicators]"
    ),
    (ReportFormat.BIRP, "Plan"): (
        "[Future planning:\n"
        "- Maintain current practices\n"
        "- Adjust goals as needed\n"
        "- Continue monitoring\n"
        "- Therapeutic considerations]"
    ),
}

CRITICAL_REQUIREMENTS = (
    "CRITICAL: \n"
    "- Each format must be COMPLETE and STANDALONE\n"
    "- Include mood trends analysis in EACH format\n"
    "- Organize daily content clearly showing what client worked on each day\n"
    "- Mark completed goals clearly with ✅\n"
    "- Use clear headings and spacing for readability\n"
    "- Tone: Supportive, clinical, human"
)


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _count_lines(counts) -> str:
    return "\n".join(f"  {label}: {count} entries" for label, count in counts)


class PromptBuilder:
    """Builds the three-format report prompt from aggregated logs."""

    def __init__(
        self,
        clinician: Optional[ClinicianConfig] = None,
        limits: Optional[SynthesisConfig] = None,
    ):
        self.clinician = clinician or ClinicianConfig()
        self.limits = limits or SynthesisConfig()

    def build(self, aggregate: LogAggregate) -> str:
        sections = [
            PROMPT_OPENING,
            self._clinician_framing(),
            f"MOOD TRENDS DATA:\n{self.mood_trends(aggregate)}{self.goals_summary(aggregate)}",
            f"DAILY ACTIVITY LOGS (organized by date):\n{self.daily_logs(aggregate)}",
            f"OUTPUT FORMAT REQUIREMENTS:\n{self.output_templates()}",
            CRITICAL_REQUIREMENTS,
        ]
        return "\n\n".join(s for s in sections if s)

    def _clinician_framing(self) -> str:
        lines = []
        if self.clinician.protocols:
            names = ", ".join(p.value for p in self.clinician.protocols)
            lines.append(
                f"The reviewing clinician works with: {names}. "
                "Frame the Assessment and Plan sections in terms of these approaches."
            )
        if not self.clinician.allow_structured_recommendations:
            lines.append(
                "Do not include structured homework or step-by-step recommendations. "
                "Keep Plan sections descriptive."
            )
        if self.clinician.custom_prompts:
            lines.append("Clinician focus areas:")
            lines.extend(f"- {p}" for p in self.clinician.custom_prompts)
        return "\n".join(lines)

    def mood_trends(self, aggregate: LogAggregate) -> str:
        text = "Mood Indicators:\n"
        if aggregate.mood_counts:
            text += _count_lines(aggregate.mood_counts)
        if aggregate.emotional_state_counts:
            text += "\n\nEmotional States:\n" + _count_lines(aggregate.emotional_state_counts)
        if aggregate.feeling_counts:
            top = aggregate.feeling_counts[:self.limits.top_feelings]
            text += "\n\nSelected Feelings:\n" + _count_lines(top)
        return text

    def goals_summary(self, aggregate: LogAggregate) -> str:
        text = ""
        if aggregate.completed_goals:
            text = "\n\nCompleted Goals:\n"
            for goal in aggregate.completed_goals:
                name = aggregate.value_name(goal.value_id)
                completed = f" (Completed {goal.created_at.split('T')[0]})" if goal.created_at else ""
                text += f"  ✅ [{name}] {goal.text}{completed}\n"
        if aggregate.active_goals:
            text += "\nActive Goals:\n"
            for goal in aggregate.active_goals:
                name = aggregate.value_name(goal.value_id)
                text += f"  📋 [{name}] {goal.text} ({goal.frequency.value})\n"
        return text

    def daily_logs(self, aggregate: LogAggregate) -> str:
        blocks = []
        for group in aggregate.days:
            lines = [f"=== {group.display_date} ==="]
            for entry in group.entries:
                lines.extend(self._entry_lines(entry, aggregate))
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def _entry_lines(self, entry: LogEntry, aggregate: LogAggregate) -> List[str]:
        header = f"[{entry.time_of_day or 'Time unknown'}] Value: {aggregate.value_name(entry.value_id)}"
        if entry.mood:
            header += f", Mood: {entry.mood}"
        if entry.emotional_state:
            header += f", Emotional State: {entry.emotional_state}"
        if entry.selected_feeling:
            header += f", Feeling: {entry.selected_feeling}"

        lines = [header]
        if entry.deep_reflection:
            lines.append(
                f"  Deep Reflection: {_truncate(entry.deep_reflection, self.limits.reflection_chars)}"
            )
        if entry.goal_text:
            lines.append(f"  Committed Action/Goal: {entry.goal_text}")
            if entry.is_goal_completion:
                lines.append(f"  ✅ GOAL COMPLETED: {entry.goal_text}")
        if entry.reflection_analysis:
            analysis = format_reflection_analysis(entry.reflection_analysis)
            lines.append(f"  Suggested Next Steps: {_truncate(analysis, self.limits.analysis_chars)}")
        if entry.note and not entry.deep_reflection and not entry.is_goal_completion:
            lines.append(f"  Note: {_truncate(entry.note, self.limits.note_chars)}")
        return lines

    @staticmethod
    def output_templates() -> str:
        parts = ["Generate THREE separate, complete reports using these exact templates:"]
        for report_format in ReportFormat:
            body = [report_format.banner(), "", "## Mood Trends Analysis", MOOD_TREND_GUIDANCE]
            for section in report_format.sections:
                body.extend(["", f"## {section}", _SECTION_GUIDANCE[(report_format, section)]])
            parts.append("\n".join(body))
        parts.append(BANNER)
        return "\n\n".join(parts)
