"""Log aggregation for report synthesis.

Groups logs by calendar day and builds the frequency tables that both the
model prompt and the rule-based fallback report are written from.
"""
import json
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from grounded.shared.models import Goal, LogEntry, ValueItem

GENERAL_VALUE_NAME = "General"

Counts = Tuple[Tuple[str, int], ...]


def format_display_date(day: str) -> str:
    """Render a YYYY-MM-DD key as e.g. "Monday, January 1, 2024"."""
    try:
        parsed = datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        return day
    return f"{parsed:%A}, {parsed:%B} {parsed.day}, {parsed.year}"


def format_reflection_analysis(analysis: Any) -> str:
    """Render a stored reflection analysis as plain text.

    Newer entries store a JSON object (coreThemes, lcswLens,
    reflectiveInquiry, sessionPrep); older ones store markdown whose
    newlines were sometimes flattened to a literal "n".
    """
    if not analysis:
        return ""

    content = analysis
    if isinstance(content, str) and content.strip()[:1] in ("{", "["):
        try:
            content = json.loads(content)
        except ValueError:
            pass

    if isinstance(content, dict):
        lines = []
        themes = content.get("coreThemes")
        if isinstance(themes, list) and themes:
            lines.append(f"Core Themes: {', '.join(str(t) for t in themes)}")
        if content.get("lcswLens"):
            lines.append(f"LCSW Lens: {content['lcswLens']}")
        inquiry = content.get("reflectiveInquiry")
        if isinstance(inquiry, list) and inquiry:
            lines.append(f"Inquiry: {' '.join(str(q) for q in inquiry)}")
        if content.get("sessionPrep"):
            lines.append(f"Session Prep: {content['sessionPrep']}")
        return "\n".join(lines)

    if isinstance(content, str):
        text = content.replace("\\n", "\n")
        text = re.sub(r"([a-z0-9])n-", r"\1\n-", text, flags=re.IGNORECASE)
        text = text.replace("nn##", "\n\n##")
        text = text.replace("n##", "\n##")
        return text

    return str(content)


def _ranked(values: Iterable[str]) -> Counts:
    """Count occurrences, most frequent first; ties keep first-seen order."""
    counts: "OrderedDict[str, int]" = OrderedDict()
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return tuple(sorted(counts.items(), key=lambda item: -item[1]))


@dataclass(frozen=True)
class DayGroup:
    """All log entries from one calendar day."""
    day: str
    entries: Tuple[LogEntry, ...]

    @property
    def display_date(self) -> str:
        return format_display_date(self.day)


@dataclass(frozen=True)
class LogAggregate:
    """Everything a report is written from."""
    total_entries: int
    days: Tuple[DayGroup, ...]
    mood_counts: Counts
    emotional_state_counts: Counts
    feeling_counts: Counts
    value_counts: Counts
    value_names: Dict[str, str] = field(default_factory=dict)
    completed_goals: Tuple[Goal, ...] = ()
    active_goals: Tuple[Goal, ...] = ()

    @property
    def top_mood(self) -> str:
        return self.mood_counts[0][0] if self.mood_counts else "N/A"

    @property
    def top_value(self) -> str:
        return self.value_counts[0][0] if self.value_counts else "N/A"

    @property
    def values_engaged(self) -> int:
        return len(self.value_counts)

    @property
    def date_range(self) -> str:
        if not self.days:
            return "No date range"
        return f"{self.days[-1].display_date} to {self.days[0].display_date}"

    def value_name(self, value_id: str) -> str:
        return resolve_value_name(value_id, self.value_names)

    def recent_days(self, limit: int) -> Tuple[DayGroup, ...]:
        return self.days[:limit]


def resolve_value_name(value_id: str, value_names: Dict[str, str]) -> str:
    """Catalogue name for a value id; unknown ids display as themselves."""
    if not value_id:
        return GENERAL_VALUE_NAME
    return value_names.get(value_id, value_id)


def group_by_day(logs: Sequence[LogEntry]) -> Tuple[DayGroup, ...]:
    """Group logs by calendar day, most recent day first.

    Entries within a day keep their input order.
    """
    by_day: Dict[str, List[LogEntry]] = {}
    for log in logs:
        by_day.setdefault(log.day_key, []).append(log)
    return tuple(
        DayGroup(day=day, entries=tuple(by_day[day]))
        for day in sorted(by_day, reverse=True)
    )


def aggregate_logs(
    logs: Sequence[LogEntry],
    goals: Optional[Sequence[Goal]] = None,
    values: Optional[Sequence[ValueItem]] = None,
) -> LogAggregate:
    """Build frequency tables and day groups from raw logs.

    Args:
        logs: Journal entries (never mutated)
        goals: Optional goal list, split into completed and active
        values: Optional value catalogue used to name value ids

    Returns:
        LogAggregate
    """
    value_names = {v.id: v.name for v in (values or ())}
    goals = goals or ()

    return LogAggregate(
        total_entries=len(logs),
        days=group_by_day(logs),
        mood_counts=_ranked(l.mood for l in logs if l.mood),
        emotional_state_counts=_ranked(l.emotional_state for l in logs if l.emotional_state),
        feeling_counts=_ranked(l.selected_feeling for l in logs if l.selected_feeling),
        value_counts=_ranked(resolve_value_name(l.value_id, value_names) for l in logs),
        value_names=value_names,
        completed_goals=tuple(g for g in goals if g.completed),
        active_goals=tuple(g for g in goals if not g.completed),
    )


def safety_gate_text(logs: Sequence[LogEntry]) -> str:
    """All free text across logs, joined for one detector pass."""
    return " ".join(text for log in logs for text in log.text_fields())
