"""Deterministic rule-based report.

Produced whenever the coach model is unavailable, times out, or yields
unusable output. Same inputs always give the same text.
"""
from typing import List, Optional

from grounded.shared.models import LogEntry
from .aggregation import DayGroup, LogAggregate, format_reflection_analysis
from .config import SynthesisConfig
from .formats import BANNER, ReportFormat

CLOSING_NOTE = (
    "*This is a basic summary. For detailed analysis, please review entries "
    "manually or discuss with your LCSW.*"
)


def _entry_detail(entry: LogEntry, aggregate: LogAggregate) -> str:
    text = f"\n*{aggregate.value_name(entry.value_id)}*\n"

    indicators = []
    if entry.mood:
        indicators.append(f"Mood: {entry.mood}")
    if entry.emotional_state:
        indicators.append(f"Emotional State: {entry.emotional_state}")
    if entry.selected_feeling:
        indicators.append(f"Feeling: {entry.selected_feeling}")
    if indicators:
        text += " ".join(indicators) + "\n"

    if entry.deep_reflection:
        text += f"\nDeep Reflection:\n{entry.deep_reflection}\n"
    elif entry.note and not entry.is_goal_completion:
        text += f"\nNote:\n{entry.note}\n"

    if entry.goal_text:
        prefix = "✅ COMPLETED " if entry.is_goal_completion else ""
        text += f"\n{prefix}Committed Action/Goal:\n{entry.goal_text}\n"

    if entry.reflection_analysis:
        analysis = format_reflection_analysis(entry.reflection_analysis)
        if analysis:
            text += f"\nSuggested Next Steps:\n{analysis}\n"
    return text


def daily_detail(days: List[DayGroup], aggregate: LogAggregate) -> str:
    """Per-day entry detail, most recent day first."""
    text = ""
    for group in days:
        text += f"\n\n**{group.display_date}**\n"
        for entry in group.entries:
            text += _entry_detail(entry, aggregate)
    return text


def goals_summary(aggregate: LogAggregate) -> str:
    if not aggregate.completed_goals and not aggregate.active_goals:
        return ""

    text = "\n\n**Goals Summary**\n"
    if aggregate.completed_goals:
        text += f"\nCompleted Goals ({len(aggregate.completed_goals)}):\n"
        for goal in aggregate.completed_goals:
            text += f"  ✅ {aggregate.value_name(goal.value_id)}: {goal.text}\n"
    if aggregate.active_goals:
        text += f"\nActive Goals ({len(aggregate.active_goals)}):\n"
        for goal in aggregate.active_goals:
            text += (
                f"  📋 {aggregate.value_name(goal.value_id)}: {goal.text} "
                f"({goal.frequency.value})\n"
            )
    return text


def mood_trends(aggregate: LogAggregate) -> str:
    counts = ", ".join(f"{mood} ({count})" for mood, count in aggregate.mood_counts)
    text = (
        f"## Mood Trends Analysis\n"
        f"Mood indicators show: {aggregate.top_mood} as most common. "
        f"Client has logged {aggregate.total_entries} reflection entries "
        f"across {aggregate.values_engaged} values."
    )
    if counts:
        text += f"\nMood counts: {counts}."
    return text


def _soap(aggregate: LogAggregate, detail: str) -> str:
    return "\n\n".join([
        ReportFormat.SOAP.banner(),
        mood_trends(aggregate),
        (
            f"## Subjective\nClient has logged {aggregate.total_entries} reflection entries, "
            f"with primary focus on {aggregate.top_value}. "
            f"Most common mood indicator: {aggregate.top_mood}.{detail}"
        ),
        (
            "## Objective\nPatterns show engagement with value-based reflection practice. "
            f"Entries span {aggregate.date_range}. "
            f"Total entries: {aggregate.total_entries}, Values engaged: {aggregate.values_engaged}."
        ),
        (
            "## Assessment\nClient is actively engaging in self-reflection and value alignment "
            "work. Consistent practice observed with mood tracking and goal setting."
        ),
        (
            "## Plan\nContinue value-based reflection. Review patterns with LCSW in next "
            "session. Maintain current engagement level."
        ),
    ])


def _dap(aggregate: LogAggregate, detail: str) -> str:
    return "\n\n".join([
        ReportFormat.DAP.banner(),
        mood_trends(aggregate),
        (
            f"## Data\n{aggregate.total_entries} entries, {aggregate.values_engaged} values "
            f"engaged, mood tracking active. Date range: {aggregate.date_range}.{detail}"
        ),
        (
            "## Assessment\nConsistent engagement with reflection practice. "
            f"Primary value focus: {aggregate.top_value}. "
            "Active mood monitoring and goal tracking observed."
        ),
        (
            "## Plan\nMaintain current practice. Discuss themes and patterns with LCSW. "
            "Continue value-based reflection work."
        ),
    ])


def _birp(aggregate: LogAggregate, detail: str) -> str:
    return "\n\n".join([
        ReportFormat.BIRP.banner(),
        mood_trends(aggregate),
        (
            "## Behavior\nClient consistently logs reflections and tracks mood states. "
            f"Engages with value-based practice regularly.{detail}"
        ),
        (
            "## Intervention\nValue-based reflection practice, self-monitoring, mood tracking, "
            "goal setting and completion."
        ),
        (
            f"## Response\nActive engagement, {aggregate.total_entries} entries completed. "
            "Consistent practice maintained. Positive engagement with therapeutic tools."
        ),
        (
            "## Plan\nContinue practice, review with LCSW. Maintain current engagement level. "
            "Monitor progress and adjust goals as needed."
        ),
    ])


def generate_fallback_report(
    aggregate: LogAggregate,
    config: Optional[SynthesisConfig] = None,
) -> str:
    """Build the SOAP, DAP and BIRP reports from aggregated logs alone.

    Args:
        aggregate: Aggregated logs (at least one entry)
        config: Limits; only `detail_days` is used here

    Returns:
        Report text without disclaimer
    """
    config = config or SynthesisConfig()
    detail = daily_detail(list(aggregate.recent_days(config.detail_days)), aggregate)
    detail += goals_summary(aggregate)

    return "\n\n".join([
        _soap(aggregate, detail),
        _dap(aggregate, detail),
        _birp(aggregate, detail),
        BANNER,
        CLOSING_NOTE,
    ])
