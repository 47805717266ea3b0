"""Tests for report configuration parsing."""
import pytest

from grounded.shared.models import EmergencyContact, Goal, GoalFrequency, LogEntry, LogType
from grounded.services.report_service.config import (
    ClinicianConfig,
    SynthesisConfig,
    TherapyProtocol,
)


class TestClinicianConfig:

    def test_defaults(self):
        config = ClinicianConfig.from_dict(None)

        assert config.protocols == ()
        assert config.allow_structured_recommendations is True
        assert config.emergency_contact is None

    def test_from_camel_case(self):
        config = ClinicianConfig.from_dict({
            "protocols": ["CBT", "dbt", "Narrative", "CBT"],
            "allowStructuredRecommendations": False,
            "emergencyContact": {"name": "Dr. Rivera", "phone": "555-0100"},
            "crisisPhrases": ["custom phrase"],
            "customPrompts": ["Focus on sleep"],
        })

        assert config.protocols == (TherapyProtocol.CBT, TherapyProtocol.DBT, TherapyProtocol.OTHER)
        assert config.allow_structured_recommendations is False
        assert config.emergency_contact == EmergencyContact(name="Dr. Rivera", phone="555-0100")
        assert config.crisis_phrases == ("custom phrase",)
        assert config.custom_prompts == ("Focus on sleep",)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GROUNDED_PROTOCOLS", "ACT, EMDR")
        monkeypatch.setenv("GROUNDED_STRUCTURED_RECOMMENDATIONS", "false")
        monkeypatch.setenv("GROUNDED_CONTACT_NAME", "Sam")
        monkeypatch.delenv("GROUNDED_CONTACT_PHONE", raising=False)

        config = ClinicianConfig.from_env()

        assert config.protocols == (TherapyProtocol.ACT, TherapyProtocol.EMDR)
        assert config.allow_structured_recommendations is False
        assert config.emergency_contact == EmergencyContact(name="Sam")

    def test_from_env_without_contact(self, monkeypatch):
        for name in ("GROUNDED_PROTOCOLS", "GROUNDED_CONTACT_NAME", "GROUNDED_CONTACT_PHONE"):
            monkeypatch.delenv(name, raising=False)

        config = ClinicianConfig.from_env()

        assert config.emergency_contact is None
        assert config.protocols == ()


class TestSynthesisConfig:

    def test_defaults(self):
        config = SynthesisConfig()

        assert config.dedup_window == 5
        assert config.similarity_threshold == 0.85
        assert config.generation.max_new_tokens == 2000

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            SynthesisConfig(dedup_window=0)

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            SynthesisConfig(similarity_threshold=1.5)


class TestInputParsing:

    def test_log_from_dict(self):
        log = LogEntry.from_dict({
            "id": 7,
            "date": "2024-02-10T18:30:00.000Z",
            "valueId": "v3",
            "deepReflection": "thinking",
            "goalText": "stretch",
            "type": "goal-completion",
            "selectedFeeling": "proud",
        })

        assert log.id == "7"
        assert log.day_key == "2024-02-10"
        assert log.time_of_day == "18:30"
        assert log.is_goal_completion
        assert log.type == LogType.GOAL_COMPLETION
        assert log.selected_feeling == "proud"

    def test_log_requires_date(self):
        with pytest.raises(ValueError):
            LogEntry.from_dict({"id": "1", "valueId": "v1"})

    def test_goal_from_dict(self):
        goal = Goal.from_dict({
            "valueId": "v1",
            "text": "Walk",
            "frequency": "daily",
            "completed": True,
            "updates": [{"timestamp": "2024-01-01", "note": "done", "mood": "✨"}],
        })

        assert goal.frequency == GoalFrequency.DAILY
        assert goal.completed
        assert goal.updates[0].mood == "✨"
