"""Safety messaging for detected crises.

Deterministic templates only: no model is involved in producing a safety
message. Every tier lists the crisis line, the text line and emergency
services, and none of them presents the app as enough help on its own.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from grounded.shared.models import (
    CrisisCategory,
    DetectionResult,
    EmergencyContact,
    RecommendedAction,
    Severity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrisisResource:
    """A real-world support resource shown with every safety message."""
    name: str
    contact_type: str  # "phone" or "text"
    number: str
    display_text: str
    url: Optional[str] = None

    def bullet(self) -> str:
        return f"• **{self.name}** - {self.display_text}"


CRISIS_RESOURCES: Tuple[CrisisResource, ...] = (
    CrisisResource(
        name="988 Suicide & Crisis Lifeline",
        contact_type="phone",
        number="988",
        display_text="Dial 988 (24/7, free, confidential)",
        url="https://988lifeline.org/",
    ),
    CrisisResource(
        name="Crisis Text Line",
        contact_type="text",
        number="741741",
        display_text="Text HOME to 741741",
        url="https://www.crisistextline.org/",
    ),
    CrisisResource(
        name="Emergency Services",
        contact_type="phone",
        number="911",
        display_text="911 (U.S.) or your local emergency number",
    ),
)


class ResponseTier(Enum):
    """The five safety message tiers, most urgent first."""
    IMMEDIATE_SAFETY = "immediate_safety"
    SAFETY_CHECK = "safety_check"
    SELF_HARM_SUPPORT = "self_harm_support"
    THIRD_PARTY_CONCERN = "third_party_concern"
    SUPPORT = "support"


def format_contact(contact: Optional[EmergencyContact]) -> str:
    """Render the caller's contact inline, or a generic provider placeholder."""
    if contact is None:
        return "Your therapist or healthcare provider"
    name = contact.name or "Your therapist"
    reach = contact.phone or contact.email
    return f"{name}: {reach}" if reach else name


def select_tier(result: DetectionResult) -> ResponseTier:
    """Pick the message tier for a detection result."""
    if result.severity == Severity.CRITICAL or result.recommended_action == RecommendedAction.EMERGENCY:
        if result.has_category(CrisisCategory.IMMINENT_DANGER, CrisisCategory.PLANNING_OR_METHOD):
            return ResponseTier.IMMEDIATE_SAFETY
        return ResponseTier.SAFETY_CHECK

    if result.severity == Severity.HIGH or result.recommended_action == RecommendedAction.CONTACT_SUPPORT:
        if result.has_category(CrisisCategory.SELF_HARM):
            return ResponseTier.SELF_HARM_SUPPORT
        if result.has_category(CrisisCategory.THIRD_PARTY_SUICIDE_RISK):
            return ResponseTier.THIRD_PARTY_CONCERN

    return ResponseTier.SUPPORT


def _resource_block(therapist: str, therapist_label: str = "Your Therapist") -> str:
    lines = [r.bullet() for r in CRISIS_RESOURCES]
    lines.append(f"• **{therapist_label}**: {therapist}")
    return "\n".join(lines)


def _immediate_safety(therapist: str) -> str:
    return (
        "🚨 **IMMEDIATE SAFETY CONCERN**\n\n"
        "**Your safety is the most important thing right now.**\n\n"
        "**If you are in immediate danger or feel you might act on thoughts of ending "
        "your life, please contact emergency services (911 in the U.S.) or the 988 "
        "Suicide & Crisis Lifeline right now.**\n\n"
        "**This app cannot help in an emergency. If you are about to harm yourself or "
        "someone else, please call 911 or 988, or your local emergency number, "
        "immediately.**\n\n"
        "**Please also reach out to someone you trust right now**, a close friend, "
        "family member, or someone who can be with you or check in on you. You don't "
        "have to go through this alone.\n\n"
        "**Resources available right now:**\n"
        f"{_resource_block(therapist)}\n\n"
        "**If you have started to carry out a plan to end your life, stop using this "
        "app and contact 911, 988, or your local crisis service for urgent help.**\n\n"
        "*Feeling suicidal is a medical and emotional emergency, not a personal "
        "failure. You deserve support, and help is available.*"
    )


def _safety_check(therapist: str) -> str:
    return (
        "🚨 **SAFETY CHECK**\n\n"
        "**It sounds like you may be thinking about ending your life or hurting "
        "yourself.**\n\n"
        "**Are you having thoughts of suicide right now?**\n\n"
        "**If you are thinking about suicide or have a plan, your safety is the "
        "priority. Please contact emergency services (911 in the U.S.) or the 988 "
        "Suicide & Crisis Lifeline right now.**\n\n"
        "**This app cannot help in an emergency. If you are about to harm yourself, "
        "please call 911 or 988, or your local emergency number, immediately.**\n\n"
        "**Please also reach out to someone you trust right now**, a close friend, "
        "family member, or someone who can be with you. You don't have to go through "
        "this alone.\n\n"
        "**Resources available right now:**\n"
        f"{_resource_block(therapist)}\n\n"
        "*You are not alone in feeling this way, and it is OK to talk about suicide. "
        "Talking with a trained crisis counselor or mental health professional can "
        "help you stay safe.*"
    )


def _self_harm_support(therapist: str) -> str:
    return (
        "⚠️ **SUPPORT NEEDED**\n\n"
        "**Thank you for sharing this. It sounds like you may be hurting yourself or "
        "thinking about self-harm.**\n\n"
        "**What has helped you stay safe so far when you've had thoughts of suicide "
        "or self-harm?**\n\n"
        "**Your safety matters. Please reach out for help:**\n"
        f"{_resource_block(therapist, 'Contact your therapist as soon as possible')}\n"
        "• **Reach out to someone you trust**, a close friend, family member, or "
        "someone who can support you right now\n\n"
        "**This app is not a crisis or emergency service and cannot keep you safe in "
        "an emergency. For urgent help, contact 988, 911, or your local crisis "
        "line.**\n\n"
        "*Feeling suicidal is a medical and emotional emergency, not a personal "
        "failure. You deserve support, and help is available.*"
    )


def _third_party_concern(therapist: str) -> str:
    return (
        "⚠️ **CONCERN FOR SOMEONE ELSE**\n\n"
        "**It sounds like you're concerned about someone else who may be thinking "
        "about suicide or self-harm.**\n\n"
        "**If someone you know is in immediate danger, please contact emergency "
        "services (911) or a crisis line right away.**\n\n"
        "**Resources to help:**\n"
        f"{_resource_block(therapist)}\n\n"
        "**You can also encourage the person to reach out to a trusted friend, family "
        "member, or mental health professional.**\n\n"
        "*This app is not a crisis or emergency service. For urgent situations, "
        "contact local emergency services or crisis lines.*"
    )


def _support(therapist: str, severity: Severity) -> str:
    if severity == Severity.HIGH:
        opening = (
            "⚠️ **SUPPORT AVAILABLE**\n\n"
            "**It sounds like you're going through a very difficult time right now.**\n\n"
            "**Who in your life (family, friends, professionals) could you contact "
            "today to talk about how you're feeling?**\n\n"
            "**Please reach out for help:**\n"
        )
        therapist_label = "Contact your therapist as soon as possible"
    else:
        opening = (
            "**SUPPORT AVAILABLE**\n\n"
            "**It sounds like you're going through a difficult time. Thank you for "
            "sharing this.**\n\n"
            "**Please know that support is available:**\n"
        )
        therapist_label = "Discuss this with your therapist"
    return (
        f"{opening}"
        f"{_resource_block(therapist, therapist_label)}\n"
        "• **Reach out to a trusted person**, a friend, family member, or someone "
        "you trust, and share what you're experiencing\n\n"
        "**If you are thinking about suicide or self-harm, or feel you might act on "
        "harmful thoughts, please stop using the app and reach out to a trusted "
        "person or crisis service now.**\n\n"
        "**This app is not a crisis or emergency service and cannot keep you safe in "
        "an emergency. For urgent help, contact 988, 911, or your local crisis "
        "line.**\n\n"
        "*This app is not a substitute for professional therapy or crisis support. "
        "Only trained people and local services can provide the immediate help you "
        "deserve.*"
    )


def select_response(
    result: DetectionResult,
    contact: Optional[EmergencyContact] = None,
) -> str:
    """Map a detection result to a safety message.

    Args:
        result: Output of CrisisDetector.detect
        contact: Optional emergency contact, interpolated into the message

    Returns:
        Formatted safety message text
    """
    tier = select_tier(result)
    therapist = format_contact(contact)

    logger.info(
        "SAFETY_RESPONSE_SELECTED",
        extra={
            "tier": tier.value,
            "severity": result.severity.value,
            "has_contact": contact is not None,
        }
    )

    if tier == ResponseTier.IMMEDIATE_SAFETY:
        return _immediate_safety(therapist)
    if tier == ResponseTier.SAFETY_CHECK:
        return _safety_check(therapist)
    if tier == ResponseTier.SELF_HARM_SUPPORT:
        return _self_harm_support(therapist)
    if tier == ResponseTier.THIRD_PARTY_CONCERN:
        return _third_party_concern(therapist)
    return _support(therapist, result.severity)


class ResponseSelector:
    """Injectable wrapper around select_response with a default contact."""

    def __init__(self, default_contact: Optional[EmergencyContact] = None):
        self.default_contact = default_contact

    def select(
        self,
        result: DetectionResult,
        contact: Optional[EmergencyContact] = None,
    ) -> str:
        return select_response(result, contact or self.default_contact)
