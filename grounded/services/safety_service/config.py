"""Safety Service configuration and the fixed crisis phrase taxonomy.

The taxonomy is hard-coded and not editable at runtime. Clinician-supplied
phrase lists never add to, remove from, or re-weight these entries.

Source: crisis intervention phrase guidance used by the reflection app
(988 Lifeline / Crisis Text Line screening language).
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from grounded.shared.models import CrisisCategory, CrisisPhrase, Severity


@dataclass(frozen=True)
class DetectorConfig:
    """Configuration for crisis detection behavior."""

    # Version tracking for audit trail
    pattern_version: str = "2025.11.02"

    # Detection is a pure string scan; anything slower is logged as a warning
    max_scan_latency_ms: int = 50


def _group(
    category: CrisisCategory,
    severity: Severity,
    phrases: Iterable[str],
) -> Tuple[CrisisPhrase, ...]:
    return tuple(CrisisPhrase(phrase=p, category=category, severity=severity) for p in phrases)


# =============================================================================
# 1. DIRECT SUICIDE STATEMENTS (critical)
# =============================================================================
_DIRECT_IDEATION = _group(
    CrisisCategory.SUICIDAL_IDEATION_DIRECT,
    Severity.CRITICAL,
    (
        "i want to die",
        "i want to kill myself",
        "i am going to kill myself",
        "i'm suicidal",
        "i have suicidal thoughts",
        "i've been thinking about suicide",
        "i am planning to end my life",
        "i'm going to end it all",
        "i'm going to end my life",
        "i want to end it",
        "i'm done with life",
        "i don't want to live anymore",
        "life is not worth living",
        "i'm better off dead",
        "everyone would be better off without me",
        "i wish i hadn't been born",
        "i wish i were dead",
        "i wish i didn't exist",
        "i'm thinking about ending everything",
        "i just want it all to stop permanently",
        "i can't go on living like this",
        "i have no reason to live",
    ),
)

# =============================================================================
# 2. INDIRECT OR CODED IDEATION (high)
# =============================================================================
_INDIRECT_IDEATION = _group(
    CrisisCategory.SUICIDAL_IDEATION_INDIRECT,
    Severity.HIGH,
    (
        "i can't go on",
        "i can't do this anymore",
        "i'm at the end of my rope",
        "i feel trapped",
        "there's no way out",
        "i'm done",
        "i'm finished",
        "i'm so tired of this life",
        "i just want to disappear",
        "i just want to go to sleep and not wake up",
        "i don't want to be here anymore",
        "i don't see a future for myself",
        "nothing will ever get better",
        "there's no point in trying anymore",
        "i have nothing to live for",
        "i'm such a burden",
        "people would be better off without me",
        "the world would be better if i were gone",
        "soon this will all be over",
        "if i see you again",
        "i won't be around much longer",
        "you won't have to worry about me soon",
    ),
)

# =============================================================================
# 3. METHODS OR PREPARATION (critical - indicates planning)
# =============================================================================
_METHOD = _group(
    CrisisCategory.PLANNING_OR_METHOD,
    Severity.CRITICAL,
    (
        "i'm going to jump",
        "jump off a bridge",
        "jump in front of a train",
        "i'm going to take all my pills",
        "i'm going to overdose",
        "use gun on myself",
        "use knife on myself",
        "use razor on myself",
        "i'm going to hang myself",
        "i'm going to drown myself",
        "researching painless ways to die",
        "looking up how to kill myself",
        "how many pills it takes to overdose",
        "most effective suicide methods",
        "bought a gun for myself",
        "bought a rope",
        "saving my meds for when i'm ready",
        "wrote my suicide note",
        "picked the day i'm going to do it",
        "i know exactly how i'm going to end my life",
        "i have everything ready to end it",
        "tried to overdose before",
        "tried to cut before",
        "tried to jump before",
        "tried to hang myself before",
        "last time i tried to kill myself",
    ),
)

# =============================================================================
# 4. SELF-HARM WITHOUT EXPLICIT SUICIDE (high)
# =============================================================================
_SELF_HARM = _group(
    CrisisCategory.SELF_HARM,
    Severity.HIGH,
    (
        "i've been cutting myself",
        "i cut myself to cope",
        "i hurt myself on purpose",
        "scratching myself until i bleed",
        "i've been burning myself",
        "i punch myself",
        "i hit my head",
        "i pull out my hair when i'm upset",
        "i starve myself on purpose",
        "i binge and then make myself throw up",
        "i want to hurt myself",
        "i'm scared i might hurt myself",
        "i can't stop hurting myself",
        "i like seeing myself bleed",
        "i deserve to be hurt",
        "i'm thinking about cutting again",
        "i have the blade ready",
        "i have the knife ready",
        "i have the razor ready",
    ),
)

# =============================================================================
# 5. SEVERE HOPELESSNESS / WORTHLESSNESS (moderate - escalates when combined)
# =============================================================================
_HOPELESSNESS = _group(
    CrisisCategory.SEVERE_HOPELESSNESS,
    Severity.MODERATE,
    (
        "i feel hopeless",
        "nothing will ever change",
        "i feel completely alone",
        "i feel empty all the time",
        "i'm useless",
        "i'm worthless",
        "i'm a failure at everything",
        "i hate myself",
        "i'm disgusting",
        "i'm a burden to everyone",
        "everyone hates me",
        "nobody cares if i live or die",
        "no one would miss me",
        "i don't matter",
        "i have no purpose",
        "i'm broken beyond repair",
    ),
)

# =============================================================================
# 6. BEHAVIORAL RED FLAGS (moderate - escalates when combined)
# =============================================================================
_BEHAVIORAL = _group(
    CrisisCategory.BEHAVIORAL_RED_FLAGS,
    Severity.MODERATE,
    (
        "i've been giving away my stuff",
        "i'm saying goodbye to people",
        "i've been writing letters to everyone",
        "making sure everything is in order for when i'm gone",
        "i quit my job and don't care what happens",
        "i've been isolating from everyone",
        "i don't talk to my friends or family anymore",
        "i stay in my room all day",
        "i started drinking a lot more",
        "i'm using drugs to escape",
        "i've been driving recklessly on purpose",
        "i don't care if i get hurt anymore",
    ),
)

# =============================================================================
# 7. CONCERN FOR SOMEONE ELSE (high)
# =============================================================================
_THIRD_PARTY = _group(
    CrisisCategory.THIRD_PARTY_SUICIDE_RISK,
    Severity.HIGH,
    (
        "my friend wants to kill themselves",
        "my friend is talking about suicide",
        "my friend said they want to die",
        "someone i know is going to end their life",
        "my child keeps saying they wish they were dead",
        "my partner said the world would be better without them",
        "a friend told me they are going to overdose",
        "someone i know is cutting themself",
        "my friend is talking about how they would do it",
        "my friend wrote a suicide note",
        "i'm scared my friend will hurt themselves",
    ),
)

# =============================================================================
# 8. IMMINENT DANGER (critical)
# =============================================================================
_IMMINENT = _group(
    CrisisCategory.IMMINENT_DANGER,
    Severity.CRITICAL,
    (
        "i'm going to do it now",
        "i'm going to do it tonight",
        "i can't stop myself",
        "i don't think i can stay safe",
        "i'm alone and i'm scared of what i might do",
        "i already took the pills",
        "i already cut myself and it won't stop bleeding",
        "i'm bleeding a lot",
        "i swallowed a lot of pills",
        "i just tried to hang myself",
        "i just tried to kill myself",
        "i'm sitting here with a gun",
        "i'm sitting here with a knife",
        "i'm sitting here with pills",
        "i'm sitting here with a rope",
        "i'm in the car ready to drive off the bridge",
    ),
)

# Master list used for detection. Order is significant: detected phrases are
# reported in taxonomy order.
CRISIS_PHRASES: Tuple[CrisisPhrase, ...] = (
    _DIRECT_IDEATION
    + _INDIRECT_IDEATION
    + _METHOD
    + _SELF_HARM
    + _HOPELESSNESS
    + _BEHAVIORAL
    + _THIRD_PARTY
    + _IMMINENT
)


def phrases_by_category(category: CrisisCategory) -> Tuple[CrisisPhrase, ...]:
    """All taxonomy entries for one category."""
    return tuple(p for p in CRISIS_PHRASES if p.category == category)


def phrases_by_severity(severity: Severity) -> Tuple[CrisisPhrase, ...]:
    """All taxonomy entries at one severity."""
    return tuple(p for p in CRISIS_PHRASES if p.severity == severity)


def category_counts() -> Dict[CrisisCategory, int]:
    counts: Dict[CrisisCategory, int] = {}
    for entry in CRISIS_PHRASES:
        counts[entry.category] = counts.get(entry.category, 0) + 1
    return counts
