"""Repair of raw coach-model output.

Small generators echo the prompt back, loop on a phrase, or repeat whole
sentences. Repair strips the echo, drops near-duplicate sentences inside a
short sliding window, collapses known degenerate loops, then decides
whether what is left is a report at all.
"""
import logging
import re
from collections import deque
from typing import Deque, List, Optional

from .config import SynthesisConfig
from .formats import BANNER, STRUCTURE_MARKERS

logger = logging.getLogger(__name__)

# Sentence text and the punctuation plus whitespace that ends it
_SENTENCE_SPLIT = re.compile(r"([.!?]\s+)")
_WHITESPACE = re.compile(r"\s+")

_PROMPT_HEADINGS = re.compile(
    r"Generate a clinical report for therapist review|"
    r"Generate a comprehensive report|You are a therapy integration|"
    r"OUTPUT FORMAT REQUIREMENTS|MOOD TRENDS DATA|DAILY ACTIVITY LOGS",
    re.IGNORECASE,
)
_TEMPLATE_BLOCK = re.compile(r"OUTPUT FORMAT REQUIREMENTS:[\s\S]*?" + BANNER, re.IGNORECASE)

_LENS_LOOP = re.compile(
    r"(The LCSW Lens is a ['\"]LCSW Lens['\"].*?)(?:\1)+",
    re.IGNORECASE | re.DOTALL,
)
_LENS_PHRASE = re.compile(r"The LCSW Lens is a ['\"]LCSW Lens['\"]", re.IGNORECASE)
LENS_REPLACEMENT = "The LCSW Lens analysis indicates"


def normalize_segment(segment: str) -> str:
    return _WHITESPACE.sub(" ", segment.lower()).strip()


def word_overlap(candidate: str, previous: str) -> float:
    """Share of the candidate's words found in a previous segment.

    Both arguments are normalized text. The count is divided by the longer
    word list, so a short fragment of a long sentence scores low.
    """
    candidate_words = candidate.split(" ")
    previous_words = previous.split(" ")
    longest = max(len(candidate_words), len(previous_words))
    if longest == 0:
        return 0.0
    lookup = set(previous_words)
    shared = sum(1 for word in candidate_words if word in lookup)
    return shared / longest


def strip_prompt_echo(generated: str, prompt: str, min_chars: int = 100) -> str:
    """Remove the prompt (or pieces of it) from generated text."""
    text = generated.replace(prompt, "").strip() if prompt else generated.strip()

    if len(text) < min_chars:
        # Model answered with a fragment of the prompt; keep what follows it
        parts = _PROMPT_HEADINGS.split(text, maxsplit=1)
        text = parts[1] if len(parts) > 1 else text

    return _TEMPLATE_BLOCK.sub("", text).strip()


def deduplicate_segments(
    text: str,
    window: int = 5,
    threshold: float = 0.85,
    min_chars: int = 20,
) -> str:
    """Drop sentences that nearly repeat one of the last `window` kept sentences.

    Segments shorter than `min_chars` after normalization are always kept
    and never enter the window. A dropped sentence takes its trailing
    punctuation with it.
    """
    parts = _SENTENCE_SPLIT.split(text)
    recent: Deque[str] = deque(maxlen=window)
    kept: List[str] = []
    dropped = 0

    # re.split with a capture group alternates text, delimiter, text, ...
    for i in range(0, len(parts), 2):
        segment = parts[i]
        delimiter = parts[i + 1] if i + 1 < len(parts) else ""
        normalized = normalize_segment(segment)

        if len(normalized) >= min_chars:
            if any(word_overlap(normalized, prev) > threshold for prev in recent):
                dropped += 1
                continue
            recent.append(normalized)

        kept.append(segment + delimiter)

    if dropped:
        logger.debug(
            "REPORT_SEGMENTS_DEDUPLICATED",
            extra={"dropped": dropped, "kept": len(kept)},
        )
    return "".join(kept).strip()


def collapse_degenerate_loops(text: str) -> str:
    """Collapse the repeated "LCSW Lens" loop to one readable sentence."""
    text = _LENS_LOOP.sub(r"\1", text)
    return _LENS_PHRASE.sub(LENS_REPLACEMENT, text)


def has_report_structure(text: str, min_chars: int = 50, unstructured_min_chars: int = 200) -> bool:
    """True if text reads as a report: structured, or long enough on its own."""
    if len(text) <= min_chars:
        return False
    return any(marker in text for marker in STRUCTURE_MARKERS) or len(text) > unstructured_min_chars


def repair_output(
    generated: str,
    prompt: str,
    config: Optional[SynthesisConfig] = None,
) -> Optional[str]:
    """Clean raw model output.

    Returns:
        The repaired report text, or None when nothing usable remains
    """
    config = config or SynthesisConfig()

    text = strip_prompt_echo(generated or "", prompt, config.echo_min_chars)
    text = deduplicate_segments(
        text,
        window=config.dedup_window,
        threshold=config.similarity_threshold,
        min_chars=config.min_compared_chars,
    )
    text = collapse_degenerate_loops(text)

    if not has_report_structure(text, config.min_report_chars, config.unstructured_min_chars):
        logger.info(
            "REPORT_OUTPUT_REJECTED",
            extra={"length": len(text), "raw_length": len(generated or "")},
        )
        return None
    return text
