"""Keyword intent matcher for the questionnaire chatbot.

Each step has an ordered list of substring or regex rules; the first rule
that fires wins and carries a fixed confidence. Anything else is
``unknown`` at 0.3. Pure: no I/O, no state.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping

from interior_api.chatbot.reference import (
    BUDGET_BANDS,
    BUDGET_CEILING_BAND,
    BUDGET_THRESHOLDS,
    DESIGN_STYLES,
    ROOM_TYPES,
    TIMELINE_BANDS,
)
from interior_api.models.contracts import ConversationStep, Intent

UNKNOWN_CONFIDENCE = 0.3

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
PHONE_PATTERN = re.compile(r"(\+\d{1,3}[-. ]?)?\(?\d{3}\)?[-. ]?\d{3}[-. ]?\d{4}")
_FIRST_NUMBER = re.compile(r"\d+")

# (keywords, kind, confidence), checked in order
_PROJECT_TYPE_RULES: tuple[tuple[tuple[str, ...], str, float], ...] = (
    (("residential", "home", "house"), "residential", 0.8),
    (("commercial", "office", "business"), "commercial", 0.8),
    (("renovation", "remodel"), "renovation", 0.7),
)
_GREETING_WORDS = ("hello", "hi", "hey")
_NAME_PHRASES = ("name", "call me")


def _unknown() -> Intent:
    return Intent(kind="unknown", confidence=UNKNOWN_CONFIDENCE)


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def _match_band(text: str, bands: Mapping[str, str]) -> str | None:
    """Return the first band whose key, spaced key, or label occurs in text.

    "10k-25k" and "10k 25k" both match the same band, as does the
    lower-cased label "$10,000 - $25,000".
    """
    for key, label in bands.items():
        if key in text or key.replace("-", " ") in text or label.lower() in text:
            return key
    return None


def bucket_budget(amount: int) -> str:
    """Map a dollar amount to its budget band key."""
    for upper, band in BUDGET_THRESHOLDS:
        if amount < upper:
            return band
    return BUDGET_CEILING_BAND


def _greeting(text: str) -> Intent:
    if _contains_any(text, _GREETING_WORDS):
        return Intent(kind="greeting", confidence=0.9)
    return _unknown()


def _project_type(text: str) -> Intent:
    for keywords, kind, confidence in _PROJECT_TYPE_RULES:
        if _contains_any(text, keywords):
            return Intent(kind=kind, confidence=confidence)
    return _unknown()


def _room_type(text: str) -> Intent:
    for room in ROOM_TYPES:
        if room in text:
            return Intent(kind=room, confidence=0.8)
    return _unknown()


def _design_style(text: str) -> Intent:
    for style in DESIGN_STYLES:
        if style in text:
            return Intent(kind=style, confidence=0.8)
    return _unknown()


def _budget(text: str) -> Intent:
    band = _match_band(text, BUDGET_BANDS)
    if band is not None:
        return Intent(kind=band, confidence=0.8)
    number = _FIRST_NUMBER.search(text)
    if number is not None:
        return Intent(kind=bucket_budget(int(number.group())), confidence=0.7)
    return _unknown()


def _timeline(text: str) -> Intent:
    band = _match_band(text, TIMELINE_BANDS)
    if band is not None:
        return Intent(kind=band, confidence=0.8)
    return _unknown()


def _contact_info(text: str, raw_text: str) -> Intent:
    # Addresses and numbers are extracted from the raw text to keep their case.
    email = EMAIL_PATTERN.search(raw_text)
    if email is not None:
        return Intent(kind="email", confidence=0.9, extracted_value=email.group())
    phone = PHONE_PATTERN.search(raw_text)
    if phone is not None:
        return Intent(kind="phone", confidence=0.9, extracted_value=phone.group())
    if _contains_any(text, _NAME_PHRASES):
        return Intent(kind="name", confidence=0.7)
    return _unknown()


_RULES: dict[ConversationStep, Callable[[str], Intent]] = {
    ConversationStep.GREETING: _greeting,
    ConversationStep.PROJECT_TYPE: _project_type,
    ConversationStep.ROOM_TYPE: _room_type,
    ConversationStep.DESIGN_STYLE: _design_style,
    ConversationStep.BUDGET: _budget,
    ConversationStep.TIMELINE: _timeline,
}


def match_intent(raw_text: str, current_step: ConversationStep) -> Intent:
    """Classify raw visitor text for the given step."""
    if current_step is ConversationStep.CONTACT_INFO:
        return _contact_info(raw_text.lower(), raw_text)
    rule = _RULES.get(current_step)
    if rule is None:
        return _unknown()
    return rule(raw_text.lower())
