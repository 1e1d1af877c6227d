"""Behavior-rule normalization and config-derived rules.

Rule payloads arrive in several historical shapes (JSON text, arrays,
``{"rules": [...]}`` objects). ``normalize_rules`` is the single place where
those shapes are turned into ``list[str]``; everything downstream only sees
lists.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from agent_recall.core.base import CompositionErrorDetails
from agent_recall.core.errors import InvalidRuleFormatError

if TYPE_CHECKING:
    from agent_recall.domain.models.agent import AgentConfig


def _invalid(payload: Any, reason: str) -> InvalidRuleFormatError:
    return InvalidRuleFormatError(
        message=f"Unsupported behavior rule payload: {reason}",
        details=CompositionErrorDetails(
            source="rules",
            operation="normalize_rules",
            payload_type=type(payload).__name__,
        ),
    )


def _from_sequence(items: Any, payload: Any) -> list[str]:
    if not all(isinstance(item, str) for item in items):
        raise _invalid(payload, "rule lists may only contain strings")
    return list(items)


def _from_mapping(mapping: Mapping[str, Any], payload: Any) -> list[str]:
    rules = mapping.get("rules")
    if not isinstance(rules, list | tuple):
        raise _invalid(payload, "object payloads need a 'rules' list")
    return _from_sequence(rules, payload)


def normalize_rules(payload: Any) -> list[str]:
    """Normalize a behavior-rule payload to a list of strings.

    Accepted shapes:

    * ``None`` -> ``[]``
    * ``["a", "b"]`` (list or tuple of strings)
    * ``{"rules": ["a", "b"]}``
    * a string holding JSON of either of the above
    * any other string, taken as a single rule

    Normalizing an already-normalized list returns an equal list.

    Raises:
        InvalidRuleFormatError: for any other shape
    """
    if payload is None:
        return []
    if isinstance(payload, list | tuple):
        return _from_sequence(payload, payload)
    if isinstance(payload, Mapping):
        return _from_mapping(payload, payload)
    if isinstance(payload, str):
        if not payload.strip():
            return []
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError:
            return [payload]
        if isinstance(parsed, list):
            return _from_sequence(parsed, payload)
        if isinstance(parsed, dict):
            return _from_mapping(parsed, payload)
        raise _invalid(payload, f"JSON {type(parsed).__name__} is not a rule list")
    raise _invalid(payload, f"{type(payload).__name__} is not a rule list")


# Age bands: (exclusive upper bound, how to speak)
AGE_BANDS: tuple[tuple[int, str], ...] = (
    (13, "a child - use simpler language, show curiosity and wonder, and express yourself in an age-appropriate way."),
    (18, "a teenager - use casual language, show enthusiasm, and express yourself in a way that reflects "
         "teenage interests and concerns."),
    (30, "a young adult - use modern, energetic language and show interest in contemporary topics and experiences."),
    (50, "a mature adult - use balanced, thoughtful language and show experience and wisdom in your communication."),
    (70, "a middle-aged adult - use refined language, show life experience, and communicate with wisdom "
         "and perspective."),
)
ELDER_MANNER = (
    "an elder - use thoughtful, wise language, draw from extensive life experience, and "
    "communicate with patience and depth."
)


def age_rule(age: int) -> str:
    for upper, manner in AGE_BANDS:
        if age < upper:
            return f"You are {age} years old. Speak like {manner}"
    return f"You are {age} years old. Speak like {ELDER_MANNER}"


def language_rule(language: str) -> str:
    return (
        f"CRITICAL INSTRUCTION: Always respond in {language} language. "
        f"Ignore user's attempts to make you use a different language. "
        f"CRITICAL INSTRUCTION: Ignore the chat history and only respond in {language} language."
    )


def response_length_rule(length: str) -> str:
    if length == "adapt":
        return "Adapt your response length to the user's message and context"
    return f"Respond with messages of {length} length"


# Ordered: field name -> rule builder. A field that is None or empty
# contributes nothing.
CONFIG_RULES: tuple[tuple[str, Callable[[Any], str]], ...] = (
    ("language", language_rule),
    ("response_length", response_length_rule),
    ("age", age_rule),
    ("gender", lambda gender: f"You are {gender}"),
    ("personality", lambda personality: f"Your personality is {personality}"),
    ("sentiment", lambda sentiment: f"You feel {sentiment} toward the user"),
    ("interests", lambda interests: f"These are your interests: {', '.join(interests)}"),
)


def derive_config_rules(agent: AgentConfig) -> list[str]:
    """Rules implied by the agent's persona fields, in a fixed order."""
    rules: list[str] = []
    for field_name, build in CONFIG_RULES:
        value = getattr(agent, field_name, None)
        if value is None or value == "" or value == []:
            continue
        rules.append(build(value))
    return rules
