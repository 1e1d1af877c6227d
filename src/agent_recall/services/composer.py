"""System prompt and behavior-rule composition.

Everything here is pure: the same sources, options and clock reading
always produce the same text.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from agent_recall.core.base import CompositionErrorDetails
from agent_recall.core.constants import CURRENT_TIME_PREFIX, MEMORY_CONTEXT_HEADER
from agent_recall.core.errors import InvalidRuleFormatError, MissingRequiredPromptSourceError
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import (
    AgentConfig,
    InstructionSources,
    PromptMergeOptions,
    PromptOrigin,
    PromptRole,
    PromptSource,
    RuleApplicationConfig,
    RulesTransformOptions,
    SourceSlot,
)
from agent_recall.domain.rules import derive_config_rules, normalize_rules

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(UTC)


def _ordered(sources: Iterable[PromptSource]) -> list[PromptSource]:
    # sorted() is stable, so equal priorities keep their configured order
    return sorted(sources, key=lambda source: source.priority)


def _missing(source: PromptSource, operation: str) -> MissingRequiredPromptSourceError:
    return MissingRequiredPromptSourceError(
        message=f"Required source '{source.origin.value}' is empty",
        details=CompositionErrorDetails(source="composer", operation=operation, origins=[source.origin.value]),
    )


def format_timestamp(moment: datetime, time_format: str) -> str:
    if time_format == "readable":
        return moment.strftime("%A, %B %d, %Y at %H:%M %Z").strip()
    return moment.isoformat()


def merge_prompt_sources(
    sources: Sequence[PromptSource],
    options: PromptMergeOptions | None = None,
    clock: Clock = utc_clock,
) -> str:
    """Join the system-role prompt sources in priority order.

    Empty optional sources are skipped. When anything was merged, a
    ``Current time:`` line is added at the configured end.

    Raises:
        MissingRequiredPromptSourceError: If a required source is empty
    """
    options = options or PromptMergeOptions()

    parts: list[str] = []
    for source in _ordered(s for s in sources if s.role == PromptRole.SYSTEM):
        text = source.text.strip() if isinstance(source.text, str) else ""
        if not text:
            if source.required:
                raise _missing(source, "merge_prompt_sources")
            continue
        parts.append(text)

    merged = options.separator.join(parts)
    if not merged or options.embed_time_at == "none":
        return merged

    time_line = f"{CURRENT_TIME_PREFIX} {format_timestamp(clock(), options.time_format)}"
    if options.embed_time_at == "start":
        return f"{time_line}\n\n{merged}"
    return f"{merged}\n\n{time_line}"


def render_rules(rules: Sequence[str], options: RulesTransformOptions) -> str:
    if options.format == "numbered":
        lines = [f"{position}. {rule}" for position, rule in enumerate(rules, start=1)]
    elif options.format == "bulleted":
        lines = [f"- {rule}" for rule in rules]
    else:
        lines = list(rules)

    body = options.separator.join(lines)
    if body and options.header:
        return f"{options.header}\n{body}"
    return body


def _deduplicated(rules: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for rule in rules:
        key = rule.casefold()
        if key not in seen:
            seen.add(key)
            unique.append(rule)
    return unique


def merge_rule_sources(
    sources: Sequence[PromptSource],
    options: RulesTransformOptions | None = None,
    derived_rules: Sequence[str] = (),
) -> str:
    """Merge rule sources in priority order and render them as one block.

    Every source is normalized before any error is raised, so a single bad
    payload is reported together with any others instead of hiding them.
    Config-derived rules come after all source rules; numbering runs across
    the whole merged list.

    Raises:
        MissingRequiredPromptSourceError: If a required source has no rules
        InvalidRuleFormatError: If any payload has an unsupported shape
    """
    options = options or RulesTransformOptions()

    merged: list[str] = []
    invalid: list[tuple[PromptSource, InvalidRuleFormatError]] = []
    for source in _ordered(sources):
        try:
            rules = normalize_rules(source.text)
        except InvalidRuleFormatError as e:
            invalid.append((source, e))
            continue
        rules = [rule.strip() for rule in rules if rule.strip()]
        if not rules and source.required:
            raise _missing(source, "merge_rule_sources")
        merged.extend(rules)

    if invalid:
        first_source, first_error = invalid[0]
        origins = [source.origin.value for source, _ in invalid]
        logger.error("Invalid behavior rule payloads", origins=origins)
        raise InvalidRuleFormatError(
            message=f"Invalid rule payload from '{first_source.origin.value}': {first_error.message}",
            details=CompositionErrorDetails(
                source="composer",
                operation="merge_rule_sources",
                origins=origins,
                payload_type=type(first_source.text).__name__,
            ),
        ) from first_error

    merged.extend(rule.strip() for rule in derived_rules if rule.strip())
    if options.deduplicate:
        merged = _deduplicated(merged)

    return render_rules(merged, options)


def build_sources(slots: Sequence[SourceSlot], texts: Mapping[PromptOrigin, Any]) -> list[PromptSource]:
    """Pair each configured slot with this turn's text for its origin."""
    return [PromptSource.from_slot(slot, texts.get(slot.origin)) for slot in slots]


def render_memory_context(memories: Sequence[str]) -> str:
    """Numbered list of retrieved memories under a fixed header; empty when none."""
    if not memories:
        return ""
    lines = [f"{position}. {memory}" for position, memory in enumerate(memories, start=1)]
    return MEMORY_CONTEXT_HEADER + "\n" + "\n".join(lines)


class ComposedInstructions(BaseModel):
    model_config = ConfigDict(frozen=True)

    system_prompt: str
    behavior_rules: str
    rules_role: PromptRole = PromptRole.SYSTEM


class PromptComposer:
    """Applies a ``RuleApplicationConfig`` to an agent and its per-turn sources."""

    def __init__(self, config: RuleApplicationConfig, clock: Clock = utc_clock):
        self.config = config
        self.clock = clock

    def _texts(self, agent: AgentConfig, instructions: InstructionSources) -> tuple[dict, dict]:
        prompts: dict[PromptOrigin, Any] = dict(instructions.prompts)
        rules: dict[PromptOrigin, Any] = dict(instructions.rules)
        prompts.setdefault(PromptOrigin.CLIENT_CONFIG, agent.system_prompt)
        rules.setdefault(PromptOrigin.CLIENT_CONFIG, agent.behavior_rules)
        return prompts, rules

    def compose(self, agent: AgentConfig, instructions: InstructionSources | None = None) -> ComposedInstructions:
        prompts, rules = self._texts(agent, instructions or InstructionSources())

        system_prompt = merge_prompt_sources(
            build_sources(self.config.system_prompt_sources, prompts),
            self.config.prompt_merge,
            clock=self.clock,
        )
        behavior_rules = merge_rule_sources(
            build_sources(self.config.behavior_rule_sources, rules),
            self.config.rules_transform,
            derived_rules=derive_config_rules(agent),
        )
        return ComposedInstructions(
            system_prompt=system_prompt,
            behavior_rules=behavior_rules,
            rules_role=self.config.rules_transform.role,
        )
