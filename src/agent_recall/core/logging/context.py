"""Request-scoped logging context.

Values bound here are merged into every log event by the
``merge_contextvars`` processor, so a turn's session and agent ids
appear on everything logged while it runs.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


@contextmanager
def bind_turn_context(session_id: str, agent_id: str | None = None, **extra: Any) -> Iterator[None]:
    """Bind the ids of the turn being processed for the duration of the block."""
    values: dict[str, Any] = {"session_id": session_id, **extra}
    if agent_id is not None:
        values["agent_id"] = agent_id
    with structlog.contextvars.bound_contextvars(**values):
        yield
