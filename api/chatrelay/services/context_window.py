"""
Token-budgeted selection of the conversation window sent upstream.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from chatrelay.core.telemetry import get_tracer
from chatrelay.models.chat import Message

logger = logging.getLogger(__name__)


class TokenCounter(Protocol):
    def count(self, text: str) -> int: ...


@dataclass(frozen=True)
class ContextWindow:
    """The trailing messages that fit the budget, and their total cost."""

    messages: list[Message] = field(default_factory=list)
    token_count: int = 0
    budget: int = 0


def select_window(
    instruction: str,
    messages: Sequence[Message],
    budget: int,
    tokenizer: TokenCounter,
) -> ContextWindow:
    """
    Select the longest trailing run of messages that fits the token budget.

    The instruction prompt is charged first. Messages are then taken from
    newest to oldest and the walk stops at the first message that would
    overflow the budget; older messages are dropped whole.

    Args:
        instruction: The system prompt sent ahead of the window.
        messages: The full conversation in chronological order.
        budget: Maximum tokens for instruction plus window.
        tokenizer: Anything with a ``count(text)`` method.

    Returns:
        ContextWindow with messages in chronological order.
    """
    with get_tracer().start_as_current_span("context.assemble") as span:
        total = tokenizer.count(instruction)
        selected: list[Message] = []

        if total < budget:
            for message in reversed(messages):
                cost = tokenizer.count(message.content)
                if total + cost > budget:
                    break
                total += cost
                selected.append(message)
        else:
            logger.warning(
                "Instruction prompt alone (%d tokens) fills budget %d", total, budget
            )

        selected.reverse()
        dropped = len(messages) - len(selected)
        span.set_attribute("context.budget", budget)
        span.set_attribute("context.tokens", total)
        span.set_attribute("context.dropped_messages", dropped)
        if dropped:
            logger.info("Dropped %d older message(s) to fit %d tokens", dropped, budget)

        return ContextWindow(messages=selected, token_count=total, budget=budget)
