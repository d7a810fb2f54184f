"""
Rough token estimation for prompt budgeting.

Uses the ~4 characters per token heuristic. It is only used to decide how to
split work between model calls, never to enforce spend.
"""

import math
from dataclasses import dataclass

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TokenBudget:
    """Outcome of a budget check."""
    estimated: int
    fits: bool
    overage: int


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a string (ceil(len / 4))."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def check_token_budget(system_prompt: str, user_message: str, max_tokens: int) -> TokenBudget:
    """
    Check whether a system prompt plus user message fit within a token budget.

    Args:
        system_prompt: System prompt text
        user_message: User message text
        max_tokens: Budget to check against

    Returns:
        TokenBudget with the estimate, whether it fits, and by how much it overflows
    """
    estimated = estimate_tokens(system_prompt) + estimate_tokens(user_message)
    return TokenBudget(
        estimated=estimated,
        fits=estimated <= max_tokens,
        overage=max(0, estimated - max_tokens),
    )
