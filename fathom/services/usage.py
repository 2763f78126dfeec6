from __future__ import annotations

from fathom.models.research import TokenUsage
from fathom.research_core.models.interfaces import Usage


class TokenUsageAccumulator:
    """Running token totals reported by the model provider."""

    def __init__(self, usage: TokenUsage | None = None):
        self.usage = usage if usage is not None else TokenUsage()

    def add(self, usage: Usage | None) -> TokenUsage:
        if usage is None:
            return self.usage
        prompt = max(int(usage.prompt_tokens or 0), 0)
        completion = max(int(usage.completion_tokens or 0), 0)
        self.usage.prompt += prompt
        self.usage.completion += completion
        self.usage.total = self.usage.prompt + self.usage.completion
        return self.usage

    def snapshot(self) -> TokenUsage:
        return TokenUsage(
            prompt=self.usage.prompt,
            completion=self.usage.completion,
            total=self.usage.total,
        )
