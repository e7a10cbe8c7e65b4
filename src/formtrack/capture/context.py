"""Per-document capture state owned by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List

from ..core.models import ProviderKind
from .retry import RetryChain


class WatchedControlRegistry:
    """Add-only set of control tokens already instrumented with listeners."""

    def __init__(self) -> None:
        self._tokens: set[str] = set()

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._tokens))

    def claim(self, token: str) -> bool:
        """Marks ``token`` as watched; ``False`` when it already was."""

        if not token or token in self._tokens:
            return False
        self._tokens.add(token)
        return True


@dataclass
class ProviderContext:
    """Provider, registry and retry chains for one document lifetime."""

    provider: ProviderKind = ProviderKind.NATIVE
    registry: WatchedControlRegistry = field(default_factory=WatchedControlRegistry)
    chains: List[RetryChain] = field(default_factory=list)

    def track(self, chain: RetryChain) -> RetryChain:
        self.chains = [item for item in self.chains if not item.finished]
        if not chain.finished:
            self.chains.append(chain)
        return chain

    def cancel_all(self) -> None:
        for chain in self.chains:
            chain.cancel()
        self.chains = []
