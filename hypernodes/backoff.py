"""Retry delay policy for the poll loop."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_FLOOR_S = 0.5
DEFAULT_CEILING_S = 60.0
DEFAULT_MULTIPLIER = 1.5


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Bounds and growth factor for poll retry delays."""

    floor_s: float = DEFAULT_FLOOR_S
    ceiling_s: float = DEFAULT_CEILING_S
    multiplier: float = DEFAULT_MULTIPLIER

    def __post_init__(self) -> None:
        if self.floor_s <= 0:
            raise ValueError("floor_s must be positive")
        if self.ceiling_s < self.floor_s:
            raise ValueError("ceiling_s must be >= floor_s")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")

    def delay_for(self, attempt: int) -> float:
        """Delay before the ``attempt``-th consecutive retry (1-based)."""

        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        return min(self.ceiling_s, self.floor_s * self.multiplier ** (attempt - 1))


@dataclass(slots=True)
class BackoffState:
    policy: BackoffPolicy = field(default_factory=BackoffPolicy)
    current_s: float = field(init=False)
    failures: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.current_s = self.policy.floor_s

    def advance(self) -> float:
        """Record a failed attempt; return the delay to wait before retrying."""

        delay = self.current_s
        self.failures += 1
        self.current_s = min(self.policy.ceiling_s, self.current_s * self.policy.multiplier)
        return delay

    def reset(self) -> None:
        self.current_s = self.policy.floor_s
        self.failures = 0


__all__ = ["BackoffPolicy", "BackoffState", "DEFAULT_CEILING_S", "DEFAULT_FLOOR_S", "DEFAULT_MULTIPLIER"]
