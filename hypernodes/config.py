from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .backoff import BackoffPolicy

DEFAULT_BASE_URL = "https://www.hyperthetical.dev"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_POLL_TIMEOUT_S = 120.0

ENV_BASE_URL = "HYPERNODES_BASE_URL"
ENV_FUNDING_KEY = "HYPERNODES_FUNDING_KEY"
ENV_TIMEOUT_S = "HYPERNODES_TIMEOUT_S"
ENV_POLL_TIMEOUT_S = "HYPERNODES_POLL_TIMEOUT_S"


def _float_from_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(slots=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = DEFAULT_TIMEOUT_S
    poll_timeout_s: float = DEFAULT_POLL_TIMEOUT_S
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be non-empty")
        self.base_url = self.base_url.rstrip("/")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        if self.poll_timeout_s <= 0:
            raise ValueError("poll_timeout_s must be positive")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``HYPERNODES_*`` environment variables."""

        source = os.environ if env is None else env
        return cls(
            base_url=source.get(ENV_BASE_URL) or DEFAULT_BASE_URL,
            timeout_s=_float_from_env(source, ENV_TIMEOUT_S, DEFAULT_TIMEOUT_S),
            poll_timeout_s=_float_from_env(source, ENV_POLL_TIMEOUT_S, DEFAULT_POLL_TIMEOUT_S),
        )

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"


__all__ = [
    "ClientConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_POLL_TIMEOUT_S",
    "DEFAULT_TIMEOUT_S",
    "ENV_BASE_URL",
    "ENV_FUNDING_KEY",
    "ENV_POLL_TIMEOUT_S",
    "ENV_TIMEOUT_S",
]
