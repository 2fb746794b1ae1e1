"""Client function registry.

Handlers are looked up by name when the service pushes a client-function
event. A handler receives the argument groups and the invoking session and
may be a plain function or a coroutine function.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .session import Session

logger = logging.getLogger("hypernodes.registry")

ClientFunction: TypeAlias = Callable[[list[list[str]], "Session"], Awaitable[Any] | Any]


class FunctionRegistry:
    """Maps client function names to handlers; last registration wins."""

    def __init__(self) -> None:
        self._handlers: dict[str, ClientFunction] = {}

    def register(self, name: str, handler: ClientFunction) -> None:
        if not name:
            raise ValueError("client function name must be non-empty")
        if not callable(handler):
            raise TypeError(f"handler for {name!r} must be callable")
        if name in self._handlers:
            logger.debug("client_function_replaced", extra={"function": name})
        self._handlers[name] = handler

    def unregister(self, name: str) -> bool:
        return self._handlers.pop(name, None) is not None

    def get(self, name: str) -> ClientFunction | None:
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return sorted(self._handlers)

    async def dispatch(self, name: str, args: list[list[str]], session: Session) -> bool:
        """Invoke the handler for ``name``; return False when none is registered.

        Exceptions raised by the handler propagate to the caller.
        """

        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("unknown_client_function", extra={"function": name})
            return False
        result = handler(args, session)
        if inspect.isawaitable(result):
            await result
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["ClientFunction", "FunctionRegistry"]
