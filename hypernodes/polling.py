"""Background long-poll loop for client function events.

The loop asks the service for pending client-function invocations for one
session, dispatches whatever arrives and keeps going until it is stopped.
Failed or empty polls back off exponentially; a successful poll resets the
delay. Nothing raised inside the loop reaches the session owner: failures
are logged and retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from .backoff import BackoffPolicy, BackoffState
from .registry import FunctionRegistry
from .transport import Transport
from .types import ClientFunctionCall, PollRequest

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .session import Session

logger = logging.getLogger("hypernodes.polling")

SleepFunc = Callable[[float], Awaitable[Any]]


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    DISPATCHING = "dispatching"
    BACKOFF_WAIT = "backoff_wait"
    STOPPED = "stopped"


class PollLoop:
    """Polls ``pollresult`` for one session and routes events to the registry."""

    def __init__(
        self,
        session: Session,
        *,
        transport: Transport,
        registry: FunctionRegistry,
        policy: BackoffPolicy | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        self._session = session
        self._transport = transport
        self._registry = registry
        self._backoff = BackoffState(policy or BackoffPolicy())
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._state = PollState.IDLE
        self._cancelled = False
        self._task: asyncio.Task[None] | None = None
        self._start_deferred = False
        self._stopped_callbacks: list[Callable[[], None]] = []
        self.poll_count = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def backoff(self) -> BackoffState:
        return self._backoff

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def start_deferred(self) -> bool:
        return self._start_deferred

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def add_stopped_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the loop reaches ``STOPPED``."""

        if self._state is PollState.STOPPED:
            callback()
            return
        self._stopped_callbacks.append(callback)

    def start(self) -> bool:
        """Schedule the loop on the running event loop.

        Without a running loop the start is deferred until :meth:`ensure_started`
        is called from async code. Returns False when nothing was scheduled.
        """

        if self._task is not None or self._cancelled:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._start_deferred = True
            logger.debug("poll_loop_start_deferred", extra={"polling_id": self._session.polling_id})
            return False
        self._start_deferred = False
        self._task = loop.create_task(
            self.run(), name=f"hypernodes:poll:{self._session.polling_id}"
        )
        return True

    def ensure_started(self) -> bool:
        """Perform a start that was requested outside an event loop."""

        if not self._start_deferred:
            return False
        return self.start()

    def stop(self) -> None:
        """Request a cooperative stop; the loop exits at its next checkpoint."""

        if self._cancelled:
            return
        self._cancelled = True
        self._start_deferred = False
        logger.debug("poll_loop_stop_requested", extra={"polling_id": self._session.polling_id})
        if self._task is None:
            self._mark_stopped()

    async def wait(self) -> None:
        """Block until the loop task has finished, without cancelling it."""

        if self._task is None:
            return
        await asyncio.wait({self._task})

    async def aclose(self) -> None:
        """Stop the loop and cancel any in-flight poll or sleep."""

        self.stop()
        task = self._task
        if task is not None:
            if not task.done():
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._mark_stopped()

    def _mark_stopped(self) -> None:
        self._state = PollState.STOPPED
        callbacks, self._stopped_callbacks = self._stopped_callbacks, []
        for callback in callbacks:
            callback()

    async def run(self) -> None:
        try:
            while not self._cancelled:
                self._state = PollState.POLLING
                call = await self._poll_once()
                if self._cancelled:
                    if call is not None:
                        logger.debug(
                            "poll_result_discarded",
                            extra={"polling_id": self._session.polling_id, "function": call.name},
                        )
                    break
                if call is None:
                    await self._backoff_wait()
                    continue
                self._backoff.reset()
                self._state = PollState.DISPATCHING
                await self._dispatch(call)
        finally:
            self._mark_stopped()
            logger.debug("poll_loop_stopped", extra={"polling_id": self._session.polling_id})

    async def _poll_once(self) -> ClientFunctionCall | None:
        polling_id = self._session.polling_id
        self.poll_count += 1
        try:
            call = await self._transport.poll(PollRequest(guid=polling_id))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "poll_failed",
                extra={
                    "polling_id": polling_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return None
        if call is None:
            logger.debug("poll_empty", extra={"polling_id": polling_id})
        return call

    async def _backoff_wait(self) -> None:
        delay = self._backoff.advance()
        self._state = PollState.BACKOFF_WAIT
        logger.debug(
            "poll_backoff",
            extra={
                "polling_id": self._session.polling_id,
                "delay_s": delay,
                "failures": self._backoff.failures,
            },
        )
        await self._sleep(delay)

    async def _dispatch(self, call: ClientFunctionCall) -> None:
        logger.debug(
            "client_function_dispatch",
            extra={
                "polling_id": self._session.polling_id,
                "function": call.name,
                "finished": call.finished,
            },
        )
        try:
            await self._registry.dispatch(call.name, call.args, self._session)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "client_function_error",
                extra={
                    "polling_id": self._session.polling_id,
                    "function": call.name,
                    "exception": exc,
                },
            )


__all__ = ["PollLoop", "PollState", "SleepFunc"]
