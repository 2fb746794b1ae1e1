"""Application-wide Hypernodes client.

An application normally holds a single :class:`Client`. It carries the base
funding key and the client functions shared by every session it creates.
Use separate clients only when client functions need separate namespaces.
"""

from __future__ import annotations

import logging
import os

from .config import ENV_FUNDING_KEY, ClientConfig
from .polling import SleepFunc
from .registry import ClientFunction, FunctionRegistry
from .session import Session
from .transport import HttpTransport, Transport
from .types import GraphListRequest, GraphNodeData

logger = logging.getLogger("hypernodes.client")


class Client:
    def __init__(
        self,
        funding_key: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: Transport | None = None,
    ) -> None:
        """Create a client.

        Args:
            funding_key: Key billed for runs (env fallback: HYPERNODES_FUNDING_KEY).
            config: Endpoint, timeout and backoff settings; read from the
                environment when omitted.
            transport: Service transport override, mainly for tests.
        """

        self._funding_key = funding_key or os.environ.get(ENV_FUNDING_KEY) or None
        self.config = config or ClientConfig.from_env()
        self.transport: Transport = transport or HttpTransport(config=self.config)
        self.registry = FunctionRegistry()
        self._sessions: list[Session] = []

    @property
    def funding_key(self) -> str | None:
        return self._funding_key

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(self._sessions)

    def add_client_function(self, name: str, handler: ClientFunction) -> None:
        """Handle ``name`` whenever a client function node fires in a run of this client's sessions."""

        self.registry.register(name, handler)

    async def get_available_graphs(self, key: str | None, username: str | None = None) -> list[GraphNodeData]:
        """List graphs under ``username``, or under the key's own user when no username is given."""

        return await self.transport.get_graphs(GraphListRequest(key=key, username=username))

    def new_session(
        self,
        *,
        start: bool = True,
        session_cls: type[Session] = Session,
        sleep: SleepFunc | None = None,
    ) -> Session:
        session = session_cls(self, sleep=sleep)
        return self._track(session, start=start)

    def new_session_with_identity(
        self,
        polling_id: str,
        data_key: str,
        *,
        start: bool = True,
        session_cls: type[Session] = Session,
        sleep: SleepFunc | None = None,
    ) -> Session:
        """Recreate a session from a previously issued polling id and data key."""

        if not polling_id or not data_key:
            raise ValueError("polling_id and data_key must be non-empty")
        session = session_cls(self, polling_id, data_key, sleep=sleep)
        return self._track(session, start=start)

    def _track(self, session: Session, *, start: bool) -> Session:
        """Start the session's polling and keep it until its loop stops.

        Outside an event loop the start is deferred to the session's first
        awaited call.
        """

        if start:
            session.start_polling()
        self._sessions.append(session)
        session.poller.add_stopped_callback(lambda: self._release(session))
        logger.debug(
            "session_created",
            extra={
                "polling_id": session.polling_id,
                "polling": session.poller.running,
                "start_deferred": session.poller.start_deferred,
            },
        )
        return session

    def _release(self, session: Session) -> None:
        if session in self._sessions:
            self._sessions.remove(session)

    async def aclose(self) -> None:
        sessions, self._sessions = self._sessions, []
        for session in sessions:
            await session.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["Client"]
