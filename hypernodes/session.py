"""Per-user sessions against the Hypernodes service.

A :class:`Session` is one conversational identity. It owns the polling id
the service uses to route client-function events back to this process, a
data key that graphs receive as their second input, an optional funding key
override and the graph it is bound to. Subclass it to carry application data
that client functions need to reach.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import NotReadyError
from .polling import PollLoop, SleepFunc
from .registry import ClientFunction
from .types import GraphNodeData, RunGraphRequest, RunGraphResponse

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .client import Client

logger = logging.getLogger("hypernodes.session")

CONVERSATION_SLOT = "0"
DATA_KEY_SLOT = "1"
FIRST_EXTRA_SLOT = 2


@dataclass(frozen=True, slots=True)
class BoundGraph:
    name: str
    owner: str


class Session:
    def __init__(
        self,
        client: Client,
        polling_id: str | None = None,
        data_key: str | None = None,
        *,
        sleep: SleepFunc | None = None,
    ) -> None:
        self.client = client
        self._lock = threading.RLock()
        self._polling_id = polling_id or str(uuid.uuid4())
        self._data_key = data_key or str(uuid.uuid4())
        self._funding_key_override: str | None = None
        self._bound_graph: BoundGraph | None = None
        self._poller = PollLoop(
            self,
            transport=client.transport,
            registry=client.registry,
            policy=client.config.backoff,
            sleep=sleep,
        )

    @property
    def polling_id(self) -> str:
        with self._lock:
            return self._polling_id

    @property
    def data_key(self) -> str:
        with self._lock:
            return self._data_key

    def set_polling_id(self, polling_id: str) -> None:
        """Adopt an existing polling id, e.g. to resume an earlier session."""

        if not polling_id:
            raise ValueError("polling_id must be non-empty")
        with self._lock:
            self._polling_id = polling_id

    def set_data_key(self, data_key: str) -> None:
        """Replace the data key sent to graphs as their second input."""

        if not data_key:
            raise ValueError("data_key must be non-empty")
        with self._lock:
            self._data_key = data_key

    @property
    def funding_key(self) -> str | None:
        """The session override when set, otherwise the client's funding key."""

        with self._lock:
            override = self._funding_key_override
        if override:
            return override
        return self.client.funding_key

    @funding_key.setter
    def funding_key(self, value: str | None) -> None:
        with self._lock:
            self._funding_key_override = value or None

    @property
    def bound_graph(self) -> BoundGraph | None:
        with self._lock:
            return self._bound_graph

    def ready(self) -> bool:
        """True when the session can build a chat request without further setup."""

        with self._lock:
            return not self._missing_requirements(self._bound_graph)

    def _missing_requirements(self, graph: BoundGraph | None) -> tuple[str, ...]:
        missing: list[str] = []
        if not self.funding_key:
            missing.append("funding_key")
        if graph is None or not graph.owner:
            missing.append("graph_owner")
        if graph is None or not graph.name:
            missing.append("graph_name")
        return tuple(missing)

    @property
    def poller(self) -> PollLoop:
        return self._poller

    @property
    def cancelled(self) -> bool:
        return self._poller.cancelled

    def register(self, name: str, handler: ClientFunction) -> None:
        """Register a client function on the owning client."""

        self.client.add_client_function(name, handler)

    def start_polling(self) -> bool:
        return self._poller.start()

    def stop_polling(self) -> None:
        self._poller.stop()

    async def aclose(self) -> None:
        await self._poller.aclose()

    async def __aenter__(self) -> Session:
        self.start_polling()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def bind_graph(self, name: str, owner: str, key: str | None = None) -> bool:
        """Bind the session to ``owner``'s graph ``name`` if the catalog lists it.

        A supplied ``key`` becomes the session's funding key before the lookup.
        Returns False, leaving the binding untouched, when no such graph exists.
        """

        self._poller.ensure_started()
        if key is None:
            key = self.funding_key
        else:
            self.funding_key = key
        graphs = await self.client.get_available_graphs(key, owner)
        if not any(graph.name == name for graph in graphs):
            logger.info("graph_not_found", extra={"graph": name, "owner": owner})
            return False
        with self._lock:
            self._bound_graph = BoundGraph(name=name, owner=owner)
        logger.info("graph_bound", extra={"graph": name, "owner": owner, "polling_id": self.polling_id})
        return True

    async def get_available_graphs(self) -> list[GraphNodeData]:
        self._poller.ensure_started()
        graph = self.bound_graph
        return await self.client.get_available_graphs(
            self.funding_key, graph.owner if graph is not None else None
        )

    async def run_graph(
        self,
        graph_name: str,
        graph_owner: str,
        inputs: Mapping[str, Sequence[str]],
    ) -> RunGraphResponse:
        self._poller.ensure_started()
        request = RunGraphRequest(
            graph_name=graph_name,
            graph_user_name=graph_owner,
            funding_key=self.funding_key,
            input_data={slot: list(values) for slot, values in inputs.items()},
            polling_guid=self.polling_id,
        )
        logger.debug(
            "run_graph_request",
            extra={"graph": graph_name, "owner": graph_owner, "polling_id": request.polling_guid},
        )
        return await self.client.transport.run_graph(request)

    async def run(
        self,
        graph_name: str,
        graph_owner: str,
        inputs: Mapping[str, Sequence[str]],
    ) -> str:
        """Run a graph and return the first response line ("" when there is none)."""

        response = await self.run_graph(graph_name, graph_owner, inputs)
        return response.first_line()

    async def chat(
        self,
        conversation: Sequence[str],
        other_inputs: Sequence[Sequence[str]] | None = None,
    ) -> str:
        """Send a conversation to the bound graph using the standard chat layout.

        Slot "0" carries the conversation, slot "1" the data key and any
        ``other_inputs`` follow from slot "2". Raises :class:`NotReadyError`
        before any request is made if the session is not bound or funded.
        """

        with self._lock:
            graph = self._bound_graph
            missing = self._missing_requirements(graph)
        if missing or graph is None:
            raise NotReadyError(missing)
        inputs: dict[str, list[str]] = {
            CONVERSATION_SLOT: list(conversation),
            DATA_KEY_SLOT: [self.data_key],
        }
        for index, values in enumerate(other_inputs or (), start=FIRST_EXTRA_SLOT):
            inputs[str(index)] = list(values)
        return await self.run(graph.name, graph.owner, inputs)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Session(polling_id={self.polling_id!r}, bound_graph={self.bound_graph!r})"


__all__ = ["BoundGraph", "Session"]
