from __future__ import annotations

import asyncio
import json
from collections import defaultdict, deque
from collections.abc import Callable
from typing import Any

import pytest
from fastapi import FastAPI, Request, Response

from hypernodes.types import (
    ClientFunctionCall,
    GraphListRequest,
    GraphNodeData,
    PollRequest,
    RunGraphRequest,
    RunGraphResponse,
)


class ScriptedTransport:
    """Transport stub that replays a scripted sequence of poll outcomes.

    Script entries are a ``ClientFunctionCall`` (event), ``None`` (nothing
    pending) or an exception instance (raised). Once the script runs out every
    poll returns ``None``.
    """

    def __init__(self, script: list[Any] | None = None) -> None:
        self.script: deque[Any] = deque(script or [])
        self.polls: list[PollRequest] = []
        self.runs: list[RunGraphRequest] = []
        self.graph_requests: list[GraphListRequest] = []
        self.graphs: list[GraphNodeData] = []
        self.run_response = RunGraphResponse(response=["ok"], cost=1)
        self.on_poll: Callable[[int], None] | None = None

    async def poll(self, request: PollRequest) -> ClientFunctionCall | None:
        self.polls.append(request)
        await asyncio.sleep(0)
        if self.on_poll is not None:
            self.on_poll(len(self.polls))
        if not self.script:
            return None
        outcome = self.script.popleft()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def get_graphs(self, request: GraphListRequest) -> list[GraphNodeData]:
        self.graph_requests.append(request)
        return list(self.graphs)

    async def run_graph(self, request: RunGraphRequest) -> RunGraphResponse:
        self.runs.append(request)
        return self.run_response


class RecordingSleep:
    """Sleep replacement that records delays and can run a hook per call."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self.on_sleep: Callable[[int], None] | None = None

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)
        if self.on_sleep is not None:
            self.on_sleep(len(self.delays))


class FakeHypernodesService:
    """In-process stand-in for the Hypernodes HTTP API."""

    def __init__(self) -> None:
        self.graphs: dict[str, list[dict[str, Any]]] = {}
        self.events: dict[str, deque[Any]] = defaultdict(deque)
        self.graph_requests: list[dict[str, Any]] = []
        self.poll_requests: list[dict[str, Any]] = []
        self.run_requests: list[dict[str, Any]] = []
        self.run_body: Any = {"response": ["hello back"], "cost": 3}
        self.run_status = 200
        self.poll_status = 200
        self.app = self._build_app()

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post("/getgraphs")
        async def get_graphs(request: Request) -> Any:
            body = await request.json()
            self.graph_requests.append(body)
            return self.graphs.get(body.get("Username") or "", [])

        @app.post("/pollresult")
        async def poll_result(request: Request) -> Response:
            body = await request.json()
            self.poll_requests.append(body)
            if self.poll_status != 200:
                return Response(status_code=self.poll_status)
            queue = self.events[body.get("Guid", "")]
            if not queue:
                return Response(status_code=200)
            event = queue.popleft()
            if isinstance(event, str):
                return Response(content=event, media_type="application/json")
            return Response(content=json.dumps(event), media_type="application/json")

        @app.post("/rungraph")
        async def run_graph(request: Request) -> Response:
            body = await request.json()
            self.run_requests.append(body)
            if self.run_status != 200:
                return Response(
                    content=json.dumps({"detail": "run rejected"}),
                    status_code=self.run_status,
                    media_type="application/json",
                )
            if isinstance(self.run_body, str):
                return Response(content=self.run_body, media_type="application/json")
            return Response(content=json.dumps(self.run_body), media_type="application/json")

        return app


@pytest.fixture()
def scripted_transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture()
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def fake_service() -> FakeHypernodesService:
    return FakeHypernodesService()


@pytest.fixture(autouse=True)
def _clear_hypernodes_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HYPERNODES_BASE_URL", "HYPERNODES_FUNDING_KEY", "HYPERNODES_TIMEOUT_S", "HYPERNODES_POLL_TIMEOUT_S"):
        monkeypatch.delenv(name, raising=False)
