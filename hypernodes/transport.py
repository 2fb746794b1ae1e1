"""HTTP transport for the Hypernodes service."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import ClientConfig
from .errors import DecodeError, TransportError
from .types import (
    ClientFunctionCall,
    GraphListRequest,
    GraphNodeData,
    PollRequest,
    RunGraphRequest,
    RunGraphResponse,
)

_GRAPH_LIST = TypeAdapter(list[GraphNodeData])


class Transport(Protocol):
    """Minimal surface the client needs from the service."""

    async def get_graphs(self, request: GraphListRequest) -> list[GraphNodeData]:
        """List graphs visible to a funding key / username."""

    async def poll(self, request: PollRequest) -> ClientFunctionCall | None:
        """Fetch the next pending client function, or None when nothing is queued."""

    async def run_graph(self, request: RunGraphRequest) -> RunGraphResponse:
        """Start a graph run and return its synchronous response."""


def _raise_for_status(response: httpx.Response, *, url: str, body: str | None = None) -> None:
    if 200 <= response.status_code < 300:
        return
    detail = None
    if body:
        try:
            payload = json.loads(body)
            if isinstance(payload, Mapping):
                detail = payload.get("detail") or payload.get("title")
        except json.JSONDecodeError:
            detail = None
    detail_text = f": {detail}" if detail else ""
    raise TransportError(
        f"Hypernodes request failed ({response.status_code}){detail_text}",
        url=url,
        status_code=response.status_code,
    )


def _load_json(body: str, *, url: str) -> Any:
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Response is not valid JSON: {exc.msg}", url=url, body=body) from exc


@dataclass(slots=True)
class HttpTransport:
    """Talks to the service over HTTPS POST with JSON bodies.

    When ``client`` is given it is reused for every call and stays owned by
    the caller; otherwise a short-lived ``httpx.AsyncClient`` is opened per call.
    """

    config: ClientConfig = field(default_factory=ClientConfig)
    client: httpx.AsyncClient | None = None

    @asynccontextmanager
    async def _client_context(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(timeout=timeout) as client:
            yield client

    def _base_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(self.config.headers)
        return headers

    async def _post(self, path: str, payload: BaseModel, *, timeout: float) -> str:
        url = self.config.url_for(path)
        body = payload.model_dump(mode="json", by_alias=True)
        async with self._client_context(timeout) as client:
            try:
                response = await client.post(url, json=body, headers=self._base_headers(), timeout=timeout)
            except httpx.HTTPError as exc:
                raise TransportError(f"Unable to reach Hypernodes: {exc!r}", url=url) from exc
            text = response.text
        _raise_for_status(response, url=url, body=text)
        return text

    async def get_graphs(self, request: GraphListRequest) -> list[GraphNodeData]:
        url = self.config.url_for("getgraphs")
        text = await self._post("getgraphs", request, timeout=self.config.timeout_s)
        data = _load_json(text, url=url)
        if data is None:
            return []
        try:
            return _GRAPH_LIST.validate_python(data)
        except ValidationError as exc:
            raise DecodeError("Unexpected graph list payload", url=url, body=text) from exc

    async def poll(self, request: PollRequest) -> ClientFunctionCall | None:
        url = self.config.url_for("pollresult")
        text = await self._post("pollresult", request, timeout=self.config.poll_timeout_s)
        if not text.strip():
            return None
        data = _load_json(text, url=url)
        if data is None:
            return None
        try:
            return ClientFunctionCall.model_validate(data)
        except ValidationError as exc:
            raise DecodeError("Unexpected client function payload", url=url, body=text) from exc

    async def run_graph(self, request: RunGraphRequest) -> RunGraphResponse:
        url = self.config.url_for("rungraph")
        text = await self._post("rungraph", request, timeout=self.config.timeout_s)
        data = _load_json(text, url=url)
        if not isinstance(data, Mapping):
            raise DecodeError("Run graph response must be a JSON object", url=url, body=text)
        try:
            return RunGraphResponse.model_validate(data)
        except ValidationError as exc:
            raise DecodeError("Unexpected run graph payload", url=url, body=text) from exc


__all__ = ["HttpTransport", "Transport"]
