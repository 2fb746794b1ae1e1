"""Wire models for the Hypernodes HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_pascal


class HypernodesModel(BaseModel):
    """Base for request/response bodies that use PascalCase field names."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )


class GraphListRequest(HypernodesModel):
    key: str | None = None
    username: str | None = None


class PollRequest(HypernodesModel):
    guid: str


class ClientFunctionCall(HypernodesModel):
    """A client-function invocation pushed by the service during a run."""

    name: str
    args: list[list[str]] = Field(default_factory=list)
    finished: bool = False


class RunGraphRequest(HypernodesModel):
    graph_name: str
    graph_user_name: str
    funding_key: str | None = None
    input_data: dict[str, list[str]] = Field(default_factory=dict)
    polling_guid: str


class RunGraphResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    response: list[str] = Field(default_factory=list)
    cost: int = 0

    def first_line(self) -> str:
        return self.response[0] if self.response else ""


class GraphNodeData(HypernodesModel):
    type: str | None = None
    name: str
    inputs: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)


class KeyData(BaseModel):
    """Funding key account summary as reported by the service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    key: str
    token_count: int = 0
    username: str | None = None
    payment_link: str | None = None


__all__ = [
    "ClientFunctionCall",
    "GraphListRequest",
    "GraphNodeData",
    "HypernodesModel",
    "KeyData",
    "PollRequest",
    "RunGraphRequest",
    "RunGraphResponse",
]
