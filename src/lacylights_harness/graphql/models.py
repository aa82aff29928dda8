"""Pydantic models for GraphQL requests, responses and the DMX payloads tests read."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class GraphQLRequest(BaseModel):
    query: str
    variables: Optional[dict[str, Any]] = None
    operationName: Optional[str] = None


class GraphQLErrorDetail(BaseModel):
    message: str
    path: Optional[list[Any]] = None
    extensions: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


class GraphQLResponse(BaseModel):
    data: Optional[dict[str, Any]] = None
    errors: list[GraphQLErrorDetail] = Field(default_factory=list)


class DMXOutput(BaseModel):
    """One universe of output levels as reported by the API."""
    universe: int  # API numbering
    channels: list[int] = Field(default_factory=list)

    def channel_value(self, channel: int) -> Optional[int]:
        """Level of a 1-indexed channel, or None when not reported."""
        if 1 <= channel <= len(self.channels):
            return self.channels[channel - 1]
        return None


class DMXOutputChanged(BaseModel):
    """Payload of the ``dmxOutputChanged`` subscription."""
    universe: int
    channels: list[int] = Field(default_factory=list)


class WSMessage(BaseModel):
    """A graphql-transport-ws protocol message."""
    type: str
    id: Optional[str] = None
    payload: Optional[Any] = None
