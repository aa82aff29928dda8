"""
GraphQL HTTP client for driving the lighting server under test.

Tests use it to put the server into a known lighting state; the Art-Net
receiver then checks what actually went out on the wire.
"""

from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

import requests
import structlog
from pydantic import BaseModel, ValidationError

from lacylights_harness.core.config import GraphQLConfig
from lacylights_harness.core.exceptions import GraphQLResponseError, GraphQLTransportError
from lacylights_harness.graphql.models import DMXOutput, GraphQLRequest, GraphQLResponse

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

DMX_OUTPUT_QUERY = """
query DMXOutput($universe: Int!) {
  dmxOutput(universe: $universe) {
    universe
    channels
  }
}
"""

SET_CHANNEL_VALUE_MUTATION = """
mutation SetChannel($universe: Int!, $channel: Int!, $value: Int!) {
  setChannelValue(universe: $universe, channel: $channel, value: $value) {
    universe
    channels
  }
}
"""

SET_MULTIPLE_CHANNEL_VALUES_MUTATION = """
mutation SetMultiple($universe: Int!, $startChannel: Int!, $values: [Int!]!) {
  setMultipleChannelValues(universe: $universe, startChannel: $startChannel, values: $values) {
    universe
    channels
  }
}
"""

BLACKOUT_MUTATION = "mutation Blackout { blackout }"

FADE_TO_BLACK_MUTATION = """
mutation FadeToBlack($fadeOutTime: Float!) {
  fadeToBlack(fadeOutTime: $fadeOutTime)
}
"""


class GraphQLClient:
    """Thin JSON-over-HTTP GraphQL client."""

    def __init__(
        self,
        config: Optional[GraphQLConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or GraphQLConfig()
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return self.config.endpoint

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "GraphQLClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def execute(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> GraphQLResponse:
        """POST a request and return the parsed response, errors included."""
        request = GraphQLRequest(
            query=query,
            variables=variables,
            operationName=operation_name,
        )
        body = request.model_dump(exclude_none=True)

        try:
            resp = self._session.post(
                self.endpoint,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.config.timeout_s,
            )
        except requests.RequestException as e:
            raise GraphQLTransportError(self.endpoint, f"request failed: {e}") from e

        if resp.status_code != 200:
            raise GraphQLTransportError(
                self.endpoint,
                f"unexpected status code: {resp.status_code}, body: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            return GraphQLResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise GraphQLTransportError(self.endpoint, f"failed to decode response: {e}") from e

    def execute_raw(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Return the ``data`` object, raising if the server reported errors."""
        response = self.execute(query, variables)
        if response.errors:
            logger.debug("GraphQL errors", errors=[e.message for e in response.errors])
            raise GraphQLResponseError(response.errors)
        return response.data or {}

    def query(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """
        Run a query, returning ``data`` as a dict or validated into ``model``.
        """
        data = self.execute_raw(query, variables)
        if model is None:
            return data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise GraphQLTransportError(self.endpoint, f"failed to unmarshal response: {e}") from e

    def mutate(
        self,
        mutation: str,
        variables: Optional[dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Any:
        return self.query(mutation, variables, model)

    def ping(self) -> bool:
        """True when the server answers a trivial query."""
        try:
            self.execute_raw("query { __typename }")
        except (GraphQLTransportError, GraphQLResponseError):
            return False
        return True

    # ------------------------------------------------------------------
    # DMX helpers
    # ------------------------------------------------------------------

    def get_dmx_output(self, universe: int) -> DMXOutput:
        data = self.query(DMX_OUTPUT_QUERY, {"universe": universe})
        return DMXOutput.model_validate(data["dmxOutput"])

    def set_channel_value(self, universe: int, channel: int, value: int) -> DMXOutput:
        data = self.mutate(
            SET_CHANNEL_VALUE_MUTATION,
            {"universe": universe, "channel": channel, "value": value},
        )
        return DMXOutput.model_validate(data["setChannelValue"])

    def set_multiple_channel_values(
        self, universe: int, start_channel: int, values: list[int]
    ) -> DMXOutput:
        data = self.mutate(
            SET_MULTIPLE_CHANNEL_VALUES_MUTATION,
            {"universe": universe, "startChannel": start_channel, "values": values},
        )
        return DMXOutput.model_validate(data["setMultipleChannelValues"])

    def blackout(self) -> bool:
        return bool(self.mutate(BLACKOUT_MUTATION)["blackout"])

    def fade_to_black(self, fade_out_time: float = 0.0) -> bool:
        data = self.mutate(FADE_TO_BLACK_MUTATION, {"fadeOutTime": fade_out_time})
        return bool(data["fadeToBlack"])
