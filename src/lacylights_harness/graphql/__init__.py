"""GraphQL collaborators: HTTP client, subscription client, response comparison."""

from lacylights_harness.graphql.client import GraphQLClient
from lacylights_harness.graphql.compare import compare_responses
from lacylights_harness.graphql.models import (
    DMXOutput,
    DMXOutputChanged,
    GraphQLErrorDetail,
    GraphQLResponse,
    WSMessage,
)
from lacylights_harness.graphql.subscriptions import (
    DMX_OUTPUT_SUBSCRIPTION,
    SubscriptionClient,
    parse_dmx_output_message,
    to_websocket_url,
)

__all__ = [
    "DMXOutput",
    "DMXOutputChanged",
    "DMX_OUTPUT_SUBSCRIPTION",
    "GraphQLClient",
    "GraphQLErrorDetail",
    "GraphQLResponse",
    "SubscriptionClient",
    "WSMessage",
    "compare_responses",
    "parse_dmx_output_message",
    "to_websocket_url",
]
