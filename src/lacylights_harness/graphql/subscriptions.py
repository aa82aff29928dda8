"""
WebSocket client for GraphQL subscriptions (graphql-transport-ws protocol).

A reader thread routes incoming messages to one queue per subscription.
Each queue is ended with a ``None`` sentinel when the subscription
completes, is unsubscribed, or the connection goes away.
"""

from __future__ import annotations

import json
import queue
import threading
import time
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as ws_connect

from lacylights_harness.core.config import GraphQLConfig
from lacylights_harness.core.exceptions import SubscriptionError
from lacylights_harness.graphql.models import DMXOutputChanged, WSMessage

logger = structlog.get_logger()

SUBPROTOCOL = "graphql-transport-ws"

# graphql-transport-ws message types
CONNECTION_INIT = "connection_init"
CONNECTION_ACK = "connection_ack"
SUBSCRIBE = "subscribe"
NEXT = "next"
ERROR = "error"
COMPLETE = "complete"
PING = "ping"
PONG = "pong"
CONNECTION_KEEP_ALIVE = "ka"

QUEUE_SIZE = 100

DMX_OUTPUT_SUBSCRIPTION = """
subscription DMXOutputChanged($universe: Int) {
  dmxOutputChanged(universe: $universe) {
    universe
    channels
  }
}
"""


def to_websocket_url(endpoint: str) -> str:
    """Rewrite an http(s) GraphQL endpoint to its ws(s) equivalent."""
    if endpoint.startswith("http://"):
        return "ws://" + endpoint[len("http://"):]
    if endpoint.startswith("https://"):
        return "wss://" + endpoint[len("https://"):]
    return endpoint


def _end_queue(q: "queue.Queue[Optional[WSMessage]]") -> None:
    # The sentinel must get through even if the consumer fell behind.
    while True:
        try:
            q.put_nowait(None)
            return
        except queue.Full:
            try:
                q.get_nowait()
            except queue.Empty:
                pass


class SubscriptionClient:
    """
    GraphQL subscription client over a synchronous websockets connection.

    Example:
        with SubscriptionClient(GraphQLConfig(endpoint=url)) as subs:
            payloads = subs.collect_messages(DMX_OUTPUT_SUBSCRIPTION, None, 1.0)
    """

    def __init__(
        self,
        config: Optional[GraphQLConfig] = None,
        connect: Callable[..., Any] = ws_connect,
    ):
        self.config = config or GraphQLConfig()
        self.endpoint = to_websocket_url(self.config.endpoint)
        self._connect = connect

        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._ws: Any = None
        self._reader: Optional[threading.Thread] = None
        self._closed = True
        self._msg_id = 0
        self._handlers: dict[str, "queue.Queue[Optional[WSMessage]]"] = {}

    def __enter__(self) -> "SubscriptionClient":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closed

    def connect(self) -> None:
        """Open the socket and perform the connection_init/connection_ack handshake."""
        timeout = self.config.handshake_timeout_s
        try:
            ws = self._connect(
                self.endpoint,
                subprotocols=[SUBPROTOCOL],
                open_timeout=timeout,
            )
        except (OSError, WebSocketException) as e:
            raise SubscriptionError(f"failed to connect to {self.endpoint}: {e}") from e

        try:
            ws.send(WSMessage(type=CONNECTION_INIT).model_dump_json(exclude_none=True))
            ack = WSMessage.model_validate_json(ws.recv(timeout=timeout))
        except (TimeoutError, WebSocketException, ValidationError) as e:
            ws.close()
            raise SubscriptionError(f"failed to read connection_ack: {e}") from e

        if ack.type != CONNECTION_ACK:
            ws.close()
            raise SubscriptionError(f"expected connection_ack, got {ack.type}")

        with self._lock:
            self._ws = ws
            self._closed = False
            self._reader = threading.Thread(
                target=self._read_loop,
                args=(ws,),
                name="GraphQL-Subscriptions",
                daemon=True,
            )
            self._reader.start()

        logger.info("Subscription client connected", endpoint=self.endpoint)

    def close(self) -> None:
        with self._lock:
            ws, self._ws = self._ws, None
            reader, self._reader = self._reader, None
        if ws is None:
            return
        ws.close()
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)

    def subscribe(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
    ) -> tuple["queue.Queue[Optional[WSMessage]]", str]:
        """Start a subscription; returns its message queue and id."""
        ch: "queue.Queue[Optional[WSMessage]]" = queue.Queue(maxsize=QUEUE_SIZE)
        with self._lock:
            self._msg_id += 1
            sub_id = f"sub_{self._msg_id}"
            self._handlers[sub_id] = ch

        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            self._send(WSMessage(id=sub_id, type=SUBSCRIBE, payload=payload))
        except SubscriptionError:
            with self._lock:
                self._handlers.pop(sub_id, None)
            raise

        return ch, sub_id

    def unsubscribe(self, sub_id: str) -> None:
        """Stop a subscription and end its queue."""
        with self._lock:
            ch = self._handlers.pop(sub_id, None)
        if ch is None:
            # Already completed by the server or ended by a disconnect.
            return
        _end_queue(ch)
        if self.connected:
            self._send(WSMessage(id=sub_id, type=COMPLETE))

    def collect_messages(
        self,
        query: str,
        variables: Optional[dict[str, Any]],
        duration_s: float,
    ) -> list[Any]:
        """Collect ``next`` payloads for a duration or until the stream completes."""
        ch, sub_id = self.subscribe(query, variables)
        messages: list[Any] = []
        deadline = time.monotonic() + duration_s
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return messages
                try:
                    msg = ch.get(timeout=remaining)
                except queue.Empty:
                    return messages
                if msg is None or msg.type == COMPLETE:
                    return messages
                if msg.type == NEXT:
                    messages.append(msg.payload)
                elif msg.type == ERROR:
                    raise SubscriptionError(json.dumps(msg.payload), sub_id)
        finally:
            self.unsubscribe(sub_id)

    def _send(self, msg: WSMessage) -> None:
        data = msg.model_dump_json(exclude_none=True)
        with self._send_lock:
            ws = self._ws
            if ws is None:
                raise SubscriptionError("not connected", msg.id)
            try:
                ws.send(data)
            except WebSocketException as e:
                raise SubscriptionError(f"failed to send {msg.type}: {e}", msg.id) from e

    def _read_loop(self, ws: Any) -> None:
        try:
            while True:
                try:
                    raw = ws.recv()
                except ConnectionClosed:
                    return
                try:
                    msg = WSMessage.model_validate_json(raw)
                except ValidationError as e:
                    logger.warning("Malformed subscription message", error=str(e))
                    continue
                self._dispatch(msg)
        finally:
            with self._lock:
                self._closed = True
                handlers, self._handlers = self._handlers, {}
            for ch in handlers.values():
                _end_queue(ch)
            logger.debug("Subscription reader exited", ended=len(handlers))

    def _dispatch(self, msg: WSMessage) -> None:
        if msg.type == CONNECTION_KEEP_ALIVE:
            return
        if msg.type == PING:
            try:
                self._send(WSMessage(type=PONG))
            except SubscriptionError as e:
                logger.warning("Failed to answer ping", error=e.message)
            return

        with self._lock:
            ch = self._handlers.get(msg.id) if msg.id else None
            if ch is None:
                return
            try:
                ch.put_nowait(msg)
            except queue.Full:
                logger.warning("Subscription queue full, dropping message", id=msg.id)
            if msg.type in (COMPLETE, ERROR):
                del self._handlers[msg.id]
                _end_queue(ch)


def parse_dmx_output_message(payload: Union[str, bytes, dict]) -> DMXOutputChanged:
    """Parse a ``dmxOutputChanged`` subscription payload."""
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    try:
        return DMXOutputChanged.model_validate(payload["data"]["dmxOutputChanged"])
    except (KeyError, TypeError, ValidationError) as e:
        raise SubscriptionError(f"unexpected dmxOutputChanged payload: {e}") from e
