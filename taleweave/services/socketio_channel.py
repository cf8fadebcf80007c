"""
Socket.IO Consensus Channel - talks to the game hub server.

Outbound requests are acknowledged Socket.IO calls, so a tale update is
stored by the hub before the readiness intent that follows it is sent.
Inbound hub events are decoded and fanned out to the subscribed handlers.

Hub events:
    UpdateTale(tale)                  -> ack
    RoundReadyChanged(room_id, bool)  -> ack
    SkipVotesChanged(room_id, bool)   -> ack
    talesWereUpdated(tales)           <- everyone is ready
    everyoneVoted()                   <- everyone has a skip vote
"""

import logging
from typing import Any, Optional

import socketio
from socketio import exceptions as socketio_exceptions

from taleweave.core.entities import Tale, tales_from_payload
from taleweave.core.errors import ChannelError, ErrorCode
from taleweave.core.game_phases import ConsensusEvent, IntentKind
from taleweave.services.consensus_channel import ConsensusChannel, HandlerRegistry, Subscription

logger = logging.getLogger(__name__)

INTENT_EVENTS = {
    IntentKind.READY: 'RoundReadyChanged',
    IntentKind.SKIP_VOTE: 'SkipVotesChanged',
}

TALES_UPDATED_EVENT = 'talesWereUpdated'
EVERYONE_VOTED_EVENT = 'everyoneVoted'
UPDATE_TALE_EVENT = 'UpdateTale'


class SocketIOConsensusChannel(ConsensusChannel):
    """Consensus channel over a python-socketio client."""

    def __init__(self, client: Optional[socketio.Client] = None, namespace: str = '/',
                 timeout: float = 10.0):
        self._client = client or socketio.Client(reconnection=True)
        self.namespace = namespace
        self.timeout = timeout
        self._registry = HandlerRegistry()

        self._client.on(TALES_UPDATED_EVENT, self._on_tales_were_updated, namespace=namespace)
        self._client.on(EVERYONE_VOTED_EVENT, self._on_everyone_voted, namespace=namespace)

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    def connect(self, url: str, **kwargs) -> None:
        """Connect the underlying client to the hub."""
        try:
            self._client.connect(url, namespaces=[self.namespace], **kwargs)
        except socketio_exceptions.ConnectionError as e:
            raise ChannelError(f"Could not connect to {url}: {e}", {'code': ErrorCode.CHANNEL_UNAVAILABLE.value}) from e
        logger.info(f"Connected to game hub at {url}")

    def submit_tale_update(self, tale: Tale) -> Any:
        return self._call(UPDATE_TALE_EVENT, tale.to_dict())

    def publish_intent(self, room_id: str, kind: IntentKind, value: bool) -> Any:
        return self._call(INTENT_EVENTS[kind], (room_id, value))

    def subscribe(self, event: ConsensusEvent, handler) -> Subscription:
        return self._registry.subscribe(event, handler)

    def _call(self, event: str, data) -> Any:
        try:
            ack = self._client.call(event, data, namespace=self.namespace, timeout=self.timeout)
        except socketio_exceptions.TimeoutError as e:
            raise ChannelError(f"Timed out waiting for {event} acknowledgement") from e
        except socketio_exceptions.SocketIOError as e:
            raise ChannelError(
                f"Could not send {event}: {e}", {'code': ErrorCode.CHANNEL_UNAVAILABLE.value}
            ) from e
        logger.debug(f"{event} acknowledged: {ack}")
        return ack

    def _on_tales_were_updated(self, payload) -> None:
        try:
            tales = tales_from_payload(payload or [])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed {TALES_UPDATED_EVENT} payload: {e}")
            return
        logger.info('All tales updated.')
        self._registry.dispatch(ConsensusEvent.EVERYONE_READY, tales)

    def _on_everyone_voted(self, *args) -> None:
        self._registry.dispatch(ConsensusEvent.EVERYONE_VOTED)

    def close(self) -> None:
        self._registry.clear()
        if self._client.connected:
            self._client.disconnect()
