"""
Local Consensus Hub - in-process stand-in for the game hub server.

Keeps, per room, the roster, the authoritative tale set and the readiness
and skip-vote tallies. Every participant talks to the hub through its own
LocalConsensusChannel. When the last participant becomes ready the hub
sends everyone a copy of the updated tales; once every participant has a
skip vote on record, whatever its value, it announces that everyone
voted. Tallies reset after each consensus.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List

from taleweave.core.entities import Player, Room, Tale, copy_tales
from taleweave.core.errors import ErrorCode, StaleReferenceError, ValidationError
from taleweave.core.game_phases import ConsensusEvent, IntentKind
from taleweave.services.consensus_channel import ConsensusChannel, HandlerRegistry, Subscription

logger = logging.getLogger(__name__)


@dataclass
class HubRoom:
    """Consensus bookkeeping for one room."""
    room: Room
    player_ids: List[str]
    tales: List[Tale]
    ready: Dict[str, bool] = field(default_factory=dict)
    skip_votes: Dict[str, bool] = field(default_factory=dict)
    channels: List['LocalConsensusChannel'] = field(default_factory=list)

    def everyone(self, tally: Dict[str, bool]) -> bool:
        return all(tally.get(player_id, False) for player_id in self.player_ids)

    def everyone_voted(self) -> bool:
        """Every participant has a skip vote on record, True or False."""
        return all(player_id in self.skip_votes for player_id in self.player_ids)


class LocalConsensusHub:
    """Consensus for participants sharing one process."""

    def __init__(self):
        self._rooms: Dict[str, HubRoom] = {}
        self._lock = threading.Lock()

    def open_room(self, room: Room, players: List[Player], tales: List[Tale]) -> None:
        with self._lock:
            if room.id in self._rooms:
                raise ValueError(f"Room '{room.id}' is already open")
            self._rooms[room.id] = HubRoom(
                room=room,
                player_ids=[player.id for player in players],
                tales=copy_tales(tales),
            )
        logger.info(f"Opened room {room.id} for {len(players)} players")

    def close_room(self, room_id: str) -> None:
        with self._lock:
            hub_room = self._rooms.pop(room_id, None)
        if hub_room is None:
            return
        for channel in hub_room.channels:
            channel.close()
        logger.info(f"Closed room {room_id}")

    def connect(self, room_id: str, player_id: str) -> 'LocalConsensusChannel':
        with self._lock:
            hub_room = self._get_room(room_id)
            if player_id not in hub_room.player_ids:
                raise ValidationError(
                    ErrorCode.PLAYER_NOT_IN_ROSTER,
                    f"Player {player_id} is not part of room {room_id}",
                )
            channel = LocalConsensusChannel(self, room_id, player_id)
            hub_room.channels.append(channel)
            return channel

    def get_tales(self, room_id: str) -> List[Tale]:
        with self._lock:
            return copy_tales(self._get_room(room_id).tales)

    def update_tale(self, room_id: str, tale: Tale) -> Dict[str, Any]:
        with self._lock:
            hub_room = self._get_room(room_id)
            for index, stored in enumerate(hub_room.tales):
                if stored.id == tale.id:
                    if stored.chapter_count != tale.chapter_count:
                        raise StaleReferenceError(
                            f"Tale {tale.id} has {tale.chapter_count} chapters, hub has {stored.chapter_count}"
                        )
                    hub_room.tales[index] = tale.copy()
                    logger.debug(f"Tale {tale.id} updated in room {room_id}")
                    return {'success': True, 'tale_id': tale.id}
        raise StaleReferenceError(f"Tale {tale.id} is not part of room {room_id}")

    def set_ready(self, room_id: str, player_id: str, value: bool) -> Dict[str, Any]:
        with self._lock:
            hub_room = self._get_room(room_id)
            hub_room.ready[player_id] = value
            reached = hub_room.everyone(hub_room.ready)
            if reached:
                hub_room.ready.clear()
                deliveries = [(channel, copy_tales(hub_room.tales)) for channel in hub_room.channels]
        if reached:
            logger.info(f"Everyone is ready in room {room_id}")
            for channel, tales in deliveries:
                channel.deliver(ConsensusEvent.EVERYONE_READY, tales)
        return {'success': True, 'consensus': reached}

    def set_skip_vote(self, room_id: str, player_id: str, value: bool) -> Dict[str, Any]:
        with self._lock:
            hub_room = self._get_room(room_id)
            hub_room.skip_votes[player_id] = value
            reached = hub_room.everyone_voted()
            if reached:
                hub_room.skip_votes.clear()
                channels = list(hub_room.channels)
        if reached:
            logger.info(f"Everyone voted in room {room_id}")
            for channel in channels:
                channel.deliver(ConsensusEvent.EVERYONE_VOTED)
        return {'success': True, 'consensus': reached}

    def _get_room(self, room_id: str) -> HubRoom:
        hub_room = self._rooms.get(room_id)
        if hub_room is None:
            raise ValidationError(ErrorCode.ROOM_NOT_FOUND, f"Room '{room_id}' is not open")
        return hub_room


class LocalConsensusChannel(ConsensusChannel):
    """One participant's connection to a LocalConsensusHub."""

    def __init__(self, hub: LocalConsensusHub, room_id: str, player_id: str):
        self._hub = hub
        self.room_id = room_id
        self.player_id = player_id
        self._registry = HandlerRegistry()
        self._closed = False

    def submit_tale_update(self, tale: Tale) -> Dict[str, Any]:
        return self._hub.update_tale(self.room_id, tale)

    def publish_intent(self, room_id: str, kind: IntentKind, value: bool) -> Dict[str, Any]:
        if kind == IntentKind.READY:
            return self._hub.set_ready(room_id, self.player_id, value)
        return self._hub.set_skip_vote(room_id, self.player_id, value)

    def subscribe(self, event: ConsensusEvent, handler) -> Subscription:
        return self._registry.subscribe(event, handler)

    def deliver(self, event: ConsensusEvent, *args) -> int:
        if self._closed:
            return 0
        return self._registry.dispatch(event, *args)

    def close(self) -> None:
        self._closed = True
        self._registry.clear()
