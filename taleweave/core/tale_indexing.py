"""
Tale and chapter indexing helpers.

Every indexed access the controllers make goes through these functions, which
prove the bounds first and raise OutOfRangeError or StaleReferenceError
instead of letting an IndexError escape.
"""

from typing import List, Optional, Sequence

from taleweave.core.entities import Chapter, Player, Tale
from taleweave.core.errors import OutOfRangeError, StaleReferenceError


def tale_index_for(player_index: int, round_number: int, player_count: int) -> int:
    """
    Tale a player edits in a given round.

    Players rotate through the tales: player 1 starts on tale 1, moves to
    tale 2 on the next round and wraps around after the last tale.
    """
    if player_count < 1:
        raise OutOfRangeError(f"Invalid player count: {player_count}")
    if not 0 <= player_index < player_count:
        raise OutOfRangeError(f"Player index {player_index} outside roster of {player_count}")
    if not 0 <= round_number < player_count:
        raise OutOfRangeError(f"Round {round_number} outside game of {player_count} rounds")
    return (player_index + round_number) % player_count


def tale_at(tales: Sequence[Tale], index: int) -> Tale:
    if not 0 <= index < len(tales):
        raise OutOfRangeError(f"Tale index {index} outside tale set of {len(tales)}")
    return tales[index]


def chapter_at(tale: Tale, position: int) -> Chapter:
    if not 0 <= position < tale.chapter_count:
        raise OutOfRangeError(
            f"Chapter {position} outside tale {tale.id} of {tale.chapter_count} chapters"
        )
    return tale.chapters[position]


def last_written_chapter(tale: Tale, editing_chapter_id: Optional[str]) -> Optional[Chapter]:
    """
    Most recent chapter with text, scanning backward from the end.

    The chapter currently being edited is skipped. Returns None when no
    chapter qualifies, which is always the case before the first round ends.
    """
    for chapter in reversed(tale.chapters):
        if chapter.is_written and chapter.id != editing_chapter_id:
            return chapter
    return None


def reveal_prefix(tale: Tale, last_index: int) -> List[Chapter]:
    """Chapters 0..last_index inclusive."""
    if not 0 <= last_index < tale.chapter_count:
        raise OutOfRangeError(
            f"Reveal index {last_index} outside tale {tale.id} of {tale.chapter_count} chapters"
        )
    return list(tale.chapters[:last_index + 1])


def ensure_writable_tale_set(tales: Sequence[Tale], player_count: int) -> None:
    """One tale per player, one chapter per player in every tale."""
    if len(tales) != player_count:
        raise StaleReferenceError(
            f"Tale set has {len(tales)} tales for {player_count} players",
            {"tale_count": len(tales), "player_count": player_count},
        )
    for tale in tales:
        if tale.chapter_count != player_count:
            raise StaleReferenceError(
                f"Tale {tale.id} has {tale.chapter_count} chapters for {player_count} players",
                {"tale_id": tale.id, "chapter_count": tale.chapter_count},
            )


def ensure_same_tales(current: Sequence[Tale], incoming: Sequence[Tale]) -> None:
    """Tale identity is stable across updates; an incoming set must carry the same ids."""
    current_ids = [tale.id for tale in current]
    incoming_ids = [tale.id for tale in incoming]
    if sorted(current_ids) != sorted(incoming_ids):
        raise StaleReferenceError(
            "Incoming tale set does not match the current tales",
            {"current": current_ids, "incoming": incoming_ids},
        )


def order_like(current: Sequence[Tale], incoming: Sequence[Tale]) -> List[Tale]:
    """Reorder an incoming tale set to follow the order of the current one."""
    by_id = {tale.id: tale for tale in incoming}
    return [by_id[tale.id] for tale in current]


def build_tales(players: Sequence[Player], prefix: str = "tale") -> List[Tale]:
    """
    Create the initial tale set for a roster.

    One tale per player, each holding one empty, unassigned chapter per player.
    """
    tales = []
    player_count = len(players)
    for tale_number in range(player_count):
        tale_id = f"{prefix}-{tale_number}"
        chapters = [
            Chapter(id=f"{tale_id}-ch-{position}", tale_id=tale_id, position=position)
            for position in range(player_count)
        ]
        tales.append(Tale(id=tale_id, chapters=chapters))
    return tales
