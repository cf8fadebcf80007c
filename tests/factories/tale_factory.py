"""
Tale Factory

Provides factory methods for creating rosters, rooms and tale sets.
"""

from typing import List, Optional

from taleweave.core.entities import Chapter, Player, Room, Tale
from taleweave.core.tale_indexing import build_tales


class TaleFactory:
    """Factory for creating game entities"""

    @staticmethod
    def create_players(count: int = 2) -> List[Player]:
        return [Player(id=f"player-{number}", name=f"Player {number}") for number in range(count)]

    @staticmethod
    def create_room(room_id: str = "room-1") -> Room:
        return Room(id=room_id, code=room_id.upper())

    @staticmethod
    def create_tales(players: List[Player]) -> List[Tale]:
        return build_tales(players)

    @staticmethod
    def create_tale(tale_id: str = "tale-x", chapter_count: int = 3, texts: Optional[List[str]] = None,
                    title: str = "") -> Tale:
        texts = texts or [""] * chapter_count
        chapters = [
            Chapter(id=f"{tale_id}-ch-{position}", tale_id=tale_id, position=position, text=texts[position])
            for position in range(chapter_count)
        ]
        return Tale(id=tale_id, title=title, chapters=chapters)

    @staticmethod
    def create_written_tales(players: List[Player]) -> List[Tale]:
        """Tale set as it looks after every round was written."""
        tales = build_tales(players)
        for tale_number, tale in enumerate(tales):
            tale.title = f"Tale {tale_number}"
            for chapter in tale.chapters:
                chapter.author_id = players[(tale_number - chapter.position) % len(players)].id
                chapter.text = f"Chapter {chapter.position} of tale {tale_number}"
        return tales
