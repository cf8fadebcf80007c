"""
Game entities shared between the controllers and the consensus channel.

Tales, chapters, players and rooms are owned by the game session; the
controllers only hold references. Every entity converts to and from the
plain-dict payload the game hub exchanges.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Player:
    """A participant; roster order decides turn assignment."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        return cls(id=str(data["id"]), name=data.get("name", ""))


@dataclass
class Room:
    """Shared session key used when publishing intents."""
    id: str
    code: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "code": self.code}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        return cls(id=str(data["id"]), code=data.get("code", ""))


@dataclass
class Chapter:
    """One chapter of a tale at a fixed position."""
    id: str
    tale_id: str
    position: int
    author_id: Optional[str] = None
    text: str = ""

    @property
    def is_written(self) -> bool:
        return len(self.text) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tale_id": self.tale_id,
            "position": self.position,
            "author_id": self.author_id,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chapter":
        author_id = data.get("author_id")
        return cls(
            id=str(data["id"]),
            tale_id=str(data["tale_id"]),
            position=int(data["position"]),
            author_id=str(author_id) if author_id is not None else None,
            text=data.get("text") or "",
        )


@dataclass
class Tale:
    """Ordered sequence of chapters; the chapter count is fixed at creation."""
    id: str
    title: str = ""
    chapters: List[Chapter] = field(default_factory=list)

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)

    def copy(self) -> "Tale":
        """Detached copy, safe to hand to another participant."""
        return Tale.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "chapters": [chapter.to_dict() for chapter in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tale":
        chapters = [Chapter.from_dict(chapter) for chapter in data.get("chapters", [])]
        chapters.sort(key=lambda chapter: chapter.position)
        return cls(id=str(data["id"]), title=data.get("title") or "", chapters=chapters)


def tales_from_payload(payload: List[Dict[str, Any]]) -> List[Tale]:
    """Decode a list of tale dicts received from the channel."""
    return [Tale.from_dict(item) for item in payload]


def copy_tales(tales: List[Tale]) -> List[Tale]:
    return [tale.copy() for tale in tales]
