"""
Tale Indexing Unit Tests
Tests turn rotation, bounds checks and tale set consistency helpers.
"""

import pytest

from taleweave.core.errors import ErrorCode, OutOfRangeError, StaleReferenceError
from taleweave.core.tale_indexing import (
    build_tales, chapter_at, ensure_same_tales, ensure_writable_tale_set,
    last_written_chapter, order_like, reveal_prefix, tale_at, tale_index_for
)
from tests.factories.tale_factory import TaleFactory


class TestTaleIndexFor:
    """Test rotation of players through the tales"""

    def test_rotation_with_three_players(self):
        assert tale_index_for(0, 0, 3) == 0
        assert tale_index_for(0, 1, 3) == 1
        assert tale_index_for(0, 2, 3) == 2
        assert tale_index_for(2, 1, 3) == 0

    def test_every_player_writes_every_tale_once(self):
        player_count = 4
        for player_index in range(player_count):
            visited = {tale_index_for(player_index, r, player_count) for r in range(player_count)}
            assert visited == set(range(player_count))

    def test_no_two_players_share_a_tale_in_a_round(self):
        player_count = 5
        for round_number in range(player_count):
            tales = [tale_index_for(p, round_number, player_count) for p in range(player_count)]
            assert len(set(tales)) == player_count

    @pytest.mark.parametrize("player_index,round_number,player_count", [
        (-1, 0, 3), (3, 0, 3), (0, 3, 3), (0, -1, 3), (0, 0, 0),
    ])
    def test_out_of_range(self, player_index, round_number, player_count):
        with pytest.raises(OutOfRangeError) as exc_info:
            tale_index_for(player_index, round_number, player_count)
        assert exc_info.value.code == ErrorCode.OUT_OF_RANGE


class TestAccessors:
    """Test bounds-checked access to tales and chapters"""

    def setup_method(self):
        self.tale = TaleFactory.create_tale(chapter_count=3, texts=["a", "b", ""])

    def test_tale_at(self):
        tales = [self.tale]
        assert tale_at(tales, 0) is self.tale
        with pytest.raises(OutOfRangeError):
            tale_at(tales, 1)

    def test_chapter_at(self):
        assert chapter_at(self.tale, 2).position == 2
        with pytest.raises(OutOfRangeError):
            chapter_at(self.tale, 3)

    def test_reveal_prefix_is_inclusive(self):
        assert [c.position for c in reveal_prefix(self.tale, 0)] == [0]
        assert [c.position for c in reveal_prefix(self.tale, 2)] == [0, 1, 2]

    def test_reveal_prefix_out_of_range(self):
        with pytest.raises(OutOfRangeError):
            reveal_prefix(self.tale, 3)


class TestLastWrittenChapter:
    """Test the backward scan for the previous chapter"""

    def test_returns_latest_written_chapter(self):
        tale = TaleFactory.create_tale(chapter_count=4, texts=["a", "b", "", ""])
        assert last_written_chapter(tale, tale.chapters[2].id).position == 1

    def test_skips_editing_chapter(self):
        tale = TaleFactory.create_tale(chapter_count=3, texts=["a", "b", "draft"])
        assert last_written_chapter(tale, tale.chapters[2].id).position == 1

    def test_none_when_nothing_written(self):
        tale = TaleFactory.create_tale(chapter_count=3)
        assert last_written_chapter(tale, tale.chapters[0].id) is None


class TestTaleSetConsistency:
    """Test tale set shape and identity checks"""

    def setup_method(self):
        self.players = TaleFactory.create_players(3)
        self.tales = build_tales(self.players)

    def test_build_tales_shape(self):
        assert [tale.id for tale in self.tales] == ["tale-0", "tale-1", "tale-2"]
        for tale in self.tales:
            assert tale.chapter_count == 3
            assert [c.position for c in tale.chapters] == [0, 1, 2]
            assert all(c.author_id is None and c.text == "" for c in tale.chapters)

    def test_writable_tale_set(self):
        ensure_writable_tale_set(self.tales, 3)

    def test_wrong_tale_count(self):
        with pytest.raises(StaleReferenceError) as exc_info:
            ensure_writable_tale_set(self.tales[:2], 3)
        assert exc_info.value.details["tale_count"] == 2

    def test_wrong_chapter_count(self):
        self.tales[1].chapters.pop()
        with pytest.raises(StaleReferenceError):
            ensure_writable_tale_set(self.tales, 3)

    def test_same_tales_in_any_order(self):
        ensure_same_tales(self.tales, list(reversed(self.tales)))

    def test_different_tales(self):
        other = build_tales(self.players, prefix="other")
        with pytest.raises(StaleReferenceError):
            ensure_same_tales(self.tales, other)

    def test_order_like(self):
        incoming = [tale.copy() for tale in reversed(self.tales)]
        ordered = order_like(self.tales, incoming)
        assert [tale.id for tale in ordered] == [tale.id for tale in self.tales]
        assert ordered[0] is incoming[2]
