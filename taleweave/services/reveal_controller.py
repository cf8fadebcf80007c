"""
Reveal Controller - drives the reading phase.

Finished tales are read one at a time. Chapters of the current tale are
disclosed on a schedule proportional to the tale's length; when the reading
time runs out the participant votes to skip automatically, and once every
participant has voted the next tale starts. Reading past the last tale ends
the game.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from taleweave.core.entities import Chapter, Tale
from taleweave.core.errors import DuplicateTransitionError, StaleReferenceError
from taleweave.core.game_phases import ConsensusEvent, GameState, IntentKind, RevealPhase
from taleweave.core.tale_indexing import reveal_prefix, tale_at
from taleweave.services.phased_controller import PhasedController


@dataclass
class RevealState:
    """Reading progress through the finished tales."""
    tale_number: int = 0
    last_revealed_chapter: int = 0
    visible_chapters: List[Chapter] = field(default_factory=list)
    skip_voted: bool = False
    reading_ended: bool = False


class RevealController(PhasedController):
    """Reveal phase state machine: REVEALING <-> SKIP_PENDING -> TALE_ADVANCING -> REVEALING | FINISHED."""

    def _initialize(self) -> None:
        self.phase = RevealPhase.IDLE
        self.state = RevealState()

    @property
    def tale_count(self) -> int:
        return len(self.tales)

    @property
    def current_tale(self) -> Tale:
        return tale_at(self.tales, self.state.tale_number)

    def author_name(self, chapter: Chapter) -> Optional[str]:
        """Display name of a chapter's author, None when unknown."""
        for player in self.players:
            if player.id == chapter.author_id:
                return player.name
        return None

    def start(self) -> None:
        """Begin reading the first tale."""
        with self._lock:
            if self.phase != RevealPhase.IDLE:
                self.log_debug(f"Reveal phase already started ({self.phase.value})")
                return
            empty = [tale.id for tale in self.tales if tale.chapter_count == 0]
            if empty:
                raise StaleReferenceError("Tales without chapters can't be revealed", {'tale_ids': empty})

            self.state = RevealState()
            self.log_info(f"Reading {self.tale_count} tales in room {self.room.id}")
            if self.tale_count == 0:
                self._finish()
                return
            self._load_tale()

    def _load_tale(self) -> None:
        tale_number = self.state.tale_number
        tale = self.current_tale

        self.state.last_revealed_chapter = 0
        self.state.visible_chapters = reveal_prefix(tale, 0)
        self.state.reading_ended = False
        self.state.skip_voted = False
        self.phase = RevealPhase.REVEALING

        self._subscribe(
            ConsensusEvent.EVERYONE_VOTED,
            lambda: self.on_everyone_voted(tale_number=tale_number),
        )
        self._timer.reset()
        self._timer.start(
            on_tick=self._on_tick,
            deadline=self.settings.reading_time(tale.chapter_count),
            on_complete=self._on_reading_complete,
        )
        self.log_info(f"Reading tale {tale_number}: {tale.title or tale.id}", tale_number=tale_number)

    def _on_tick(self) -> None:
        tale = self.current_tale
        chapter_index = self._timer.elapsed // self.settings.seconds_per_reveal_chapter
        self.log_debug(f"Remaining {self._timer.remaining} of reading")

        # Index == chapter_count is the tick the reading ends on, not a chapter
        if self.state.last_revealed_chapter < chapter_index < tale.chapter_count:
            self.state.last_revealed_chapter = chapter_index
            self.state.visible_chapters = reveal_prefix(tale, chapter_index)
            self.log_debug(f"Showing chapters to {chapter_index}", tale_number=self.state.tale_number)

    def _on_reading_complete(self, expired: bool) -> None:
        if not expired or self.phase not in (RevealPhase.REVEALING, RevealPhase.SKIP_PENDING):
            return
        self.state.reading_ended = True
        self.log_info(f"Tale {self.state.tale_number} read to the end", tale_number=self.state.tale_number)
        if not self.state.skip_voted:
            self.toggle_skip()

    def toggle_skip(self) -> bool:
        """Flip the local skip vote and publish it."""
        with self._lock:
            if self.phase not in (RevealPhase.REVEALING, RevealPhase.SKIP_PENDING):
                self.log_debug(f"Ignoring skip vote in phase {self.phase.value}")
                return self.state.skip_voted

            self.state.skip_voted = not self.state.skip_voted
            voted = self.state.skip_voted
            self.phase = RevealPhase.SKIP_PENDING if voted else RevealPhase.REVEALING
            tale_number = self.state.tale_number

            self.log_info(
                f"{self.player.name} {'voted' if voted else 'withdrew the vote'} to skip tale {tale_number}",
                tale_number=tale_number,
            )
            self._dispatch(
                f"publish skip vote for tale {tale_number}",
                lambda: self._channel.publish_intent(self.room.id, IntentKind.SKIP_VOTE, voted),
            )
            return voted

    def on_everyone_voted(self, tale_number: Optional[int] = None) -> bool:
        """
        Every participant voted: move on to the next tale.

        tale_number is the tale the vote belongs to; a vote for another tale,
        or one arriving after the tale already advanced, is ignored. Returns
        True when the tale advanced.
        """
        with self._lock:
            try:
                self._check_transition(tale_number)
            except DuplicateTransitionError as e:
                self.log_debug(f"Ignoring skip consensus: {e.message}", **e.details)
                return False

            self._timer.stop()
            self._advance_tale()
            return True

    def _check_transition(self, tale_number: Optional[int]) -> None:
        if self.phase not in (RevealPhase.REVEALING, RevealPhase.SKIP_PENDING):
            raise DuplicateTransitionError(
                f"Tale already advanced (phase {self.phase.value})",
                {'phase': self.phase.value},
            )
        if tale_number is not None and tale_number != self.state.tale_number:
            raise DuplicateTransitionError(
                f"Skip consensus for tale {tale_number} arrived during tale {self.state.tale_number}",
                {'tale_number': tale_number},
            )

    def _advance_tale(self) -> None:
        self.phase = RevealPhase.TALE_ADVANCING
        self._cancel_subscription()
        self.state.tale_number += 1

        if self.state.tale_number <= self.tale_count - 1:
            self.log_info('Loading next tale...')
            self._load_tale()
            return

        self._finish()

    def _finish(self) -> None:
        self.phase = RevealPhase.FINISHED
        self._timer.stop()
        self.log_info('Game ended')
        self._session.emit_game_state_change(GameState.GAME_ENDED)
