"""
Round Controller - drives the writing phase.

Each participant writes one chapter per round. A round ends when its
deadline passes (the participant is then marked ready automatically) or
when every participant is ready; the consensus event carries the updated
tale set and moves everyone to the next round. After the last round the
finalized tales are handed to the game session.
"""

from dataclasses import dataclass
from typing import Optional

from taleweave.core.entities import Chapter, Tale
from taleweave.core.errors import (
    DuplicateTransitionError, ErrorCode, StaleReferenceError, ValidationError
)
from taleweave.core.game_phases import ConsensusEvent, GameState, IntentKind, RoundPhase
from taleweave.core.tale_indexing import (
    chapter_at, ensure_same_tales, ensure_writable_tale_set, last_written_chapter,
    order_like, tale_at, tale_index_for
)
from taleweave.services.phased_controller import PhasedController


@dataclass
class RoundState:
    """Writing progress of the local participant."""
    round_number: int = 0
    current_tale_index: int = 0
    editing_chapter: Optional[Chapter] = None
    last_chapter: Optional[Chapter] = None
    is_first_round: bool = True
    ready: bool = False
    round_ended: bool = False


class RoundController(PhasedController):
    """Writing phase state machine: WRITING -> ROUND_ENDING -> ADVANCING -> WRITING | FINISHED."""

    def _initialize(self) -> None:
        self.phase = RoundPhase.IDLE
        self.state = RoundState()

    @property
    def current_tale(self) -> Tale:
        return tale_at(self.tales, self.state.current_tale_index)

    @property
    def round_deadline(self) -> int:
        return self.settings.round_deadline(self.state.is_first_round)

    def start(self) -> None:
        """Begin the first round."""
        with self._lock:
            if self.phase != RoundPhase.IDLE:
                self.log_debug(f"Writing phase already started ({self.phase.value})")
                return
            if self.player_count < self.settings.min_players_required:
                raise ValidationError(
                    ErrorCode.INSUFFICIENT_PLAYERS,
                    f"Need at least {self.settings.min_players_required} players to write",
                )
            if self.player_count > self.settings.max_players_per_room:
                raise ValidationError(
                    ErrorCode.TOO_MANY_PLAYERS,
                    f"At most {self.settings.max_players_per_room} players can write together",
                    {'player_count': self.player_count},
                )
            ensure_writable_tale_set(self.tales, self.player_count)
            self.log_debug(f"Index of player: {self.player_index}")
            self.state = RoundState()
            self.log_info(f"Writing phase started for {self.player.name} in room {self.room.id}")
            self._load_round()

    def _load_round(self) -> None:
        round_number = self.state.round_number
        tale_index = tale_index_for(self.player_index, round_number, self.player_count)
        tale = tale_at(self.tales, tale_index)
        chapter = chapter_at(tale, round_number)
        self._assign_author(chapter)

        self.state.current_tale_index = tale_index
        self.state.editing_chapter = chapter
        self.state.last_chapter = last_written_chapter(tale, chapter.id)
        self.state.ready = False
        self.state.round_ended = False
        self.phase = RoundPhase.WRITING

        self._subscribe(
            ConsensusEvent.EVERYONE_READY,
            lambda tales: self.on_remote_consensus(tales, round_number=round_number),
        )
        self._timer.reset()
        self._timer.start(
            on_tick=self._on_tick,
            deadline=self.round_deadline,
            on_complete=self._on_deadline,
        )
        self.log_info(
            f"Round {round_number} loaded: editing chapter {chapter.position} of tale {tale.id}",
            round_number=round_number,
        )

    def _assign_author(self, chapter: Chapter) -> None:
        if chapter.author_id is None:
            chapter.author_id = self.player.id
        elif chapter.author_id != self.player.id:
            self.log_warning(
                f"Chapter {chapter.id} already belongs to {chapter.author_id}, keeping it",
                chapter_id=chapter.id,
            )

    def _on_tick(self) -> None:
        self.log_debug(f"{self._timer.remaining} seconds left.")

    def _on_deadline(self, expired: bool) -> None:
        if expired:
            self._end_round()

    def _end_round(self) -> None:
        if self.phase != RoundPhase.WRITING:
            return
        self.phase = RoundPhase.ROUND_ENDING
        self.state.round_ended = True
        self.log_info(f"Round {self.state.round_number} time is up", round_number=self.state.round_number)
        if not self.state.ready:
            self.toggle_ready()

    def toggle_ready(self) -> bool:
        """
        Flip the local participant's readiness.

        Becoming ready submits the current tale before the readiness intent is
        published.
        """
        with self._lock:
            if self.phase not in (RoundPhase.WRITING, RoundPhase.ROUND_ENDING):
                self.log_debug(f"Ignoring ready toggle in phase {self.phase.value}")
                return self.state.ready

            self.state.ready = not self.state.ready
            ready = self.state.ready
            round_number = self.state.round_number
            steps = []
            if ready:
                snapshot = self.current_tale.copy()
                steps.append(lambda: self._channel.submit_tale_update(snapshot))
            steps.append(lambda: self._channel.publish_intent(self.room.id, IntentKind.READY, ready))

            self.log_info(
                f"{self.player.name} is {'ready' if ready else 'not ready'} for round {round_number}",
                round_number=round_number,
            )
            self._dispatch(f"publish readiness for round {round_number}", *steps)
            return ready

    def edit_chapter(self, text: str) -> Chapter:
        """Write the editing chapter's text while the round is open."""
        with self._lock:
            self._ensure_editable()
            if len(text) > self.settings.max_chapter_length:
                raise ValidationError(
                    ErrorCode.CHAPTER_TOO_LONG,
                    f"Chapter exceeds {self.settings.max_chapter_length} characters",
                    {'length': len(text)},
                )
            self.state.editing_chapter.text = text
            return self.state.editing_chapter

    def set_title(self, title: str) -> Tale:
        """Name the tale; only the player who starts it does that, on the first round."""
        with self._lock:
            if not self.state.is_first_round:
                raise ValidationError(ErrorCode.WRONG_PHASE, "Titles are chosen on the first round")
            self._ensure_editable()
            title = title.strip()
            if len(title) > self.settings.max_title_length:
                raise ValidationError(
                    ErrorCode.TITLE_TOO_LONG,
                    f"Title exceeds {self.settings.max_title_length} characters",
                )
            tale = self.current_tale
            tale.title = title
            return tale

    def _ensure_editable(self) -> None:
        if self.phase != RoundPhase.WRITING or self.state.ready:
            raise ValidationError(
                ErrorCode.INPUT_LOCKED,
                "Chapter can't be edited right now",
                {'phase': self.phase.value, 'ready': self.state.ready},
            )

    def on_remote_consensus(self, updated_tales, round_number: Optional[int] = None) -> bool:
        """
        Everyone is ready: take the updated tales and advance.

        round_number is the round the consensus belongs to; a consensus for
        another round, or one arriving after the round already advanced, is
        ignored. Returns True when the round advanced.
        """
        with self._lock:
            try:
                self._check_transition(round_number)
            except DuplicateTransitionError as e:
                self.log_debug(f"Ignoring consensus: {e.message}", **e.details)
                return False

            self._timer.stop()
            self._replace_tales(updated_tales)
            self._advance()
            return True

    def _check_transition(self, round_number: Optional[int]) -> None:
        if self.phase not in (RoundPhase.WRITING, RoundPhase.ROUND_ENDING):
            raise DuplicateTransitionError(
                f"Round already advanced (phase {self.phase.value})",
                {'phase': self.phase.value},
            )
        if round_number is not None and round_number != self.state.round_number:
            raise DuplicateTransitionError(
                f"Consensus for round {round_number} arrived during round {self.state.round_number}",
                {'round_number': round_number},
            )

    def _replace_tales(self, updated_tales) -> None:
        try:
            ensure_same_tales(self.tales, updated_tales)
            ensure_writable_tale_set(updated_tales, self.player_count)
        except StaleReferenceError as e:
            self.log_warning(f"Keeping local tales: {e.message}", **e.details)
            return
        self.tales = order_like(self.tales, updated_tales)

    def _advance(self) -> None:
        self.phase = RoundPhase.ADVANCING
        self._cancel_subscription()
        self.log_info(f"Round {self.state.round_number} ended.", round_number=self.state.round_number)
        self.state.round_number += 1

        if self.state.round_number <= self.player_count - 1:
            self.state.is_first_round = False
            self._load_round()
            return

        self.phase = RoundPhase.FINISHED
        self._timer.stop()
        self.log_info(f"Writing phase finished after {self.state.round_number} rounds")
        self._session.emit_tales_updated(self.tales)
        self._session.emit_game_state_change(GameState.AFTER_GAME)
