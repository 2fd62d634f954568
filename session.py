"""In-level scoring state machine: input buffer, bonuses, countdown and checkpoints."""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Callable

from models import (
    Bonus,
    BonusType,
    FoundWordInfo,
    LevelCompletion,
    LevelFile,
    SessionSnapshot,
    SessionStatus,
    SubmitOutcome,
    SubmitResult,
    WordResult,
)
from utils import DEFAULT_TIME_LIMIT, char_map

CompletionCallback = Callable[[LevelCompletion], None]
Clock = Callable[[], float]

STREAK_BONUS = 50
STRAIGHT_BONUS = 100
INVALID_FLAG_SECONDS = 5.0

MSG_ALREADY_FOUND = "Already found!"
MSG_NOT_IN_LIST = "Not in word list."

logger = logging.getLogger(__name__)


class SessionEngine:
    """
    Own the state of one level attempt.

    The engine is not thread-safe. Every action and every timer tick must be
    delivered from the same event loop so they are processed one at a time.

    Level loads are asynchronous from the engine's point of view: ``begin_load``
    hands out a token and only the most recent token may apply a level, so a
    slow load for an old level can never overwrite a newer one.
    """

    def __init__(
        self,
        time_limit: int = DEFAULT_TIME_LIMIT,
        on_complete: CompletionCallback | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.time_limit = time_limit
        self.on_complete = on_complete
        self.clock = clock

        self.status = SessionStatus.LOADING
        self.level = 0
        self.language = "en"
        self.seed_word = ""
        self.selected_file = ""
        self.is_replayed_level = False
        self.load_error = ""
        self.suspended = False
        self.word_map: dict[str, WordResult] = {}
        self.seed_letters: Counter[str] = Counter()
        self._load_token = 0
        self._reset_progress()

    def _reset_progress(self) -> None:
        self.current_input = ""
        self.found_words: list[FoundWordInfo] = []
        self._found: set[str] = set()
        self.score = 0
        self.time_remaining = self.time_limit
        self.last_word_length = 0
        self.streak_count = 0
        self.straight_count = 0
        self.message = ""
        self._invalid_since: float | None = None
        self._completion_reported = False

    # -- loading -----------------------------------------------------------

    def begin_load(self, level: int, language: str) -> int:
        """Enter LOADING for ``level`` and return the token the load must present."""
        self._load_token += 1
        self.status = SessionStatus.LOADING
        self.level = level
        self.language = language
        self.load_error = ""
        self.suspended = False
        self.current_input = ""
        logger.info("Loading level %s (%s), token %s", level, language, self._load_token)
        return self._load_token

    def is_current_load(self, token: int) -> bool:
        return token == self._load_token and self.status is SessionStatus.LOADING

    def apply_level(
        self,
        token: int,
        level_file: LevelFile,
        selected_file: str = "",
        replayed: bool = False,
    ) -> bool:
        """Index a fetched level and start the countdown. Stale loads are dropped."""
        if not self.is_current_load(token):
            logger.info("Discarding stale level load (token %s, current %s)", token, self._load_token)
            return False

        self.seed_word = level_file.seed_word
        self.selected_file = selected_file
        self.is_replayed_level = replayed
        self.word_map = {w.word.lower(): w for w in level_file.words_list}
        self.seed_letters = char_map(level_file.seed_word)
        self._reset_progress()
        self.status = SessionStatus.ACTIVE
        logger.info("Level %s ready: seed %r, %s words", self.level, self.seed_word, len(self.word_map))
        return True

    def fail_load(self, token: int, error: Exception | str) -> bool:
        """Record a failed load. The engine stays in LOADING so the caller may retry."""
        if not self.is_current_load(token):
            return False
        self.load_error = str(error)
        self.message = f"Error: {error}"
        logger.warning("Level %s failed to load: %s", self.level, error)
        return True

    # -- input -------------------------------------------------------------

    def press_letter(self, letter: str) -> bool:
        """Append a letter if the seed still has an unused copy of it."""
        if self.status is not SessionStatus.ACTIVE or len(letter) != 1:
            return False
        letter = letter.lower()
        if self.current_input.count(letter) < self.seed_letters.get(letter, 0):
            self.current_input += letter
            return True
        return False

    def delete(self) -> None:
        if self.status is SessionStatus.ACTIVE and self.current_input:
            self.current_input = self.current_input[:-1]

    def submit(self) -> SubmitResult:
        """Evaluate the input buffer, then clear it whatever the outcome."""
        word = self.current_input.lower()
        if self.status is not SessionStatus.ACTIVE:
            return SubmitResult(outcome=SubmitOutcome.IGNORED, word=word)
        self.current_input = ""

        if word in self._found:
            self._flag_invalid(MSG_ALREADY_FOUND)
            return SubmitResult(outcome=SubmitOutcome.ALREADY_FOUND, word=word, message=self.message)

        entry = self.word_map.get(word)
        if entry is None:
            self.streak_count = 0
            self.straight_count = 0
            self._flag_invalid(MSG_NOT_IN_LIST)
            return SubmitResult(outcome=SubmitOutcome.NOT_IN_LIST, word=word, message=self.message)

        bonus = self._apply_bonus(len(entry.word))
        found = FoundWordInfo(word=word, score=entry.combined_score, bonus=bonus)
        self.found_words.append(found)
        self._found.add(word)
        self.score += found.total
        self._invalid_since = None
        self.message = self._accept_message(found)
        logger.debug("Accepted %r for %s points", word, found.total)
        return SubmitResult(outcome=SubmitOutcome.ACCEPTED, word=word, found=found, message=self.message)

    def _apply_bonus(self, new_length: int) -> Bonus:
        previous = self.last_word_length
        bonus = Bonus()
        if previous > 0 and new_length == previous:
            self.streak_count += 1
            self.straight_count = 1
            if self.streak_count >= 2:
                bonus = Bonus(BonusType.STREAK, (self.streak_count - 1) * STREAK_BONUS, self.streak_count)
        elif previous > 0 and new_length == previous + 1:
            self.straight_count += 1
            self.streak_count = 1
            if self.straight_count >= 2:
                bonus = Bonus(BonusType.STRAIGHT, (self.straight_count - 1) * STRAIGHT_BONUS, self.straight_count)
        else:
            # first word, a jump or a shorter word: start over at one, not zero
            self.streak_count = 1
            self.straight_count = 1
        self.last_word_length = new_length
        return bonus

    @staticmethod
    def _accept_message(found: FoundWordInfo) -> str:
        message = f"+{found.score}"
        if found.bonus.type is BonusType.STREAK:
            message += f" Streak x{found.bonus.count}! +{found.bonus.amount}"
        elif found.bonus.type is BonusType.STRAIGHT:
            message += f" Straight x{found.bonus.count}! +{found.bonus.amount}"
        return message

    def _flag_invalid(self, message: str) -> None:
        self.message = message
        self._invalid_since = self.clock()

    @property
    def is_invalid(self) -> bool:
        """Transient rejection flag, cleared automatically after a few seconds."""
        if self._invalid_since is None:
            return False
        if self.clock() - self._invalid_since >= INVALID_FLAG_SECONDS:
            self._invalid_since = None
            return False
        return True

    # -- countdown and completion --------------------------------------------

    def tick(self) -> bool:
        """Advance the countdown by one second. Returns True while the clock keeps running."""
        if self.status is not SessionStatus.ACTIVE or self.suspended:
            return False
        if self.time_remaining > 0:
            self.time_remaining -= 1
        if self.time_remaining <= 0:
            self.time_remaining = 0
            self._finish(SessionStatus.TIME_EXPIRED)
            return False
        return True

    def suspend(self) -> None:
        self.suspended = True

    def resume(self) -> None:
        self.suspended = False

    def complete(self) -> None:
        """External request to end the level early. Finding every word does not end it."""
        if self.status is SessionStatus.ACTIVE:
            self._finish(SessionStatus.LEVEL_COMPLETE)

    def _finish(self, status: SessionStatus) -> None:
        self.status = status
        self.current_input = ""
        logger.info("Level %s ended (%s) with score %s", self.level, status.value, self.score)
        if self._completion_reported:
            return
        self._completion_reported = True
        if self.on_complete is not None:
            self.on_complete(self.completion())

    def completion(self) -> LevelCompletion:
        return LevelCompletion(
            level=self.level,
            score=self.score,
            words_found=len(self.found_words),
            total_words=self.total_words,
            language=self.language,
        )

    # -- checkpoints ---------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        if not self.seed_word:
            raise ValueError("No level loaded; nothing to snapshot")
        return SessionSnapshot(
            level=self.level,
            language=self.language,
            seed_word=self.seed_word,
            selected_seed_word_file=self.selected_file,
            found_words=list(self.found_words),
            score=self.score,
            time_remaining=self.time_remaining,
            last_word_length=self.last_word_length,
            streak_count=self.streak_count,
            straight_count=self.straight_count,
            is_replayed_level=self.is_replayed_level,
        )

    def restore(self, snapshot: SessionSnapshot) -> None:
        """Reapply a checkpoint on top of the freshly loaded level it was taken from."""
        if self.status is not SessionStatus.ACTIVE:
            raise ValueError(f"Cannot restore a snapshot while {self.status.value}")
        if snapshot.seed_word.lower() != self.seed_word.lower():
            raise ValueError(f"Snapshot is for seed {snapshot.seed_word!r}, level has {self.seed_word!r}")

        self.found_words = list(snapshot.found_words)
        self._found = {fw.word.lower() for fw in snapshot.found_words}
        self.score = snapshot.score
        self.time_remaining = max(0, snapshot.time_remaining)
        self.last_word_length = snapshot.last_word_length
        self.streak_count = snapshot.streak_count
        self.straight_count = snapshot.straight_count
        self.is_replayed_level = snapshot.is_replayed_level
        self.current_input = ""
        self.message = ""
        self._invalid_since = None
        logger.info("Restored level %s with %s words found", self.level, len(self.found_words))

    # -- views ---------------------------------------------------------------

    @property
    def total_words(self) -> int:
        return len(self.word_map)

    @property
    def all_words_found(self) -> bool:
        return bool(self.word_map) and len(self._found) >= len(self.word_map)

    def remaining_letter_counts(self) -> dict[str, int]:
        used = char_map(self.current_input)
        return {letter: count - used.get(letter, 0) for letter, count in self.seed_letters.items()}

    def display_form(self, word: str) -> str:
        """How the level file spells ``word``, e.g. a capitalized German noun."""
        entry = self.word_map.get(word.lower())
        return entry.word if entry else word

    def found_words_display(self) -> list[FoundWordInfo]:
        """Found words, most recent first."""
        return list(reversed(self.found_words))
