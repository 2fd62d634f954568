"""Data models for generated levels, live sessions and saved progress."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class BonusType(str, Enum):
    STREAK = "streak"
    STRAIGHT = "straight"
    NONE = "none"


class SessionStatus(str, Enum):
    """Lifecycle of one level attempt."""

    LOADING = "loading"
    ACTIVE = "active"
    TIME_EXPIRED = "time_expired"
    LEVEL_COMPLETE = "level_complete"


class SubmitOutcome(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_FOUND = "already_found"
    NOT_IN_LIST = "not_in_list"
    IGNORED = "ignored"


@dataclass(slots=True)
class GenerateOptions:
    """Options used when loading a dictionary for level generation."""

    # None folds case for every language except German, whose nouns are capitalized
    normalize_case: bool | None = None
    use_speed_cache: bool = True
    dictionary_size: int = 200_000


@dataclass(slots=True)
class WordResult:
    """A scored sub-word of a level's seed word."""

    word: str
    estimated_uncommonness: int
    combined_score: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class LevelFile:
    """Seed word plus its ranked sub-word list, as stored on disk."""

    seed_word: str
    words_list: list[WordResult] = field(default_factory=list)
    words_length_count: dict[str, int] | None = None
    # unrecognized top-level keys, written back untouched
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        payload["seed_word"] = self.seed_word
        if self.words_length_count is not None:
            payload["words_length_count"] = dict(self.words_length_count)
        payload["words_list"] = [w.to_dict() for w in self.words_list]
        return payload


@dataclass(frozen=True, slots=True)
class Bonus:
    type: BonusType = BonusType.NONE
    amount: int = 0
    count: int = 0


@dataclass(frozen=True, slots=True)
class FoundWordInfo:
    """One accepted submission. Never mutated after creation."""

    word: str
    score: int
    bonus: Bonus = field(default_factory=Bonus)

    @property
    def total(self) -> int:
        return self.score + self.bonus.amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": self.word,
            "score": self.score,
            "bonus": {
                "type": self.bonus.type.value,
                "amount": self.bonus.amount,
                "count": self.bonus.count,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FoundWordInfo:
        raw_bonus = data.get("bonus") or {}
        # older snapshots store a null bonus type
        bonus_type = raw_bonus.get("type") or BonusType.NONE.value
        return cls(
            word=str(data["word"]),
            score=int(data["score"]),
            bonus=Bonus(
                type=BonusType(bonus_type),
                amount=int(raw_bonus.get("amount", 0)),
                count=int(raw_bonus.get("count", 0)),
            ),
        )


@dataclass(slots=True)
class SubmitResult:
    """What happened to a submitted input buffer."""

    outcome: SubmitOutcome
    word: str
    found: FoundWordInfo | None = None
    message: str = ""


@dataclass(slots=True)
class SessionSnapshot:
    """Resume checkpoint for an in-progress level."""

    level: int
    language: str
    seed_word: str
    found_words: list[FoundWordInfo]
    score: int
    time_remaining: int
    last_word_length: int
    streak_count: int
    straight_count: int
    selected_seed_word_file: str = ""
    is_replayed_level: bool = False
    saved_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "language": self.language,
            "seed_word": self.seed_word,
            "selected_seed_word_file": self.selected_seed_word_file,
            "found_words": [fw.to_dict() for fw in self.found_words],
            "score": self.score,
            "time_remaining": self.time_remaining,
            "last_word_length": self.last_word_length,
            "streak_count": self.streak_count,
            "straight_count": self.straight_count,
            "saved_at": self.saved_at,
            "is_replayed_level": self.is_replayed_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionSnapshot:
        return cls(
            level=int(data["level"]),
            language=str(data["language"]),
            seed_word=str(data["seed_word"]),
            selected_seed_word_file=str(data.get("selected_seed_word_file", "")),
            found_words=[FoundWordInfo.from_dict(item) for item in data.get("found_words", [])],
            score=int(data.get("score", 0)),
            time_remaining=int(data.get("time_remaining", 0)),
            last_word_length=int(data.get("last_word_length", 0)),
            streak_count=int(data.get("streak_count", 0)),
            straight_count=int(data.get("straight_count", 0)),
            saved_at=str(data.get("saved_at") or utc_now_iso()),
            is_replayed_level=bool(data.get("is_replayed_level", False)),
        )


@dataclass(slots=True)
class LevelCompletion:
    """Final tally of a level attempt, handed to the progress ledger."""

    level: int
    score: int
    words_found: int
    total_words: int
    language: str


@dataclass(slots=True)
class LevelRecord:
    score: int
    words_found: int
    total_words: int
    completed_at: str


@dataclass(slots=True)
class GameProgress:
    """Best results per completed level for one player."""

    current_level: int = 1
    language: str = "en"
    completed_levels: dict[int, LevelRecord] = field(default_factory=dict)
    total_score: int = 0
    last_played: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_level": self.current_level,
            "language": self.language,
            "completed_levels": {str(level): asdict(record) for level, record in self.completed_levels.items()},
            "total_score": self.total_score,
            "last_played": self.last_played,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameProgress:
        completed = {
            int(level): LevelRecord(
                score=int(record.get("score", 0)),
                words_found=int(record.get("words_found", 0)),
                total_words=int(record.get("total_words", 0)),
                completed_at=str(record.get("completed_at", "")),
            )
            for level, record in (data.get("completed_levels") or {}).items()
        }
        return cls(
            current_level=int(data.get("current_level", 1)),
            language=str(data.get("language", "en")),
            completed_levels=completed,
            total_score=int(data.get("total_score", 0)),
            last_played=str(data.get("last_played") or utc_now_iso()),
        )


@dataclass(slots=True)
class DictionaryLoadResult:
    """Summary returned after loading a dictionary."""

    source: str
    language: str
    total_lines: int
    accepted_words: int
    loaded_from_cache: bool
