from pathlib import Path

import pytest

from models import BonusType, LevelCompletion, LevelFile, SessionStatus, SubmitOutcome, WordResult
from session import INVALID_FLAG_SECONDS, SessionEngine
from utils import read_level_file

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def garden_level() -> LevelFile:
    return read_level_file(DATA_DIR / "en" / "garden.json")


def started_engine(time_limit: int = 300, completions: list | None = None, clock=None) -> SessionEngine:
    engine = SessionEngine(
        time_limit=time_limit,
        on_complete=completions.append if completions is not None else None,
        clock=clock or FakeClock(),
    )
    token = engine.begin_load(1, "en")
    assert engine.apply_level(token, garden_level(), selected_file="garden.json")
    return engine


def type_word(engine: SessionEngine, word: str):
    for letter in word:
        engine.press_letter(letter)
    return engine.submit()


def test_apply_level_indexes_words_and_starts_countdown() -> None:
    engine = started_engine()
    assert engine.status is SessionStatus.ACTIVE
    assert engine.seed_word == "GARDEN"
    assert engine.total_words == 22
    assert "danger" in engine.word_map
    assert engine.time_remaining == 300
    assert engine.remaining_letter_counts() == {"g": 1, "a": 1, "r": 1, "d": 1, "e": 1, "n": 1}


def test_press_letter_respects_seed_budget() -> None:
    engine = started_engine()
    assert engine.press_letter("A")
    assert not engine.press_letter("a")
    assert not engine.press_letter("z")
    assert engine.current_input == "a"
    assert engine.remaining_letter_counts()["a"] == 0


def test_input_ignored_while_loading() -> None:
    engine = SessionEngine()
    engine.begin_load(1, "en")
    assert not engine.press_letter("a")
    assert engine.submit().outcome is SubmitOutcome.IGNORED


def test_delete_removes_last_letter_and_tolerates_empty_buffer() -> None:
    engine = started_engine()
    engine.delete()
    engine.press_letter("d")
    engine.press_letter("e")
    engine.delete()
    assert engine.current_input == "d"


def test_accepted_word_scores_and_clears_buffer() -> None:
    engine = started_engine()
    result = type_word(engine, "danger")
    assert result.outcome is SubmitOutcome.ACCEPTED
    assert result.found.score == 1000
    assert result.found.bonus.type is BonusType.NONE
    assert engine.score == 1000
    assert engine.current_input == ""
    assert engine.message == "+1000"


def test_resubmitting_found_word_changes_nothing() -> None:
    engine = started_engine()
    type_word(engine, "dear")
    state = (engine.score, list(engine.found_words), engine.streak_count, engine.straight_count)
    for _ in range(3):
        result = type_word(engine, "dear")
        assert result.outcome is SubmitOutcome.ALREADY_FOUND
        assert engine.is_invalid
        assert engine.current_input == ""
    assert (engine.score, engine.found_words, engine.streak_count, engine.straight_count) == state


def test_streak_of_equal_lengths() -> None:
    engine = started_engine()
    bonuses = []
    for word in ("dare", "dear", "gear"):
        bonuses.append(type_word(engine, word).found.bonus)
    assert [b.amount for b in bonuses] == [0, 50, 100]
    assert [b.type for b in bonuses] == [BonusType.NONE, BonusType.STREAK, BonusType.STREAK]
    assert bonuses[2].count == 3
    assert engine.streak_count == 3
    assert engine.straight_count == 1
    assert engine.score == 373 * 3 + 150
    assert engine.message == "+373 Streak x3! +100"


def test_straight_of_increasing_lengths() -> None:
    engine = started_engine()
    bonuses = [type_word(engine, word).found.bonus for word in ("and", "dare", "grade")]
    assert [b.amount for b in bonuses] == [0, 100, 200]
    assert bonuses[1].type is BonusType.STRAIGHT
    assert bonuses[2].count == 3
    assert engine.straight_count == 3
    assert engine.streak_count == 1
    assert engine.score == 109 + 373 + 736 + 300


def test_miss_breaks_streak_to_zero_then_restarts_at_one() -> None:
    engine = started_engine()
    for word in ("dare", "dear", "gear"):
        type_word(engine, word)
    result = type_word(engine, "nad")
    assert result.outcome is SubmitOutcome.NOT_IN_LIST
    assert result.message == "Not in word list."
    assert (engine.streak_count, engine.straight_count) == (0, 0)

    # same length as before the miss, but the streak is gone
    bonus = type_word(engine, "rage").found.bonus
    assert bonus.type is BonusType.NONE
    assert (engine.streak_count, engine.straight_count) == (1, 1)


def test_shorter_word_after_straight_resets_to_one() -> None:
    engine = started_engine()
    for word in ("and", "dare", "grade"):
        type_word(engine, word)
    bonus = type_word(engine, "ear").found.bonus
    assert bonus.amount == 0
    assert (engine.streak_count, engine.straight_count) == (1, 1)


def test_length_jump_resets_to_one() -> None:
    engine = started_engine()
    type_word(engine, "ear")
    assert type_word(engine, "grade").found.bonus.amount == 0
    assert (engine.streak_count, engine.straight_count) == (1, 1)


def test_empty_submission_counts_as_miss() -> None:
    engine = started_engine()
    type_word(engine, "dare")
    assert engine.submit().outcome is SubmitOutcome.NOT_IN_LIST
    assert engine.streak_count == 0


def test_invalid_flag_clears_after_delay() -> None:
    clock = FakeClock()
    engine = started_engine(clock=clock)
    type_word(engine, "nad")
    assert engine.is_invalid
    clock.now += INVALID_FLAG_SECONDS - 0.1
    assert engine.is_invalid
    clock.now += 0.2
    assert not engine.is_invalid


def test_found_words_display_is_most_recent_first() -> None:
    engine = started_engine()
    for word in ("ear", "dear", "range"):
        type_word(engine, word)
    assert [fw.word for fw in engine.found_words_display()] == ["range", "dear", "ear"]


def test_countdown_expires_at_zero_and_reports_once() -> None:
    completions: list[LevelCompletion] = []
    engine = started_engine(time_limit=3, completions=completions)
    type_word(engine, "danger")
    seen = []
    for _ in range(5):
        engine.tick()
        seen.append(engine.time_remaining)
    assert seen == [2, 1, 0, 0, 0]
    assert engine.status is SessionStatus.TIME_EXPIRED
    assert completions == [LevelCompletion(level=1, score=1000, words_found=1, total_words=22, language="en")]
    assert type_word(engine, "dear").outcome is SubmitOutcome.IGNORED


def test_suspended_session_does_not_tick() -> None:
    engine = started_engine(time_limit=10)
    engine.suspend()
    assert not engine.tick()
    assert engine.time_remaining == 10
    engine.resume()
    assert engine.tick()
    assert engine.time_remaining == 9


def test_finding_every_word_does_not_end_level() -> None:
    engine = SessionEngine(time_limit=5)
    token = engine.begin_load(3, "en")
    engine.apply_level(token, LevelFile(seed_word="CAT", words_list=[WordResult("Act", 1, 10)]))
    type_word(engine, "act")
    assert engine.all_words_found
    assert engine.status is SessionStatus.ACTIVE
    assert engine.tick()


def test_complete_ends_level_once() -> None:
    completions: list[LevelCompletion] = []
    engine = started_engine(completions=completions)
    type_word(engine, "ear")
    engine.complete()
    engine.complete()
    assert engine.status is SessionStatus.LEVEL_COMPLETE
    assert len(completions) == 1
    assert completions[0].score == 10
    assert not engine.tick()


def test_stale_load_is_discarded() -> None:
    engine = SessionEngine()
    first = engine.begin_load(1, "en")
    second = engine.begin_load(2, "en")
    assert not engine.apply_level(first, garden_level())
    assert engine.status is SessionStatus.LOADING
    assert not engine.fail_load(first, "late failure")
    assert engine.load_error == ""
    assert engine.apply_level(second, garden_level())
    assert engine.level == 2


def test_failed_load_stays_loading() -> None:
    engine = SessionEngine()
    token = engine.begin_load(1, "en")
    assert engine.fail_load(token, FileNotFoundError("garden.json"))
    assert engine.status is SessionStatus.LOADING
    assert engine.load_error == "garden.json"
    retry = engine.begin_load(1, "en")
    assert engine.apply_level(retry, garden_level())


def test_next_level_resets_session() -> None:
    engine = started_engine(time_limit=1)
    type_word(engine, "danger")
    engine.tick()
    token = engine.begin_load(2, "en")
    engine.apply_level(token, garden_level())
    assert engine.score == 0
    assert engine.found_words == []
    assert engine.time_remaining == 1
    assert (engine.last_word_length, engine.streak_count, engine.straight_count) == (0, 0, 0)


def test_snapshot_and_restore_round_trip() -> None:
    engine = started_engine()
    for word in ("dare", "dear"):
        type_word(engine, word)
    engine.tick()
    snapshot = engine.snapshot()
    assert snapshot.selected_seed_word_file == "garden.json"

    resumed = started_engine()
    resumed.suspend()
    resumed.restore(snapshot)
    resumed.resume()
    assert resumed.score == engine.score
    assert resumed.found_words == engine.found_words
    assert resumed.time_remaining == 299
    assert (resumed.streak_count, resumed.straight_count, resumed.last_word_length) == (2, 1, 4)
    assert type_word(resumed, "dear").outcome is SubmitOutcome.ALREADY_FOUND
    assert type_word(resumed, "gear").found.bonus.amount == 100


def test_restore_rejects_other_level() -> None:
    engine = started_engine()
    snapshot = engine.snapshot()
    other = SessionEngine()
    token = other.begin_load(1, "en")
    other.apply_level(token, LevelFile(seed_word="CAT", words_list=[WordResult("Act", 1, 10)]))
    with pytest.raises(ValueError):
        other.restore(snapshot)
    with pytest.raises(ValueError):
        SessionEngine().snapshot()


def test_found_words_use_level_spelling() -> None:
    engine = SessionEngine(clock=FakeClock())
    token = engine.begin_load(1, "de")
    assert engine.apply_level(token, read_level_file(DATA_DIR / "de" / "sterne.json"))
    type_word(engine, "stern")
    type_word(engine, "erst")
    assert [engine.display_form(fw.word) for fw in engine.found_words_display()] == ["erst", "Stern"]
    assert engine.display_form("unknown") == "unknown"


def test_replayed_flag_survives_snapshot() -> None:
    engine = SessionEngine(clock=FakeClock())
    token = engine.begin_load(1, "en")
    assert engine.apply_level(token, garden_level(), selected_file="garden.json", replayed=True)
    snapshot = engine.snapshot()
    assert snapshot.is_replayed_level

    resumed = SessionEngine(clock=FakeClock())
    token = resumed.begin_load(1, "en")
    resumed.apply_level(token, garden_level(), selected_file="garden.json")
    assert not resumed.is_replayed_level
    resumed.restore(snapshot)
    assert resumed.is_replayed_level
