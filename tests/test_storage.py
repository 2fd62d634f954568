from pathlib import Path

from models import Bonus, BonusType, FoundWordInfo, LevelCompletion, SessionSnapshot
from storage import ProgressStore


def make_store(tmp_path: Path) -> ProgressStore:
    return ProgressStore(tmp_path / "progress.json", tmp_path / "current_game.json")


def test_first_completion_is_recorded(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    assert store.load_progress() is None
    progress = store.update_level_progress(LevelCompletion(1, 1500, 4, 22, "en"))
    assert progress.total_score == 1500
    assert progress.completed_levels[1].words_found == 4
    assert store.load_progress().completed_levels[1].score == 1500


def test_lower_score_never_overwrites_best(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.update_level_progress(LevelCompletion(1, 1500, 4, 22, "en"))
    store.update_level_progress(LevelCompletion(2, 300, 1, 25, "en"))
    progress = store.update_level_progress(LevelCompletion(1, 900, 9, 22, "en"))
    assert progress.completed_levels[1].score == 1500
    assert progress.completed_levels[1].words_found == 4
    assert progress.total_score == 1800


def test_better_score_moves_total_by_the_improvement(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.update_level_progress(LevelCompletion(1, 1500, 4, 22, "en"))
    progress = store.update_level_progress(LevelCompletion(1, 2000, 6, 22, "en"))
    assert progress.completed_levels[1].score == 2000
    assert progress.total_score == 2000


def test_current_level_is_kept_across_completions(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.set_current_level(3, "de")
    progress = store.update_level_progress(LevelCompletion(3, 100, 1, 11, "de"))
    assert progress.current_level == 3
    assert progress.language == "de"


def test_snapshot_save_load_clear(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    snapshot = SessionSnapshot(
        level=2,
        language="en",
        seed_word="PLANET",
        selected_seed_word_file="planet.json",
        found_words=[
            FoundWordInfo("plan", 472),
            FoundWordInfo("plate", 736, Bonus(BonusType.STRAIGHT, 100, 2)),
        ],
        score=1308,
        time_remaining=212,
        last_word_length=5,
        streak_count=1,
        straight_count=2,
    )
    store.save_snapshot(snapshot)
    assert store.load_snapshot() == snapshot
    store.clear_snapshot()
    assert store.load_snapshot() is None
    store.clear_snapshot()


def test_snapshot_with_null_bonus_type_loads(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.snapshot_path.write_text(
        '{"level": 1, "language": "en", "seed_word": "GARDEN", "found_words": '
        '[{"word": "dear", "score": 373, "bonus": {"type": null, "amount": 0, "count": 0}}], '
        '"score": 373, "time_remaining": 100}',
        encoding="utf-8",
    )
    snapshot = store.load_snapshot()
    assert snapshot.found_words == [FoundWordInfo("dear", 373)]
    assert snapshot.streak_count == 0


def test_unreadable_files_are_treated_as_absent(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.progress_path.write_text("{broken", encoding="utf-8")
    store.snapshot_path.write_text('{"level": "x"}', encoding="utf-8")
    assert store.load_progress() is None
    assert store.load_snapshot() is None


def test_clear_progress_removes_saved_game_too(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.update_level_progress(LevelCompletion(1, 10, 1, 22, "en"))
    store.snapshot_path.write_text("{}", encoding="utf-8")
    store.clear_progress()
    assert not store.progress_path.exists()
    assert not store.snapshot_path.exists()


def test_is_level_completed_checks_language(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    assert not store.is_level_completed(1, "en")
    store.update_level_progress(LevelCompletion(1, 10, 1, 22, "en"))
    assert store.is_level_completed(1, "en")
    assert not store.is_level_completed(2, "en")
    assert not store.is_level_completed(1, "de")
