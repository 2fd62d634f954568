"""JSON file persistence for level progress and resumable session snapshots."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from models import GameProgress, LevelCompletion, LevelRecord, SessionSnapshot, utc_now_iso
from utils import PROGRESS_PATH, SNAPSHOT_PATH

logger = logging.getLogger(__name__)


class ProgressStore:
    """Progress ledger and saved-game checkpoint kept as two JSON files."""

    def __init__(self, progress_path: Path = PROGRESS_PATH, snapshot_path: Path = SNAPSHOT_PATH) -> None:
        self.progress_path = Path(progress_path)
        self.snapshot_path = Path(snapshot_path)

    def _read(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except Exception:
            logger.exception("Failed to read %s", path)
            return None
        return data if isinstance(data, dict) else None

    def _write(self, path: Path, payload: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except Exception:
            logger.exception("Failed to write %s", path)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Failed to remove %s", path)

    # -- progress ledger -------------------------------------------------------

    def load_progress(self) -> GameProgress | None:
        data = self._read(self.progress_path)
        if data is None:
            return None
        try:
            return GameProgress.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.exception("Discarding unreadable progress in %s", self.progress_path)
            return None

    def save_progress(self, progress: GameProgress) -> None:
        self._write(self.progress_path, progress.to_dict())

    def clear_progress(self) -> None:
        """Forget all progress, including any saved game."""
        self._remove(self.progress_path)
        self._remove(self.snapshot_path)

    def update_level_progress(self, completion: LevelCompletion) -> GameProgress:
        """
        Merge a finished level into the ledger.

        Only a better score replaces a level's record; the total score moves by
        the improvement, so replaying a level never counts it twice.
        """
        existing = self.load_progress() or GameProgress(language=completion.language)
        now = utc_now_iso()

        previous = existing.completed_levels.get(completion.level)
        previous_score = previous.score if previous else 0

        improved = completion.score > previous_score
        if previous is None or improved:
            existing.completed_levels[completion.level] = LevelRecord(
                score=completion.score,
                words_found=completion.words_found,
                total_words=completion.total_words,
                completed_at=now,
            )
        if improved:
            existing.total_score += completion.score - previous_score
            logger.info("Level %s best score now %s", completion.level, completion.score)

        existing.language = completion.language
        existing.last_played = now
        self.save_progress(existing)
        return existing

    def is_level_completed(self, level: int, language: str) -> bool:
        progress = self.load_progress()
        return progress is not None and progress.language == language and level in progress.completed_levels

    def set_current_level(self, level: int, language: str) -> GameProgress:
        progress = self.load_progress() or GameProgress(language=language)
        progress.current_level = level
        progress.language = language
        progress.last_played = utc_now_iso()
        self.save_progress(progress)
        return progress

    # -- saved game ------------------------------------------------------------

    def save_snapshot(self, snapshot: SessionSnapshot) -> None:
        self._write(self.snapshot_path, snapshot.to_dict())

    def load_snapshot(self) -> SessionSnapshot | None:
        data = self._read(self.snapshot_path)
        if data is None:
            return None
        try:
            return SessionSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.exception("Discarding unreadable snapshot in %s", self.snapshot_path)
            return None

    def clear_snapshot(self) -> None:
        self._remove(self.snapshot_path)
