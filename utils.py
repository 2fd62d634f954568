"""Utility helpers for letters, casing, config, logging and level data files."""

from __future__ import annotations

import hashlib
import json
import logging
import random
from collections import Counter
from pathlib import Path
from typing import Any

from models import GenerateOptions, LevelFile, WordResult

SUPPORTED_LANGUAGES = {"en": "English", "de": "Deutsch"}
MIN_WORD_LENGTH = 3
DEFAULT_TIME_LIMIT = 300
DEFAULT_DATA_DIR = Path("data")
LEVEL_MAPPING_FILENAME = "_level-mapping.json"
LEVEL_FILE_KEYS = ("seed_word", "words_list", "words_length_count")

# Ascending score needed for one, two and three stars.
STAR_THRESHOLDS = (1000, 10000, 20000)


def _choose_app_dir() -> Path:
    """
    Pick a writable app directory.

    Preferred location is user home, with local workspace fallback when blocked.
    """
    preferred = Path.home() / ".anagram_hunt_app"
    try:
        preferred.mkdir(parents=True, exist_ok=True)
        return preferred
    except OSError:
        fallback = Path(".anagram_hunt_app")
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


APP_DIR = _choose_app_dir()
CONFIG_PATH = APP_DIR / "config.json"
CACHE_DIR = APP_DIR / "cache"
LOG_PATH = APP_DIR / "app.log"
PROGRESS_PATH = APP_DIR / "progress.json"
SNAPSHOT_PATH = APP_DIR / "current_game.json"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LevelFormatError(ValueError):
    """Level or mapping data is not in the expected shape."""


def ensure_app_dirs() -> None:
    """Create app directories if they do not already exist."""
    APP_DIR.mkdir(parents=True, exist_ok=True)
    CACHE_DIR.mkdir(parents=True, exist_ok=True)


def setup_logging() -> None:
    """Configure file logging once per app run."""
    ensure_app_dirs()
    logging.basicConfig(
        filename=str(LOG_PATH),
        level=logging.INFO,
        format=LOG_FORMAT,
    )


def load_config() -> dict[str, Any]:
    """Load config from the user home config file."""
    ensure_app_dirs()
    if not CONFIG_PATH.exists():
        return {}
    try:
        return json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        logging.exception("Failed to load config from %s", CONFIG_PATH)
        return {}


def save_config(config: dict[str, Any]) -> None:
    """Persist config to disk."""
    ensure_app_dirs()
    try:
        CONFIG_PATH.write_text(json.dumps(config, indent=2), encoding="utf-8")
    except Exception:
        logging.exception("Failed to save config to %s", CONFIG_PATH)


def check_language(language: str) -> str:
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language!r}")
    return language


def char_map(word: str) -> Counter[str]:
    """Letter multiset of a word, case-insensitive."""
    return Counter(word.lower())


def is_sub_multiset(demand: Counter[str], budget: Counter[str]) -> bool:
    """True when every letter of ``demand`` is covered by ``budget``."""
    for char, count in demand.items():
        if count > budget.get(char, 0):
            return False
    return True


def display_word(word: str, language: str) -> str:
    """
    Display form of a generated word.

    English words get an initial capital; German words keep the casing of the
    dictionary, which already capitalizes nouns.
    """
    if language == "en" and word:
        return word[0].upper() + word[1:]
    return word


def round_half_up(value: float) -> int:
    return int(value + 0.5)


def star_rating(score: int) -> int:
    """Map a cumulative score to 0-3 stars."""
    stars = 0
    for threshold in STAR_THRESHOLDS:
        if score >= threshold:
            stars += 1
    return stars


def format_time(seconds: int) -> str:
    minutes, remaining = divmod(max(seconds, 0), 60)
    return f"{minutes}:{remaining:02d}"


def cache_key(wordlist_path: Path, options: GenerateOptions, file_size: int, mtime_ns: int) -> str:
    """Create a deterministic cache key from file identity and relevant options."""
    key_data = {
        "path": str(wordlist_path.resolve()),
        "size": file_size,
        "mtime_ns": mtime_ns,
        "normalize_case": options.normalize_case,
    }
    digest = hashlib.sha256(json.dumps(key_data, sort_keys=True).encode("utf-8")).hexdigest()
    return digest


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Level data not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LevelFormatError(f"Invalid JSON in {path}: {exc}") from exc


def parse_level(data: Any) -> LevelFile:
    """Validate decoded level JSON. No partial parsing: any bad entry fails the level."""
    if not isinstance(data, dict) or not isinstance(data.get("words_list"), list):
        raise LevelFormatError("Level data is not in the correct format.")
    seed = data.get("seed_word")
    if not isinstance(seed, str) or not seed:
        raise LevelFormatError("Level data has no seed word.")

    words: list[WordResult] = []
    for idx, item in enumerate(data["words_list"]):
        try:
            words.append(
                WordResult(
                    word=str(item["word"]),
                    estimated_uncommonness=int(item["estimated_uncommonness"]),
                    combined_score=int(item["combined_score"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise LevelFormatError(f"Malformed entry {idx} in words_list: {exc}") from exc

    return LevelFile(
        seed_word=seed,
        words_list=words,
        words_length_count=data.get("words_length_count"),
        extra={key: value for key, value in data.items() if key not in LEVEL_FILE_KEYS},
    )


def read_level_file(path: Path) -> LevelFile:
    return parse_level(_read_json(Path(path)))


def load_level_file(data_dir: Path, language: str, filename: str) -> LevelFile:
    """Read one level file from ``<data_dir>/<language>/<filename>``."""
    path = Path(data_dir) / check_language(language) / filename
    level = read_level_file(path)
    logging.info("Loaded level %s (%s words)", path, len(level.words_list))
    return level


def load_level_mapping(data_dir: Path, language: str) -> dict[str, str | list[str]]:
    path = Path(data_dir) / check_language(language) / LEVEL_MAPPING_FILENAME
    data = _read_json(path)
    if not isinstance(data, dict):
        raise LevelFormatError(f"Level mapping is not an object: {path}")
    return data


def select_level_file(
    mapping: dict[str, str | list[str]],
    level: int,
    rng: random.Random | None = None,
) -> str | None:
    """
    Pick the file for a level.

    Entries are either a single filename or a list of candidate seed files, one
    of which is chosen at random. Returns None once the mapping runs out of levels.
    """
    entry = mapping.get(str(level))
    if not entry:
        return None
    if isinstance(entry, str):
        return entry
    return (rng or random).choice(list(entry))


def save_level_file(path: Path, level: LevelFile) -> None:
    """Write a level file as pretty-printed UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(level.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")


def level_filename(seed_word: str) -> str:
    """File name a level is saved under: the lowercased seed, letters only."""
    return "".join(ch for ch in seed_word.lower() if ch.isalpha()) + ".json"
