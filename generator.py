"""Dictionary loading and the sub-word generation and scoring engine."""

from __future__ import annotations

import logging
import pickle
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, Sequence

from wordfreq import top_n_list

from models import DictionaryLoadResult, GenerateOptions, LevelFile, WordResult
from utils import (
    CACHE_DIR,
    MIN_WORD_LENGTH,
    cache_key,
    char_map,
    check_language,
    display_word,
    ensure_app_dirs,
    is_sub_multiset,
    round_half_up,
)

ProgressCallback = Callable[[float], None]

logger = logging.getLogger(__name__)

# Rarer letters are worth more.
LETTER_VALUES: dict[str, dict[str, int]] = {
    "en": {
        "a": 1, "b": 3, "c": 3, "d": 2, "e": 1, "f": 4, "g": 2, "h": 4, "i": 1, "j": 8, "k": 5, "l": 1, "m": 3,
        "n": 1, "o": 1, "p": 3, "q": 10, "r": 1, "s": 1, "t": 1, "u": 1, "v": 4, "w": 4, "x": 8, "y": 4, "z": 10,
    },
    "de": {
        "a": 1, "b": 3, "c": 4, "d": 1, "e": 1, "f": 4, "g": 2, "h": 2, "i": 1, "j": 6, "k": 4, "l": 2, "m": 3,
        "n": 1, "o": 2, "p": 4, "q": 10, "r": 1, "s": 1, "t": 1, "u": 1, "v": 6, "w": 3, "x": 8, "y": 10, "z": 3,
        "ä": 6, "ö": 8, "ü": 6, "ß": 3,
    },
}

MIN_COMBINED_SCORE = 10
MAX_COMBINED_SCORE = 1000


def uncommonness(word: str, language: str) -> int:
    """Sum of letter values; characters missing from the table count as zero."""
    values = LETTER_VALUES[language]
    return sum(values.get(char, 0) for char in word.lower())


def _normalize(value: int, low: int, high: int) -> float:
    span = high - low
    # a flat range gives every word full credit on that axis
    return (value - low) / span if span > 0 else 1.0


def score_words(words: Sequence[str], language: str) -> list[WordResult]:
    """
    Score a batch of words against each other.

    Length and letter rarity are min/max normalized over the batch, so scores
    only compare within one level. Output keeps the input order.
    """
    check_language(language)
    if not words:
        return []

    lengths = [len(word) for word in words]
    rarities = [uncommonness(word, language) for word in words]
    min_len, max_len = min(lengths), max(lengths)
    min_rare, max_rare = min(rarities), max(rarities)

    results: list[WordResult] = []
    for word, length, rarity in zip(words, lengths, rarities):
        norm_len = _normalize(length, min_len, max_len)
        norm_rare = _normalize(rarity, min_rare, max_rare)
        combined = (norm_len + norm_rare) / 2
        results.append(
            WordResult(
                word=display_word(word, language),
                estimated_uncommonness=round_half_up(1 + norm_rare * 4),
                combined_score=round_half_up(
                    MIN_COMBINED_SCORE + combined * (MAX_COMBINED_SCORE - MIN_COMBINED_SCORE)
                ),
            )
        )
    return results


def find_sub_words(seed_word: str, dictionary: Iterable[str]) -> list[str]:
    """Dictionary words formable from the seed's letters, in dictionary order, deduplicated."""
    seed = seed_word.lower()
    budget = char_map(seed)
    seen: set[str] = set()
    found: list[str] = []
    for word in dictionary:
        lowered = word.lower()
        if len(word) < MIN_WORD_LENGTH or len(word) > len(seed) or lowered == seed:
            continue
        if lowered in seen:
            continue
        if is_sub_multiset(char_map(lowered), budget):
            seen.add(lowered)
            found.append(word)
    return found


def generate(seed_word: str, dictionary: Iterable[str], language: str) -> list[WordResult]:
    """Ranked, scored sub-words of ``seed_word``. Ties keep dictionary order."""
    if not seed_word:
        return []
    found = find_sub_words(seed_word, dictionary)
    if not found:
        return []
    results = score_words(found, language)
    results.sort(key=lambda r: r.combined_score, reverse=True)
    return results


def rescore(words: Iterable[WordResult | str], language: str) -> list[WordResult]:
    """Recompute scores for an existing word list without filtering or re-sorting."""
    plain = [w.word if isinstance(w, WordResult) else w for w in words]
    return score_words(plain, language)


def level_from_results(seed_word: str, results: list[WordResult]) -> LevelFile:
    length_counts: dict[str, int] = {}
    for result in results:
        key = str(len(result.word))
        length_counts[key] = length_counts.get(key, 0) + 1
    return LevelFile(seed_word=seed_word.upper(), words_list=list(results), words_length_count=length_counts)


def _accept(candidate: str) -> bool:
    return len(candidate) >= MIN_WORD_LENGTH and candidate.isalpha()


class WordGenerator:
    """Hold one language's dictionary and generate levels from it."""

    def __init__(self) -> None:
        self.dictionary: list[str] = []
        self.language: str = "en"
        self.source: str = ""

    def load_dictionary(
        self,
        language: str,
        wordlist_path: str | None = None,
        options: GenerateOptions | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> DictionaryLoadResult:
        """
        Load a dictionary from a wordlist file, or the built-in word frequency
        list for ``language`` when no path is given.
        """
        check_language(language)
        options = options or GenerateOptions()
        if options.normalize_case is None:
            options = replace(options, normalize_case=language != "de")
        if wordlist_path:
            result = self._load_wordlist(Path(wordlist_path), language, options, progress_callback)
        else:
            result = self._load_builtin(language, options)
            if progress_callback:
                progress_callback(1.0)
        logger.info(
            "Dictionary ready from %s: %s of %s entries accepted (cache=%s)",
            result.source,
            result.accepted_words,
            result.total_lines,
            result.loaded_from_cache,
        )
        return result

    def _load_builtin(self, language: str, options: GenerateOptions) -> DictionaryLoadResult:
        words = top_n_list(language, options.dictionary_size, wordlist="best")
        self.dictionary = [word for word in words if _accept(word)]
        self.language = language
        self.source = f"wordfreq:{language}"
        return DictionaryLoadResult(
            source=self.source,
            language=language,
            total_lines=len(words),
            accepted_words=len(self.dictionary),
            loaded_from_cache=False,
        )

    def _load_wordlist(
        self,
        path: Path,
        language: str,
        options: GenerateOptions,
        progress_callback: ProgressCallback | None,
    ) -> DictionaryLoadResult:
        if not path.exists():
            raise FileNotFoundError(f"Wordlist file not found: {path}")

        ensure_app_dirs()
        file_stat = path.stat()
        cache_file = CACHE_DIR / f"{cache_key(path, options, file_stat.st_size, file_stat.st_mtime_ns)}.pkl"

        if options.use_speed_cache and cache_file.exists():
            with cache_file.open("rb") as handle:
                cached = pickle.load(handle)
            self.dictionary = cached["words"]
            self.language = language
            self.source = str(path)
            if progress_callback:
                progress_callback(1.0)
            return DictionaryLoadResult(
                source=str(path),
                language=language,
                total_lines=cached["total_lines"],
                accepted_words=len(self.dictionary),
                loaded_from_cache=True,
            )

        total_bytes = max(file_stat.st_size, 1)
        total_lines = 0
        words: list[str] = []

        with path.open("rb") as handle:
            bytes_processed = 0
            for raw_line in handle:
                bytes_processed += len(raw_line)
                total_lines += 1

                candidate = raw_line.decode("utf-8", errors="ignore").strip()
                if options.normalize_case:
                    candidate = candidate.lower()
                if not _accept(candidate):
                    continue
                words.append(candidate)

                if progress_callback and total_lines % 5000 == 0:
                    progress_callback(min(bytes_processed / total_bytes, 1.0))

        self.dictionary = words
        self.language = language
        self.source = str(path)

        if options.use_speed_cache:
            payload = {"words": words, "total_lines": total_lines}
            try:
                with cache_file.open("wb") as handle:
                    pickle.dump(payload, handle, protocol=pickle.HIGHEST_PROTOCOL)
            except Exception:
                logger.exception("Failed writing cache file: %s", cache_file)

        if progress_callback:
            progress_callback(1.0)

        return DictionaryLoadResult(
            source=str(path),
            language=language,
            total_lines=total_lines,
            accepted_words=len(words),
            loaded_from_cache=False,
        )

    def generate(self, seed_word: str) -> list[WordResult]:
        """Generate the scored word list for a seed from the loaded dictionary."""
        results = generate(seed_word, self.dictionary, self.language)
        logger.info("Generated %s words for seed %r (%s)", len(results), seed_word, self.language)
        return results

    def generate_level(self, seed_word: str) -> LevelFile:
        return level_from_results(seed_word, self.generate(seed_word))
