"""Command line tool for authoring level files."""

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import Sequence

from generator import WordGenerator, level_from_results, rescore
from models import GenerateOptions, LevelFile
from utils import (
    DEFAULT_DATA_DIR,
    LOG_FORMAT,
    SUPPORTED_LANGUAGES,
    LevelFormatError,
    level_filename,
    read_level_file,
    save_level_file,
)

_log = logging.getLogger(__name__)


def create_arg_parser() -> ArgumentParser:
    parser = ArgumentParser(description="Generate and rescore Anagram Hunt level files.")
    parser.add_argument("--log-level", choices=("INFO", "DEBUG", "WARNING", "ERROR"), default="INFO", help="set log level")
    commands = parser.add_subparsers(dest="command", required=True)

    gen = commands.add_parser("generate", help="write a level file for each seed word")
    gen.add_argument("seed_words", nargs="+", metavar="SEED", help="seed word(s), 3+ letters each")
    gen.add_argument("--language", choices=sorted(SUPPORTED_LANGUAGES), default="en", help="dictionary language")
    gen.add_argument("--wordlist", metavar="FILE", help="wordlist file; defaults to the built-in frequency list")
    gen.add_argument("--output-dir", metavar="DIR", type=Path, default=DEFAULT_DATA_DIR, help="data directory; files go to DIR/LANG")
    gen.add_argument("--no-cache", action="store_true", help="do not read or write the dictionary cache")
    gen.add_argument("--show", metavar="N", type=int, default=20, help="print the top N words of each level")

    res = commands.add_parser("rescore", help="recompute scores of existing level files in place")
    res.add_argument("level_files", nargs="+", metavar="FILE", type=Path, help="level JSON file(s)")
    res.add_argument(
        "--language",
        choices=sorted(SUPPORTED_LANGUAGES),
        help="letter value table to use; defaults to the file's data subdirectory, else en",
    )
    return parser


def _valid_seed(seed: str) -> bool:
    return len(seed) >= 3 and seed.isalpha()


def run_generate(args) -> int:
    generator = WordGenerator()
    options = GenerateOptions(use_speed_cache=not args.no_cache)
    generator.load_dictionary(args.language, wordlist_path=args.wordlist, options=options)

    status = 0
    for seed in args.seed_words:
        if not _valid_seed(seed):
            _log.error("skipping %r: seed words need 3 or more letters and nothing else", seed)
            status = 1
            continue
        level = generator.generate_level(seed)
        output = args.output_dir / args.language / level_filename(seed)
        save_level_file(output, level)
        print(f"{level.seed_word}: {len(level.words_list)} words -> {output}")
        for rank, result in enumerate(level.words_list[: args.show], start=1):
            print(f"  {rank}. {result.word} ({len(result.word)} letters, {result.estimated_uncommonness}, {result.combined_score} points)")
    return status


def _rescore_language(path: Path, requested: str | None) -> str:
    if requested:
        return requested
    if path.parent.name in SUPPORTED_LANGUAGES:
        return path.parent.name
    return "en"


def run_rescore(args) -> int:
    status = 0
    for path in args.level_files:
        try:
            level = read_level_file(path)
        except (OSError, LevelFormatError) as exc:
            _log.error("skipping %s: %s", path, exc)
            status = 1
            continue
        if not level.words_list:
            _log.info("skipping empty word list in %s", path)
            continue
        rescored = rescore(level.words_list, _rescore_language(path, args.language))
        if level.words_length_count is None:
            updated = LevelFile(seed_word=level.seed_word, words_list=rescored)
        else:
            updated = level_from_results(level.seed_word, rescored)
        updated.extra = dict(level.extra)
        save_level_file(path, updated)
        _log.info("updated %s", path)
    return status


def main(argv: Sequence[str] | None = None) -> int:
    parser = create_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.getLevelName(args.log_level), format=LOG_FORMAT, stream=sys.stderr)
    try:
        if args.command == "generate":
            return run_generate(args)
        return run_rescore(args)
    except (OSError, ValueError) as exc:
        _log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
