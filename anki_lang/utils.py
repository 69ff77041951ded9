"""Utility functions for reading and normalizing word lists."""

import re
from pathlib import Path
from typing import Iterable, List

import structlog

log = structlog.get_logger()

_INLINE_SEPARATORS = re.compile(r"[,;]")
_INPUT_SEPARATORS = re.compile(r"[,;\r\n]")


def load_words_from_file(file_path: Path) -> List[str]:
    """Load words from a text file; a line may hold several words separated by , or ;"""
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    words = []
    with open(file_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            words.extend(piece.strip() for piece in _INLINE_SEPARATORS.split(line) if piece.strip())

    log.info("Loaded words from file", count=len(words), file=str(file_path))
    return words


def split_input(text: str) -> List[str]:
    """Split interactively entered text on commas, semicolons and newlines."""
    return [piece.strip() for piece in _INPUT_SEPARATORS.split(text) if piece.strip()]


def normalize_words(words: Iterable[str]) -> List[str]:
    return [word.strip() for word in words if word.strip()]
