"""
Unicode text canonicalization for GeoQuiz guess matching.

This module turns raw guesses and entity titles into comparison keys so that
spelling and formatting variation does not defeat matching.
"""

import re
import unicodedata
from typing import Iterable, Mapping, Optional, Set

_DISALLOWED = re.compile(r"[^a-z0-9\s]")


def strip_diacritics(text: str) -> str:
    """
    Decompose text (NFKD) and drop combining marks.

    "Montañas" becomes "Montanas"; compatibility characters such as
    ligatures are expanded ("ﬁ" -> "fi").

    Args:
        text: Text to fold

    Returns:
        Text without combining diacritical marks
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def canonicalize(
    raw: Optional[str],
    ignored_words: Iterable[str] = (),
    abbreviations: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Reduce a raw string to its canonical comparison key.

    Steps: trim, strip diacritics, lowercase, remove everything outside
    [a-z0-9] and whitespace, split into tokens, fold abbreviations, drop
    ignored words, rejoin with single spaces.

    Abbreviations are folded before ignored words are dropped, and a token is
    dropped when either its raw or folded form is ignored. This keeps the
    function idempotent for tables whose targets are not also sources.

    Args:
        raw: Raw guess or title (None and non-strings canonicalize to "")
        ignored_words: Tokens to remove (expected already canonical)
        abbreviations: Token -> canonical token table

    Returns:
        Canonical key, possibly empty
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)

    text = strip_diacritics(raw.strip()).lower()
    text = _DISALLOWED.sub("", text)

    ignored = ignored_words if isinstance(ignored_words, (set, frozenset)) else set(ignored_words)
    table = abbreviations or {}

    tokens = []
    for token in text.split():
        folded = table.get(token, token)
        if token in ignored or folded in ignored:
            continue
        tokens.append(folded)

    return " ".join(tokens)


def normalize_word_set(words: Optional[Iterable[str]]) -> Set[str]:
    """
    Canonicalize a stopword list so case and diacritics never matter.

    Multi-token entries are split, so "Mount Peak" ignores both tokens.

    Args:
        words: Raw stopwords

    Returns:
        Set of canonical tokens
    """
    normalized = set()
    for word in words or ():
        normalized.update(canonicalize(word).split())
    return normalized


def normalize_abbreviations(table: Optional[Mapping[str, str]]) -> dict:
    """
    Canonicalize both sides of an abbreviation table.

    Args:
        table: Raw token -> canonical token mapping

    Returns:
        Dict of canonical single tokens

    Raises:
        ValueError: If an entry is not a single token or a target is also a source
    """
    normalized = {}
    for source, target in (table or {}).items():
        key = canonicalize(source)
        value = canonicalize(target)
        if not key or not value or " " in key or " " in value:
            raise ValueError(f"Abbreviation entries must be single words: {source!r} -> {target!r}")
        normalized[key] = value

    chained = sorted(set(normalized.values()) & set(normalized))
    chained = [token for token in chained if normalized[token] != token]
    if chained:
        raise ValueError(f"Abbreviation targets cannot also be sources: {', '.join(chained)}")

    return normalized


def is_blank(text: Optional[str]) -> bool:
    """Check if text is missing or whitespace-only."""
    return text is None or not str(text).strip()
