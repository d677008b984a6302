"""
Guess Store for Quiz Sessions

This module persists each quiz's guess list between sessions and loads it
back for GuessLedger.restore. The stored format is a plain JSON array of
strings in submission order.

Key Features:
- One file per quiz key: {store_dir}/{quiz_key}.json
- Order-preserving deduplication when loading
- Cleanup and listing of stored quizzes
"""

import json
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from ..utils.config_loader import get_config

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class GuessStore:
    """
    Saves and restores ordered guess lists on disk.

    The store never blocks a session from starting: unreadable or malformed
    files are logged and treated as empty.
    """

    def __init__(self, store_dir: Optional[str] = None):
        """
        Initialize the store with its directory.

        Args:
            store_dir: Directory for guess files. Defaults to the configured
                GUESS_STORE_DIR, or ~/.geoquiz/guesses
        """
        if store_dir is None:
            store_dir = get_config().get_cli_defaults()["guess_dir"]
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

        logger.debug(f"GuessStore initialized with directory: {self.store_dir}")

    def _path_for(self, quiz_key: str) -> Path:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", quiz_key.strip()).strip("._") or "default"
        return self.store_dir / f"{safe_key}.json"

    def save_guesses(self, quiz_key: str, guesses: Iterable[str]) -> str:
        """
        Write a quiz's guess list.

        Args:
            quiz_key: Quiz identifier
            guesses: Guesses in submission order

        Returns:
            Path to the written file
        """
        guess_file = self._path_for(quiz_key)
        data = list(guesses)

        tmp_file = guess_file.with_suffix(".json.tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_file.replace(guess_file)

        logger.debug(f"Saved {len(data)} guesses to {guess_file}")
        return str(guess_file)

    def load_guesses(self, quiz_key: str) -> List[str]:
        """
        Read a quiz's guess list with order-preserving deduplication.

        Args:
            quiz_key: Quiz identifier

        Returns:
            Guesses in stored order; empty if none are stored or the file is unusable
        """
        guess_file = self._path_for(quiz_key)
        if not guess_file.exists():
            logger.debug(f"No stored guesses for quiz: {quiz_key}")
            return []

        try:
            with open(guess_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load guesses from {guess_file}: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"Guess file {guess_file} does not contain a list")
            return []

        guesses = []
        seen = set()
        for item in data:
            if isinstance(item, str) and item not in seen:
                seen.add(item)
                guesses.append(item)

        removed = len(data) - len(guesses)
        logger.info(
            f"Loaded {len(guesses)} guesses for {quiz_key}"
            + (f" (removed {removed} duplicate or invalid)" if removed else "")
        )
        return guesses

    def clear(self, quiz_key: str) -> bool:
        """
        Delete a quiz's stored guesses.

        Returns:
            True if a file was removed
        """
        guess_file = self._path_for(quiz_key)
        if not guess_file.exists():
            return False
        guess_file.unlink()
        logger.info(f"Cleared stored guesses for quiz: {quiz_key}")
        return True

    def list_quizzes(self) -> List[str]:
        """List quiz keys with stored guesses."""
        return sorted(path.stem for path in self.store_dir.glob("*.json"))
