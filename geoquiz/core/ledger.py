"""
Guess ledger for a quiz session.

The ledger holds the distinct raw guesses in submission order (oldest first)
and the set of entities those guesses resolve to. Guesses are kept verbatim:
"Mount Rainier" and "Rainier" are separate entries even when both resolve to
the same entity, while resubmitting an identical string is a no-op.

The ledger does no I/O. Callers persist `guesses` and feed them back through
`restore`.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from ..utils.unicode_utils import is_blank
from .entity import Entity, EntityCollection
from .matcher import GuessMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitOutcome:
    """
    Result of offering a raw guess to the ledger.

    Attributes:
        accepted: The guess was new and has been recorded
        already_guessed: The identical string was already in the ledger
    """

    accepted: bool
    already_guessed: bool


class GuessLedger:
    """Ordered, duplicate-free guesses plus the correct set they resolve to."""

    def __init__(self, guesses: Iterable[str] = ()):
        # dict keeps insertion order and gives O(1) membership
        self._guesses: Dict[str, None] = {}
        self._correct: FrozenSet[Entity] = frozenset()
        self.restore(guesses)

    @property
    def guesses(self) -> Tuple[str, ...]:
        """Raw guesses, oldest first."""
        return tuple(self._guesses)

    @property
    def correct(self) -> FrozenSet[Entity]:
        return self._correct

    def __len__(self) -> int:
        return len(self._guesses)

    def __contains__(self, raw: object) -> bool:
        return raw in self._guesses

    def submit(self, raw: Optional[str]) -> SubmitOutcome:
        """
        Record a raw guess.

        Blank input and verbatim duplicates are no-ops. Accepted guesses are
        appended; the caller is expected to rescore afterwards.

        Args:
            raw: Raw guess text

        Returns:
            SubmitOutcome
        """
        if is_blank(raw):
            return SubmitOutcome(accepted=False, already_guessed=False)
        if raw in self._guesses:
            logger.debug(f"Already guessed: {raw!r}")
            return SubmitOutcome(accepted=False, already_guessed=True)

        self._guesses[raw] = None
        return SubmitOutcome(accepted=True, already_guessed=False)

    def restore(self, raws: Iterable[str]) -> int:
        """
        Bulk-load persisted guesses, dropping blanks and duplicates.

        Args:
            raws: Persisted guesses in their stored order

        Returns:
            Number of guesses added
        """
        added = 0
        skipped = 0
        for raw in raws or ():
            if not isinstance(raw, str) or is_blank(raw) or raw in self._guesses:
                skipped += 1
                continue
            self._guesses[raw] = None
            added += 1

        if skipped:
            logger.info(f"Restore skipped {skipped} blank or duplicate guesses")
        return added

    def rescore(
        self, collection: Optional[EntityCollection], matcher: Optional[GuessMatcher] = None
    ) -> FrozenSet[Entity]:
        """
        Recompute the correct set from scratch against a collection.

        Every stored guess is matched against every entity; matches from any
        earlier collection are discarded. Rerunning with unchanged inputs
        yields the same set.

        Args:
            collection: Current entity collection (None clears the correct set)
            matcher: Matcher for the collection's configuration

        Returns:
            The new correct set
        """
        if collection is None:
            self._correct = frozenset()
            return self._correct

        matcher = matcher or GuessMatcher(collection.config)
        correct = set()
        for raw in self._guesses:
            correct.update(matcher.find_matches(raw, collection.entities))

        self._correct = frozenset(correct)
        logger.debug(
            f"Rescored {len(self._guesses)} guesses: {len(self._correct)}/{len(collection)} correct"
        )
        return self._correct

    def add_correct(self, entities: Iterable[Entity]) -> FrozenSet[Entity]:
        """
        Union newly matched entities into the correct set.

        Equivalent to a full rescore after a single accepted guess.
        """
        new = frozenset(entities) - self._correct
        if new:
            self._correct = self._correct | new
        return new
