"""
Quiz session orchestration for GeoQuiz.

A QuizSession owns the guess ledger and the correct set. It moves between two
states:

- UNLOADED: no entity collection yet. Guesses are queued in the ledger and
  scored as soon as a collection arrives.
- LOADED: a collection is present. Each accepted guess is matched, the
  statistics and threshold filter are recomputed and listeners are notified.

Every collection load rescores the whole ledger from scratch, so matches
from a previous collection never survive a quiz switch. Loads are tagged with
increasing sequence numbers; a load that finishes after a newer one has been
applied is discarded. While a load is in flight the session keeps showing its
previous state.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from ..core.entity import Entity, EntityCollection, Number
from ..core.exceptions import CollectionLoadError
from ..core.ledger import GuessLedger
from ..core.matcher import GuessMatcher
from ..data.collection_loader import CollectionLoader
from ..evaluate.metrics import QuizStatistics, QuizStatisticsEngine
from ..evaluate.threshold_filter import FilterResult, ThresholdControls, filter_entities


class SessionState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of one guess submission.

    Attributes:
        guess: Raw guess as submitted
        accepted: The guess was new and recorded in the ledger
        already_guessed: The identical string had been submitted before
        matched_entities: Entities the guess resolves to (empty while unloaded)
        newly_correct: Matched entities that were not already correct
    """

    guess: str
    accepted: bool
    already_guessed: bool
    matched_entities: Tuple[Entity, ...] = ()
    newly_correct: Tuple[Entity, ...] = ()

    @property
    def matched(self) -> bool:
        return bool(self.matched_entities)


@dataclass(frozen=True)
class QuizSnapshot:
    """Immutable view of the session handed to listeners."""

    state: SessionState
    collection: Optional[EntityCollection]
    guesses: Tuple[str, ...]
    correct: Tuple[Entity, ...]
    statistics: Optional[QuizStatistics]
    filtered: Optional[FilterResult]


Listener = Callable[[QuizSnapshot], None]


class QuizSession:
    """
    Single-user quiz state machine.

    Only the session writes to its ledger; outside code reads snapshots.
    """

    def __init__(
        self,
        statistics_engine: Optional[QuizStatisticsEngine] = None,
        threshold_controls: Optional[ThresholdControls] = None,
        guesses: Iterable[str] = (),
    ):
        self.logger = logging.getLogger("QuizSession")
        self.statistics_engine = statistics_engine or QuizStatisticsEngine()
        self.thresholds = threshold_controls or ThresholdControls()

        self._ledger = GuessLedger(guesses)
        self._collection: Optional[EntityCollection] = None
        self._matcher: Optional[GuessMatcher] = None
        self._filter_attributes: Tuple[str, ...] = ()
        self._statistics: Optional[QuizStatistics] = None
        self._filtered: Optional[FilterResult] = None
        self._listeners: List[Listener] = []

        self._issued_sequence = 0
        self._applied_sequence = 0

    @property
    def state(self) -> SessionState:
        return SessionState.UNLOADED if self._collection is None else SessionState.LOADED

    @property
    def collection(self) -> Optional[EntityCollection]:
        return self._collection

    @property
    def guesses(self) -> Tuple[str, ...]:
        """Raw guesses, oldest first; this is what gets persisted."""
        return self._ledger.guesses

    @property
    def correct(self) -> Tuple[Entity, ...]:
        """Correct entities in collection order."""
        if self._collection is None:
            return ()
        return tuple(self._collection.ordered(self._ledger.correct))

    @property
    def statistics(self) -> Optional[QuizStatistics]:
        return self._statistics

    @property
    def filtered(self) -> Optional[FilterResult]:
        return self._filtered

    def add_listener(self, listener: Listener) -> None:
        """Register a callback receiving a snapshot after every state change."""
        self._listeners.append(listener)

    def snapshot(self) -> QuizSnapshot:
        return QuizSnapshot(
            state=self.state,
            collection=self._collection,
            guesses=self.guesses,
            correct=self.correct,
            statistics=self._statistics,
            filtered=self._filtered,
        )

    def restore(self, raws: Iterable[str]) -> int:
        """
        Add persisted guesses to the ledger and rescore.

        Args:
            raws: Persisted guesses (duplicates and blanks are dropped)

        Returns:
            Number of guesses added
        """
        added = self._ledger.restore(raws)
        self.logger.info(f"Restored {added} guesses")
        if self._collection is not None:
            self._ledger.rescore(self._collection, self._matcher)
        self._refresh()
        return added

    def submit(self, raw: Optional[str]) -> SubmissionResult:
        """
        Submit a raw guess.

        Blank guesses and verbatim repeats are no-ops. While unloaded an
        accepted guess is only queued.

        Args:
            raw: Raw guess text

        Returns:
            SubmissionResult
        """
        outcome = self._ledger.submit(raw)
        if not outcome.accepted:
            return SubmissionResult(
                guess=raw or "", accepted=False, already_guessed=outcome.already_guessed
            )

        if self._collection is None:
            self.logger.info(f"Queued guess {raw!r} until a collection is loaded")
            self._refresh()
            return SubmissionResult(guess=raw, accepted=True, already_guessed=False)

        # union with the new guess's matches equals a full rescore
        matches = self._matcher.find_matches(raw, self._collection.entities)
        newly_correct = self._ledger.add_correct(matches)
        self._refresh()

        self.logger.info(
            f"Guess {raw!r}: {len(matches)} matches, {len(newly_correct)} new "
            f"({len(self._ledger.correct)}/{len(self._collection)})"
        )
        return SubmissionResult(
            guess=raw,
            accepted=True,
            already_guessed=False,
            matched_entities=tuple(matches),
            newly_correct=tuple(self._collection.ordered(newly_correct)),
        )

    def begin_load(self) -> int:
        """
        Start a collection load.

        Returns:
            Sequence token to pass to complete_load or fail_load
        """
        self._issued_sequence += 1
        return self._issued_sequence

    def complete_load(self, token: int, collection: EntityCollection) -> bool:
        """
        Apply a finished load unless a newer load has already been applied.

        Args:
            token: Token from begin_load
            collection: Loaded collection

        Returns:
            True if the collection became current
        """
        if token <= self._applied_sequence or token > self._issued_sequence:
            self.logger.info(
                f"Discarding stale load {token} (current {self._applied_sequence})"
            )
            return False

        self._applied_sequence = token
        self._collection = collection
        self._matcher = GuessMatcher(collection.config)
        self._filter_attributes = tuple(
            name
            for name in self.thresholds.names
            if any(entity.number(name) is not None for entity in collection.entities)
        )
        self._ledger.rescore(collection, self._matcher)
        self._refresh()

        self.logger.info(
            f"Loaded {collection.name or 'collection'}: {len(collection)} "
            f"{collection.config.items_label}, {len(self._ledger.correct)} already guessed"
        )
        return True

    def fail_load(self, token: int, error: Exception) -> None:
        """Record a failed load; the session keeps its previous state."""
        self.logger.error(f"Load {token} failed, keeping {self.state.value} state: {error}")

    def load(self, collection: EntityCollection) -> bool:
        """Replace the current collection and rescore every guess."""
        return self.complete_load(self.begin_load(), collection)

    def load_from_source(
        self, source: Union[str, Path], loader: Optional[CollectionLoader] = None
    ) -> EntityCollection:
        """
        Fetch, parse and apply a collection.

        Args:
            source: File path or http(s) URL
            loader: Loader to use (defaults to a configured CollectionLoader)

        Returns:
            The loaded collection

        Raises:
            CollectionLoadError: If the collection cannot be loaded; state is unchanged
        """
        loader = loader or CollectionLoader()
        token = self.begin_load()
        try:
            collection = loader.load(source)
        except CollectionLoadError as e:
            self.fail_load(token, e)
            raise
        self.complete_load(token, collection)
        return collection

    def set_threshold(self, name: str, value: Number) -> Optional[FilterResult]:
        """
        Move one threshold control and re-filter.

        Raises:
            KeyError: If the control does not exist
            ValueError: If the value is not one of the control's options
        """
        self.thresholds.set(name, value)
        self._filtered = self._compute_filter()
        self._notify()
        return self._filtered

    def _compute_filter(self) -> Optional[FilterResult]:
        if self._collection is None:
            return None
        return filter_entities(
            self._collection.entities,
            self._ledger.correct,
            self.thresholds.predicates(self._filter_attributes),
        )

    def _refresh(self) -> None:
        if self._collection is None:
            self._statistics = None
            self._filtered = None
        else:
            self._statistics = self.statistics_engine.compute(
                self._collection.entities,
                self._ledger.correct,
                self._collection.config.attribute_definitions,
            )
            self._filtered = self._compute_filter()
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)
