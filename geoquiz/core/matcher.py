"""
Guess matcher for GeoQuiz entities.

A guess matches an entity when its canonical form equals the canonical form
of the entity's title or any of its alternate titles.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .entity import Entity, QuizConfiguration
from ..utils.unicode_utils import canonicalize


def canonical_guess(guess: str, config: QuizConfiguration) -> str:
    """Canonicalize a guess with the collection's stopwords and abbreviations."""
    return canonicalize(guess, config.ignored_words, config.abbreviations)


def is_match(guess: str, entity: Entity, config: QuizConfiguration) -> bool:
    """
    Decide whether a guess names an entity.

    Args:
        guess: Raw guess text
        entity: Candidate entity
        config: Quiz configuration (match attributes, stopwords, abbreviations)

    Returns:
        True if any defined match attribute canonicalizes to the guess's key
    """
    key = canonical_guess(guess, config)
    if not key:
        return False

    for name in config.match_attributes:
        value = entity.get(name)
        if value is not None and canonicalize(value, config.ignored_words, config.abbreviations) == key:
            return True
    return False


class GuessMatcher:
    """
    Matches guesses against entities of one quiz configuration.

    Canonical titles are computed once per entity and cached by identifier,
    so rescoring a long guess list stays cheap.
    """

    def __init__(self, config: QuizConfiguration):
        self.logger = logging.getLogger("GuessMatcher")
        self.config = config
        self._keys: Dict[str, Tuple[Tuple[str, str], ...]] = {}

    def _entity_keys(self, entity: Entity) -> Tuple[Tuple[str, str], ...]:
        keys = self._keys.get(entity.id)
        if keys is None:
            pairs = []
            for name in self.config.match_attributes:
                value = entity.get(name)
                if value is None:
                    continue
                key = canonicalize(value, self.config.ignored_words, self.config.abbreviations)
                if key:
                    pairs.append((name, key))
            keys = tuple(pairs)
            self._keys[entity.id] = keys
        return keys

    def is_match(self, guess: str, entity: Entity) -> bool:
        return self.matched_attribute(guess, entity) is not None

    def matched_attribute(self, guess: str, entity: Entity) -> Optional[str]:
        """
        Return the first attribute (title first) whose value matches the guess.

        Args:
            guess: Raw guess text
            entity: Candidate entity

        Returns:
            Attribute name, or None when nothing matches
        """
        key = canonical_guess(guess, self.config)
        if not key:
            return None
        for name, entity_key in self._entity_keys(entity):
            if entity_key == key:
                return name
        return None

    def find_matches(self, guess: str, entities: Iterable[Entity]) -> List[Entity]:
        """
        Find every entity a guess resolves to, in collection order.

        Args:
            guess: Raw guess text
            entities: Candidate entities

        Returns:
            Matching entities (may be several when titles collide)
        """
        key = canonical_guess(guess, self.config)
        if not key:
            return []

        matches = [
            entity
            for entity in entities
            if any(entity_key == key for _, entity_key in self._entity_keys(entity))
        ]
        self.logger.debug(f"Guess {guess!r} (key {key!r}) matched {len(matches)} entities")
        return matches
