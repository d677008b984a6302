"""
Core model for the GeoQuiz engine.

This package contains the immutable entity model and the two leaf components
that act on it directly.

Classes:
    Entity: One quizzable item with read-only attributes
    EntityCollection: Ordered entities plus their quiz configuration
    QuizConfiguration: Matching and statistics settings of a quiz
    GuessMatcher: Resolves raw guesses to entities
    GuessLedger: Distinct guesses and the correct set they resolve to
"""

from .exceptions import GeoQuizError, CollectionLoadError
from .entity import (
    AttributeDefinition,
    Entity,
    EntityCollection,
    MeasurementLevel,
    QuizConfiguration,
    parse_number,
)
from .matcher import GuessMatcher, is_match
from .ledger import GuessLedger, SubmitOutcome

__all__ = [
    'GeoQuizError',
    'CollectionLoadError',
    'AttributeDefinition',
    'Entity',
    'EntityCollection',
    'MeasurementLevel',
    'QuizConfiguration',
    'parse_number',
    'GuessMatcher',
    'is_match',
    'GuessLedger',
    'SubmitOutcome'
]
