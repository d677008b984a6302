"""Collection loading and guess persistence for GeoQuiz."""

from .collection_loader import CollectionLoader, parse_collection
from .guess_store import GuessStore

__all__ = ["CollectionLoader", "parse_collection", "GuessStore"]
