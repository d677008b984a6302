"""
Exception types raised by the GeoQuiz engine.
"""


class GeoQuizError(Exception):
    """Base class for all GeoQuiz errors."""


class CollectionLoadError(GeoQuizError):
    """
    Raised when an entity collection cannot be fetched, parsed or validated.

    A session that receives this error keeps its previous state.
    """

    def __init__(self, message: str, source: str = None):
        self.source = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)
