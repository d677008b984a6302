"""
Quiz session for GeoQuiz.

Key Components:
- QuizSession: Owns the guess ledger, loads collections and recomputes statistics
- SubmissionResult: Outcome of a single guess
- QuizSnapshot: Immutable state handed to listeners
"""

from .session import QuizSession, QuizSnapshot, SessionState, SubmissionResult

__all__ = [
    'QuizSession',
    'QuizSnapshot',
    'SessionState',
    'SubmissionResult'
]
