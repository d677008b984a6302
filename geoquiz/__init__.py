"""
GeoQuiz: Geographic Knowledge Quiz Engine

Matches free-text guesses against a curated collection of geographic entities
(mountain peaks, wilderness areas, ...) and reports running coverage
statistics sliced by entity attributes.

Main Components:
- core: Entity model, text matching and the guess ledger
- evaluate: Coverage statistics, rankings and threshold filtering
- data: GeoJSON collection loading and guess persistence
- game: Quiz session state machine

Quick Start:
    from geoquiz.game import QuizSession

    session = QuizSession()
    session.load_from_source("peaks.geojson")
    result = session.submit("Mt. Rainier")
    print(result.matched, session.statistics.coverage.percent)
"""

__version__ = "0.1.0"
