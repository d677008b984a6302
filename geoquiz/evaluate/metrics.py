"""
Coverage statistics for GeoQuiz sessions.

This module derives, for every configured attribute, the aggregate view its
measurement level calls for:

- nominal: per-category bin table of correct/total counts
- ordinal: top/bottom rankings with cutoff-based inclusion counts
- rational: the ordinal rankings plus a weighted-sum proportion

All views are pure functions of the entity collection and the correct set.
Every percentage guards its denominator and is None when it would be zero.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Collection, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.entity import AttributeDefinition, Entity, MeasurementLevel, Number
from ..utils.config_loader import get_config

UNDEFINED_BIN = "undefined"


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def percentage(numerator: float, denominator: float) -> Optional[int]:
    """
    Whole percentage of numerator over denominator.

    Args:
        numerator: Part
        denominator: Whole

    Returns:
        Rounded percentage, or None when the denominator is zero or the
        ratio is not finite
    """
    if not denominator:
        return None
    ratio = 100 * numerator / denominator
    if not math.isfinite(ratio):
        return None
    return round_half_away_from_zero(ratio)


@dataclass(frozen=True)
class Ratio:
    correct: int
    total: int
    percent: Optional[int]


@dataclass(frozen=True)
class NominalBin:
    """One category of a nominal attribute."""

    value: Any
    correct: int
    total: int
    percent: Optional[int]


@dataclass(frozen=True)
class NominalBreakdown:
    """
    Bin table of a nominal attribute.

    Attributes:
        attribute: Attribute name
        bins: Bins in first-appearance order; absent values share the "undefined" bin
        covered_bins: Bins with at least one correct entity
        total_bins: Number of distinct bins
    """

    attribute: str
    bins: Tuple[NominalBin, ...]
    covered_bins: int
    total_bins: int


@dataclass(frozen=True)
class RankedList:
    """
    One direction of a ranking.

    Attributes:
        direction: "top" (descending) or "bottom" (ascending)
        correct_entities: Highest-ranked correct entities, at most the ranking size
        cutoff: Value of the Nth-ranked entity of the whole collection
        correct_within: Correct entities at or beyond the cutoff
        total_within: All entities at or beyond the cutoff (may exceed N on ties)
    """

    direction: str
    correct_entities: Tuple[Entity, ...]
    cutoff: Optional[Number]
    correct_within: int
    total_within: int


@dataclass(frozen=True)
class RankingView:
    attribute: str
    size: int
    top: RankedList
    bottom: RankedList


@dataclass(frozen=True)
class ProportionView:
    """Share of an attribute's total carried by the correct entities."""

    attribute: str
    correct_sum: float
    total_sum: float
    percent: Optional[int]


@dataclass(frozen=True)
class AttributeStatistics:
    definition: AttributeDefinition
    nominal: Optional[NominalBreakdown] = None
    ranking: Optional[RankingView] = None
    proportion: Optional[ProportionView] = None


@dataclass(frozen=True)
class QuizStatistics:
    """Overall coverage plus one entry per configured attribute."""

    coverage: Ratio
    attributes: Tuple[AttributeStatistics, ...] = ()

    def for_attribute(self, name: str) -> Optional[AttributeStatistics]:
        for stats in self.attributes:
            if stats.definition.name == name:
                return stats
        return None


class QuizStatisticsEngine:
    """
    Computes quiz coverage statistics.

    Dispatches each attribute definition to the views its measurement level
    supports and logs a one-line summary per computation.
    """

    def __init__(self, ranking_size: Optional[int] = None):
        self.logger = logging.getLogger("QuizStatisticsEngine")
        if ranking_size is None:
            ranking_size = get_config().get_statistics_config()["ranking_size"]
        if ranking_size < 1:
            raise ValueError(f"Ranking size must be positive, got {ranking_size}")
        self.ranking_size = ranking_size

    def compute(
        self,
        entities: Sequence[Entity],
        correct: Collection[Entity],
        definitions: Iterable[AttributeDefinition],
    ) -> QuizStatistics:
        """
        Compute all statistics for the current quiz state.

        Args:
            entities: Every entity of the collection, in collection order
            correct: Entities resolved by at least one guess
            definitions: Attribute definitions to summarise

        Returns:
            QuizStatistics
        """
        correct = frozenset(correct)
        attributes = []

        for definition in definitions:
            level = definition.measurement_level
            if level is MeasurementLevel.NOMINAL:
                attributes.append(
                    AttributeStatistics(
                        definition=definition,
                        nominal=self.nominal_breakdown(entities, correct, definition.name),
                    )
                )
            else:
                proportion = None
                if level is MeasurementLevel.RATIONAL:
                    proportion = self.weighted_proportion(entities, correct, definition.name)
                attributes.append(
                    AttributeStatistics(
                        definition=definition,
                        ranking=self.ranking(entities, correct, definition.name),
                        proportion=proportion,
                    )
                )

        coverage = self.coverage(entities, correct)
        self.logger.debug(
            f"Coverage {coverage.correct}/{coverage.total} across {len(attributes)} attributes"
        )
        return QuizStatistics(coverage=coverage, attributes=tuple(attributes))

    def coverage(self, entities: Sequence[Entity], correct: Collection[Entity]) -> Ratio:
        """Share of the collection that has been guessed."""
        correct = frozenset(correct)
        found = sum(1 for entity in entities if entity in correct)
        return Ratio(correct=found, total=len(entities), percent=percentage(found, len(entities)))

    def nominal_breakdown(
        self, entities: Sequence[Entity], correct: Collection[Entity], attribute: str
    ) -> NominalBreakdown:
        """
        Partition entities by raw attribute value and count correct per bin.

        Absent and NaN values share the "undefined" bin. Values of different
        types never share a bin, so True, 1 and 1.0 are counted apart.

        Args:
            entities: All entities
            correct: Correct entities
            attribute: Nominal attribute name

        Returns:
            NominalBreakdown with bins in first-appearance order
        """
        if not entities:
            return NominalBreakdown(attribute=attribute, bins=(), covered_bins=0, total_bins=0)

        correct = frozenset(correct)
        values = [self._bin_value(entity.get(attribute)) for entity in entities]
        frame = pd.DataFrame(
            {
                "key": [self._bin_key(value) for value in values],
                "correct": [entity in correct for entity in entities],
            }
        )
        grouped = frame.groupby("key", sort=False, dropna=False)["correct"].agg(["sum", "size"])

        first_value = {}
        for key, value in zip(frame["key"], values):
            first_value.setdefault(key, value)

        bins = tuple(
            NominalBin(
                value=first_value[key],
                correct=int(found),
                total=int(total),
                percent=percentage(int(found), int(total)),
            )
            for key, found, total in zip(grouped.index, grouped["sum"], grouped["size"])
        )
        covered = sum(1 for item in bins if item.correct > 0)
        return NominalBreakdown(
            attribute=attribute, bins=bins, covered_bins=covered, total_bins=len(bins)
        )

    @staticmethod
    def _bin_value(value: Any) -> Any:
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return UNDEFINED_BIN
        if isinstance(value, (list, dict)):
            return str(value)
        return value

    @staticmethod
    def _bin_key(value: Any) -> str:
        # True, 1 and 1.0 hash alike; the type name keeps their bins apart
        return f"{type(value).__name__}:{value!r}"

    def ranking(
        self, entities: Sequence[Entity], correct: Collection[Entity], attribute: str
    ) -> RankingView:
        """
        Rank entities by a numeric attribute in both directions.

        Entities without a numeric value are left out entirely. Ties keep
        collection order.

        Args:
            entities: All entities
            correct: Correct entities
            attribute: Ordinal or rational attribute name

        Returns:
            RankingView with top (descending) and bottom (ascending) lists
        """
        correct = frozenset(correct)
        valued = self._valued(entities, attribute)

        descending = sorted(valued, key=lambda pair: pair[1], reverse=True)
        ascending = sorted(valued, key=lambda pair: pair[1])

        return RankingView(
            attribute=attribute,
            size=self.ranking_size,
            top=self._ranked_list("top", descending, correct),
            bottom=self._ranked_list("bottom", ascending, correct),
        )

    def _ranked_list(
        self, direction: str, ranked: List[Tuple[Entity, Number]], correct: frozenset
    ) -> RankedList:
        leaders = tuple(entity for entity, _ in ranked if entity in correct)[: self.ranking_size]
        if not ranked:
            return RankedList(
                direction=direction,
                correct_entities=leaders,
                cutoff=None,
                correct_within=0,
                total_within=0,
            )

        cutoff = ranked[min(self.ranking_size, len(ranked)) - 1][1]
        if direction == "top":
            within = [entity for entity, value in ranked if value >= cutoff]
        else:
            within = [entity for entity, value in ranked if value <= cutoff]

        return RankedList(
            direction=direction,
            correct_entities=leaders,
            cutoff=cutoff,
            correct_within=sum(1 for entity in within if entity in correct),
            total_within=len(within),
        )

    def weighted_proportion(
        self, entities: Sequence[Entity], correct: Collection[Entity], attribute: str
    ) -> ProportionView:
        """
        Sum a rational attribute over correct and all entities.

        Args:
            entities: All entities
            correct: Correct entities
            attribute: Rational attribute name

        Returns:
            ProportionView; percent is None when the total is zero
        """
        correct = frozenset(correct)
        valued = self._valued(entities, attribute)

        values = np.asarray([value for _, value in valued], dtype=float)
        mask = np.asarray([entity in correct for entity, _ in valued], dtype=bool)

        total_sum = float(values.sum()) if values.size else 0.0
        correct_sum = float(values[mask].sum()) if values.size else 0.0

        return ProportionView(
            attribute=attribute,
            correct_sum=correct_sum,
            total_sum=total_sum,
            percent=percentage(correct_sum, total_sum),
        )

    @staticmethod
    def _valued(entities: Iterable[Entity], attribute: str) -> List[Tuple[Entity, Number]]:
        valued = []
        for entity in entities:
            value = entity.number(attribute)
            if value is not None:
                valued.append((entity, value))
        return valued
