"""
Plain-text and dictionary rendering of quiz statistics.
"""

from typing import Any, Dict, List, Optional, Sequence

from ..core.entity import Entity, QuizConfiguration
from .metrics import NominalBreakdown, QuizStatistics, RankedList, RankingView
from .threshold_filter import FilterResult


def format_number(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.1f}"


def format_percent(percent: Optional[int]) -> str:
    return "n/a" if percent is None else f"{percent}%"


def _ranked_lines(ranked: RankedList, view: RankingView, config: QuizConfiguration) -> List[str]:
    label = "top" if ranked.direction == "top" else "bottom"
    lines = [
        f"  {label.title()} {view.size} by {view.attribute}: includes "
        f"{ranked.correct_within} of the {label} {ranked.total_within}"
        f" (cutoff {format_number(ranked.cutoff)})"
    ]
    for entity in ranked.correct_entities:
        lines.append(
            f"    {entity.title(config)} ({format_number(entity.number(view.attribute))})"
        )
    return lines


def _nominal_lines(breakdown: NominalBreakdown) -> List[str]:
    lines = [
        f"  {breakdown.attribute}: {breakdown.covered_bins} of {breakdown.total_bins} covered"
    ]
    for item in breakdown.bins:
        lines.append(
            f"    {item.value}: {item.correct}/{item.total} ({format_percent(item.percent)})"
        )
    return lines


def format_statistics(
    stats: QuizStatistics,
    config: QuizConfiguration,
    filtered: Optional[FilterResult] = None,
) -> str:
    """
    Render statistics as a human-readable report.

    Args:
        stats: Computed statistics
        config: Quiz configuration (labels, titles)
        filtered: Optional threshold filter result to summarise

    Returns:
        Multi-line report text
    """
    coverage = stats.coverage
    lines = [
        f"{coverage.correct} of {coverage.total} {config.items_label} "
        f"({format_percent(coverage.percent)})"
    ]

    if filtered is not None:
        lines.append(
            f"Filtered: {len(filtered.filtered_correct)} of {len(filtered.filtered_all)} "
            f"({format_percent(filtered.percent)})"
        )

    for attribute in stats.attributes:
        if attribute.nominal is not None:
            lines.extend(_nominal_lines(attribute.nominal))
        if attribute.proportion is not None:
            proportion = attribute.proportion
            lines.append(
                f"  {proportion.attribute}: {format_number(proportion.correct_sum)} of "
                f"{format_number(proportion.total_sum)} ({format_percent(proportion.percent)})"
            )
        if attribute.ranking is not None:
            lines.extend(_ranked_lines(attribute.ranking.top, attribute.ranking, config))
            lines.extend(_ranked_lines(attribute.ranking.bottom, attribute.ranking, config))

    if config.source:
        lines.append(f"Source: {config.source}" + (f" <{config.source_url}>" if config.source_url else ""))

    return "\n".join(lines)


def format_correct_entities(
    entities: Sequence[Entity], config: QuizConfiguration
) -> List[str]:
    """One line per correct entity with its notable attributes."""
    lines = []
    for entity in entities:
        details = [
            f"{name}: {entity.get(name)}"
            for name in config.notable_attributes
            if entity.get(name) is not None
        ]
        suffix = f" ({', '.join(details)})" if details else ""
        lines.append(f"{entity.title(config)}{suffix}")
    return lines


def _ranked_dict(ranked: RankedList) -> Dict[str, Any]:
    return {
        "cutoff": ranked.cutoff,
        "correct_within": ranked.correct_within,
        "total_within": ranked.total_within,
        "correct_ids": [entity.id for entity in ranked.correct_entities],
    }


def statistics_to_dict(stats: QuizStatistics) -> Dict[str, Any]:
    """JSON-serializable view of statistics; omitted percentages stay None."""
    attributes = {}
    for attribute in stats.attributes:
        entry: Dict[str, Any] = {
            "measurement_level": attribute.definition.measurement_level.value
        }
        if attribute.nominal is not None:
            entry["covered_bins"] = attribute.nominal.covered_bins
            entry["total_bins"] = attribute.nominal.total_bins
            entry["bins"] = [
                {
                    "value": item.value,
                    "correct": item.correct,
                    "total": item.total,
                    "percent": item.percent,
                }
                for item in attribute.nominal.bins
            ]
        if attribute.ranking is not None:
            entry["top"] = _ranked_dict(attribute.ranking.top)
            entry["bottom"] = _ranked_dict(attribute.ranking.bottom)
        if attribute.proportion is not None:
            entry["proportion"] = {
                "correct_sum": attribute.proportion.correct_sum,
                "total_sum": attribute.proportion.total_sum,
                "percent": attribute.proportion.percent,
            }
        attributes[attribute.definition.name] = entry

    return {
        "coverage": {
            "correct": stats.coverage.correct,
            "total": stats.coverage.total,
            "percent": stats.coverage.percent,
        },
        "attributes": attributes,
    }
