"""
Threshold filtering of quiz entities.

Entities pass when every numeric cutoff is met; entities missing a filtered
attribute are excluded. The filter is pure and cheap, so it is recomputed on
every cutoff change.
"""

import logging
from dataclasses import dataclass
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.entity import Entity, Number
from ..utils.config_loader import get_config
from .metrics import percentage

logger = logging.getLogger(__name__)

Predicate = Tuple[str, Number]


@dataclass(frozen=True)
class FilterResult:
    """
    Entities surviving a set of cutoffs.

    Attributes:
        filtered_all: Passing entities, in collection order
        filtered_correct: Passing correct entities, in collection order
    """

    filtered_all: Tuple[Entity, ...]
    filtered_correct: Tuple[Entity, ...]

    @property
    def percent(self) -> Optional[int]:
        return percentage(len(self.filtered_correct), len(self.filtered_all))


def passes(entity: Entity, predicates: Iterable[Predicate]) -> bool:
    """Check that every predicate's attribute is defined and at least its minimum."""
    for attribute, minimum in predicates:
        value = entity.number(attribute)
        if value is None or value < minimum:
            return False
    return True


def filter_entities(
    entities: Sequence[Entity],
    correct: Collection[Entity],
    predicates: Iterable[Predicate],
) -> FilterResult:
    """
    Apply a conjunction of minimum-value predicates.

    Args:
        entities: All entities
        correct: Correct entities
        predicates: (attribute, minimum) pairs; an empty list passes everything
            that is not otherwise excluded

    Returns:
        FilterResult; inputs are not modified
    """
    predicates = list(predicates)
    correct = frozenset(correct)

    filtered_all = tuple(entity for entity in entities if passes(entity, predicates))
    filtered_correct = tuple(entity for entity in filtered_all if entity in correct)
    return FilterResult(filtered_all=filtered_all, filtered_correct=filtered_correct)


class ThresholdControls:
    """
    Named numeric cutoffs with enumerated options.

    Each control starts at its lowest option. Changing a control only changes
    the predicates; it never touches the entity collection.
    """

    def __init__(self, options: Optional[Dict[str, List[Number]]] = None):
        if options is None:
            options = get_config().get_threshold_config()
        self.options: Dict[str, Tuple[Number, ...]] = {
            name: tuple(sorted(values)) for name, values in options.items() if values
        }
        self._selected: Dict[str, Number] = {
            name: values[0] for name, values in self.options.items()
        }

    @property
    def names(self) -> List[str]:
        return list(self.options)

    def get(self, name: str) -> Number:
        if name not in self._selected:
            raise KeyError(f"Unknown threshold control: {name}")
        return self._selected[name]

    def set(self, name: str, value: Number) -> None:
        """
        Select a cutoff value.

        Raises:
            KeyError: If the control does not exist
            ValueError: If the value is not one of the control's options
        """
        if name not in self.options:
            raise KeyError(f"Unknown threshold control: {name}")
        if value not in self.options[name]:
            raise ValueError(
                f"Invalid value {value} for {name}; choose one of {list(self.options[name])}"
            )
        logger.debug(f"Threshold {name} set to {value}")
        self._selected[name] = value

    def predicates(self, attributes: Optional[Iterable[str]] = None) -> List[Predicate]:
        """
        Current cutoffs as filter predicates.

        Args:
            attributes: Restrict to these attribute names (e.g. those the
                current collection actually carries)
        """
        names = self.names
        if attributes is not None:
            wanted = set(attributes)
            names = [name for name in names if name in wanted]
        return [(name, self._selected[name]) for name in names]

    def apply(self, entities: Sequence[Entity], correct: Collection[Entity]) -> FilterResult:
        return filter_entities(entities, correct, self.predicates())
