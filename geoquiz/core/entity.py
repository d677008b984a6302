"""
Entity model for GeoQuiz collections.

This module provides the immutable records the quiz engine works on: entities
(one quizzable peak, wilderness area, ...), the per-quiz configuration that
says how entities are matched and summarised, and the collection that ties
the two together.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from ..utils.unicode_utils import normalize_abbreviations, normalize_word_set
from .exceptions import CollectionLoadError

logger = logging.getLogger(__name__)

Number = Union[int, float]


class MeasurementLevel(Enum):
    """Statistical treatment of an attribute."""

    NOMINAL = "nominal"
    ORDINAL = "ordinal"
    RATIONAL = "rational"

    @property
    def is_numeric(self) -> bool:
        return self is not MeasurementLevel.NOMINAL


@dataclass(frozen=True)
class AttributeDefinition:
    """
    Declares which statistical view an attribute receives.

    Attributes:
        name: Property name on each entity
        measurement_level: Nominal, ordinal or rational
    """

    name: str
    measurement_level: MeasurementLevel

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttributeDefinition":
        name = data.get("name")
        level = data.get("measurementLevel", data.get("measurement_level"))
        if not name:
            raise CollectionLoadError("Attribute definition is missing a name")
        try:
            return cls(name=str(name), measurement_level=MeasurementLevel(str(level).lower()))
        except ValueError:
            raise CollectionLoadError(
                f"Unknown measurement level {level!r} for attribute {name!r}"
            ) from None


def parse_number(value: Any) -> Optional[Number]:
    """
    Parse an attribute value into a number.

    Accepts ints, floats and numeric strings with thousands separators
    ("14,411"). Booleans, NaN, infinities and anything unparseable give None.

    Args:
        value: Raw attribute value

    Returns:
        int or float, or None when the value is absent or not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None

    # ints beyond float range would overflow the statistics sums
    try:
        finite = math.isfinite(number)
    except OverflowError:
        return None
    return number if finite else None


@dataclass(frozen=True)
class QuizConfiguration:
    """
    Per-quiz settings carried by a collection document.

    Attributes:
        title_attribute: Primary attribute used for guessing
        alt_title_attributes: Fallback attributes also eligible for matching
        ignored_words: Canonical stopword tokens dropped during canonicalization
        abbreviations: Canonical token folding table (e.g. "mt" -> "mount")
        items_label: Display noun for entities
        attribute_definitions: Attributes and their measurement levels
        notable_attributes: Attributes shown beside correct entities in reports
        source: Attribution name
        source_url: Attribution link
    """

    title_attribute: str = "title"
    alt_title_attributes: Tuple[str, ...] = ()
    ignored_words: frozenset = frozenset()
    abbreviations: Mapping[str, str] = field(default_factory=dict)
    items_label: str = "items"
    attribute_definitions: Tuple[AttributeDefinition, ...] = ()
    notable_attributes: Tuple[str, ...] = ()
    source: Optional[str] = None
    source_url: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Any]],
        default_abbreviations: Optional[Mapping[str, str]] = None,
    ) -> "QuizConfiguration":
        """
        Build a configuration from the "geoquiz" block of a collection document.

        Args:
            data: camelCase configuration mapping (None gives all defaults)
            default_abbreviations: Table used when the document declares none

        Returns:
            QuizConfiguration

        Raises:
            CollectionLoadError: If a field has the wrong shape
        """
        data = data or {}
        if not isinstance(data, Mapping):
            raise CollectionLoadError("Quiz configuration must be an object")

        abbreviations = data.get("abbreviations", default_abbreviations)
        try:
            abbreviations = normalize_abbreviations(abbreviations)
        except (ValueError, AttributeError) as e:
            raise CollectionLoadError(f"Invalid abbreviation table: {e}") from e

        definitions = tuple(
            AttributeDefinition.from_dict(item)
            for item in _as_list(data.get("attributeDefinitions"), "attributeDefinitions")
        )

        return cls(
            title_attribute=str(data.get("titleAttribute") or "title"),
            alt_title_attributes=tuple(
                str(name) for name in _as_list(data.get("altTitleAttributes"), "altTitleAttributes")
            ),
            ignored_words=frozenset(
                normalize_word_set(_as_list(data.get("ignoredWords"), "ignoredWords"))
            ),
            abbreviations=MappingProxyType(abbreviations),
            items_label=str(data.get("itemsLabel") or "items"),
            attribute_definitions=definitions,
            notable_attributes=tuple(
                str(name) for name in _as_list(data.get("notableAttributes"), "notableAttributes")
            ),
            source=data.get("source"),
            source_url=data.get("sourceUrl"),
        )

    @property
    def match_attributes(self) -> Tuple[str, ...]:
        """Attributes eligible for matching, title first."""
        return (self.title_attribute,) + tuple(self.alt_title_attributes)

    @property
    def numeric_attributes(self) -> List[str]:
        """Names of attributes declared ordinal or rational."""
        return [
            definition.name
            for definition in self.attribute_definitions
            if definition.measurement_level.is_numeric
        ]

    def definition_for(self, name: str) -> Optional[AttributeDefinition]:
        for definition in self.attribute_definitions:
            if definition.name == name:
                return definition
        return None


def _as_list(value: Any, name: str) -> list:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise CollectionLoadError(f"Quiz configuration field {name} must be a list")
    return list(value)


@dataclass(frozen=True)
class Entity:
    """
    One quizzable item.

    Equality and hashing use the identifier only, so sets of entities
    deduplicate by identity.

    Attributes:
        id: Stable identifier within its collection
        properties: Read-only attribute mapping
        numbers: Numeric attributes parsed once at load time
    """

    id: str
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)
    numbers: Mapping[str, Optional[Number]] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def create(
        cls, entity_id: Any, properties: Mapping[str, Any], numeric_attributes: Iterable[str] = ()
    ) -> "Entity":
        """Freeze properties and parse the numeric attributes once."""
        properties = dict(properties or {})
        numbers = {}
        for name in numeric_attributes:
            raw = properties.get(name)
            numbers[name] = parse_number(raw)
            if numbers[name] is None and raw not in (None, ""):
                logger.debug(f"Entity {entity_id}: non-numeric value for {name}: {raw!r}")
        return cls(
            id=str(entity_id),
            properties=MappingProxyType(properties),
            numbers=MappingProxyType(numbers),
        )

    def get(self, name: str, default: Any = None) -> Any:
        """Get a raw attribute value, treating None as absent."""
        value = self.properties.get(name)
        return default if value is None else value

    def number(self, name: str) -> Optional[Number]:
        """Get a numeric attribute value, or None when absent or not numeric."""
        if name in self.numbers:
            return self.numbers[name]
        return parse_number(self.properties.get(name))

    def title(self, config: QuizConfiguration) -> str:
        """Display title: first defined match attribute, else the identifier."""
        for name in config.match_attributes:
            value = self.get(name)
            if value is not None and str(value).strip():
                return str(value)
        return self.id


@dataclass(frozen=True)
class EntityCollection:
    """
    Ordered, immutable set of entities plus the quiz configuration.

    A collection is replaced wholesale when a new quiz is loaded; it is
    never mutated in place.
    """

    entities: Tuple[Entity, ...]
    config: QuizConfiguration = field(default_factory=QuizConfiguration)
    name: str = ""

    @classmethod
    def build(
        cls,
        records: Iterable[Tuple[Any, Mapping[str, Any]]],
        config: Optional[QuizConfiguration] = None,
        name: str = "",
    ) -> "EntityCollection":
        """
        Build a collection from (identifier, properties) pairs.

        Args:
            records: Entity identifiers and their raw properties
            config: Quiz configuration (defaults when None)
            name: Optional display name of the quiz

        Returns:
            EntityCollection

        Raises:
            CollectionLoadError: If two entities share an identifier
        """
        config = config or QuizConfiguration()
        numeric = config.numeric_attributes
        entities = []
        seen: Dict[str, int] = {}

        for position, (entity_id, properties) in enumerate(records):
            entity = Entity.create(entity_id, properties, numeric)
            if entity.id in seen:
                raise CollectionLoadError(
                    f"Duplicate entity id {entity.id!r} at positions {seen[entity.id]} and {position}"
                )
            seen[entity.id] = position
            entities.append(entity)

        return cls(entities=tuple(entities), config=config, name=name)

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __contains__(self, entity: object) -> bool:
        return isinstance(entity, Entity) and entity.id in self._index

    @property
    def _index(self) -> Dict[str, Entity]:
        # frozen dataclass: cache through object.__setattr__
        index = self.__dict__.get("_index_cache")
        if index is None:
            index = {entity.id: entity for entity in self.entities}
            object.__setattr__(self, "_index_cache", index)
        return index

    def get(self, entity_id: str) -> Optional[Entity]:
        return self._index.get(str(entity_id))

    def ordered(self, subset: Iterable[Entity]) -> List[Entity]:
        """Return members of subset that belong to this collection, in collection order."""
        wanted = {entity.id for entity in subset}
        return [entity for entity in self.entities if entity.id in wanted]
