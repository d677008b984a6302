"""
Entity collection loader for GeoQuiz.

Reads GeoJSON FeatureCollection documents from a local file or an http(s)
URL and turns them into immutable EntityCollection objects. Geometry is
ignored; only feature identifiers, properties and the optional "geoquiz"
configuration block are consumed.

Any fetch, parse or validation failure is raised as CollectionLoadError so
callers can keep their previous state.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import requests

from ..core.entity import EntityCollection, QuizConfiguration
from ..core.exceptions import CollectionLoadError
from ..utils.config_loader import get_config

logger = logging.getLogger(__name__)


def _feature_id(feature: Mapping[str, Any], properties: Mapping[str, Any], position: int) -> str:
    for candidate in (feature.get("id"), properties.get("id")):
        if candidate is not None and str(candidate).strip():
            return str(candidate)
    return f"feature-{position}"


def parse_collection(
    document: Any,
    default_abbreviations: Optional[Mapping[str, str]] = None,
    name: str = "",
) -> EntityCollection:
    """
    Build an EntityCollection from a decoded FeatureCollection document.

    Args:
        document: Decoded JSON document
        default_abbreviations: Abbreviation table for documents that declare none
        name: Display name of the quiz

    Returns:
        EntityCollection

    Raises:
        CollectionLoadError: If the document is not a valid FeatureCollection
    """
    if not isinstance(document, Mapping):
        raise CollectionLoadError("Collection document must be a JSON object")
    if document.get("type") != "FeatureCollection":
        raise CollectionLoadError(f"Expected type FeatureCollection, got {document.get('type')!r}")

    features = document.get("features")
    if not isinstance(features, list):
        raise CollectionLoadError("FeatureCollection has no features list")

    config = QuizConfiguration.from_dict(document.get("geoquiz"), default_abbreviations)

    records = []
    for position, feature in enumerate(features):
        if not isinstance(feature, Mapping):
            raise CollectionLoadError(f"Feature {position} is not an object")
        properties = feature.get("properties") or {}
        if not isinstance(properties, Mapping):
            raise CollectionLoadError(f"Feature {position} has invalid properties")
        records.append((_feature_id(feature, properties, position), properties))

    collection = EntityCollection.build(records, config=config, name=name)
    logger.info(
        f"Parsed {len(collection)} {config.items_label} "
        f"({len(config.attribute_definitions)} attribute definitions)"
    )
    return collection


class CollectionLoader:
    """
    Loads entity collections from files or URLs.

    Remote documents are fetched with requests using the configured timeout.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        default_abbreviations: Optional[Mapping[str, str]] = None,
    ):
        self.logger = logging.getLogger("CollectionLoader")
        config = get_config()
        self.timeout = timeout or config.get_int("FETCH_TIMEOUT_SECONDS", 20)
        if default_abbreviations is None:
            default_abbreviations = config.get_mapping("DEFAULT_ABBREVIATIONS", "saint:st,mt:mount")
        self.default_abbreviations = default_abbreviations

    @staticmethod
    def is_remote(source: Union[str, Path]) -> bool:
        return str(source).lower().startswith(("http://", "https://"))

    def fetch_document(self, source: Union[str, Path]) -> Dict[str, Any]:
        """
        Read and decode a collection document.

        Args:
            source: File path or http(s) URL

        Returns:
            Decoded JSON document

        Raises:
            CollectionLoadError: On network, file or JSON errors
        """
        source_text = str(source)
        if self.is_remote(source_text):
            self.logger.info(f"Fetching collection from {source_text}")
            try:
                resp = requests.get(source_text, timeout=self.timeout)
                resp.raise_for_status()
                return resp.json()
            except requests.RequestException as e:
                raise CollectionLoadError(f"Failed to fetch collection: {e}", source_text) from e
            except ValueError as e:
                raise CollectionLoadError(f"Invalid JSON: {e}", source_text) from e

        self.logger.info(f"Reading collection from {source_text}")
        try:
            with open(source_text, "r", encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise CollectionLoadError(f"Failed to read collection: {e}", source_text) from e
        except json.JSONDecodeError as e:
            raise CollectionLoadError(f"Invalid JSON: {e}", source_text) from e

    def load(self, source: Union[str, Path], name: Optional[str] = None) -> EntityCollection:
        """
        Fetch and parse a collection.

        Args:
            source: File path or http(s) URL
            name: Display name (defaults to the file stem or URL)

        Returns:
            EntityCollection
        """
        if name is None:
            name = str(source) if self.is_remote(source) else Path(source).stem
        document = self.fetch_document(source)
        try:
            return parse_collection(document, self.default_abbreviations, name=name)
        except CollectionLoadError as e:
            raise CollectionLoadError(str(e), str(source)) from e
