"""
Utilities package for GeoQuiz.

This package provides text canonicalization and configuration management.
"""

from .unicode_utils import canonicalize, normalize_word_set, normalize_abbreviations, strip_diacritics
from .config_loader import ConfigLoader, get_config, reload_config

__all__ = [
    'canonicalize', 'normalize_word_set', 'normalize_abbreviations', 'strip_diacritics',
    'ConfigLoader', 'get_config', 'reload_config'
]
