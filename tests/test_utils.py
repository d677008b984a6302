"""
Test suite for geoquiz.utils.
Tests text canonicalization and configuration loading.
"""

import tempfile
from pathlib import Path

import pytest

from geoquiz.utils.unicode_utils import (
    canonicalize,
    normalize_abbreviations,
    normalize_word_set,
    strip_diacritics,
)
from geoquiz.utils.config_loader import ConfigLoader, get_config, reload_config

ABBREVIATIONS = {"saint": "st", "mt": "mount"}


class TestCanonicalize:
    """Test canonical comparison keys."""

    @pytest.mark.parametrize(
        "raw",
        [
            "Mount Rainier",
            "  Mt. St. Helens  ",
            "Montañas del Fuego",
            "GLACIER PEAK",
            "K2",
            "Saint-Élie",
            "",
            "!!!",
        ],
    )
    def test_idempotence(self, raw):
        """Canonicalizing a canonical key changes nothing."""
        ignored = {"peak", "mount"}
        once = canonicalize(raw, ignored, ABBREVIATIONS)
        assert canonicalize(once, ignored, ABBREVIATIONS) == once

    def test_case_insensitive(self):
        assert canonicalize("MONT BLANC") == canonicalize("mont blanc") == "mont blanc"

    def test_diacritics_stripped(self):
        assert canonicalize("Montañas") == canonicalize("montanas") == "montanas"

    def test_whitespace_collapsed(self):
        assert canonicalize("  Glacier \t  Peak\n") == "glacier peak"

    def test_punctuation_removed(self):
        assert canonicalize("Mt. Hood!") == "mt hood"
        assert canonicalize("O'Neil") == "oneil"

    def test_abbreviation_folding(self):
        """Mt. Rainier and Mount Rainier share a key under mt -> mount."""
        assert canonicalize("Mt. Rainier", abbreviations=ABBREVIATIONS) == canonicalize(
            "Mount Rainier", abbreviations=ABBREVIATIONS
        )
        assert canonicalize("Saint Helens", abbreviations=ABBREVIATIONS) == "st helens"

    def test_reverse_abbreviation_direction(self):
        """Direction of folding is a configuration choice."""
        table = {"st": "saint"}
        assert canonicalize("St Helens", abbreviations=table) == "saint helens"

    def test_stopword_exclusion(self):
        ignored = {"mount", "peak"}
        assert canonicalize("Mount Rainier", ignored) == canonicalize("Rainier", ignored)

    def test_stopword_applies_to_folded_abbreviation(self):
        """An abbreviation of an ignored word is ignored too."""
        ignored = {"mount"}
        assert canonicalize("Mt Rainier", ignored, ABBREVIATIONS) == "rainier"

    def test_none_and_empty(self):
        assert canonicalize(None) == ""
        assert canonicalize("") == ""
        assert canonicalize("   ") == ""
        assert canonicalize("Peak", {"peak"}) == ""

    def test_non_string_input(self):
        assert canonicalize(14411) == "14411"

    def test_strip_diacritics(self):
        assert strip_diacritics("Citlaltépetl") == "Citlaltepetl"
        assert strip_diacritics("") == ""


class TestWordTables:
    """Test stopword and abbreviation normalization."""

    def test_normalize_word_set(self):
        assert normalize_word_set(["Mount", "PEAK", "Montaña"]) == {"mount", "peak", "montana"}
        assert normalize_word_set(None) == set()

    def test_normalize_abbreviations(self):
        assert normalize_abbreviations({"Saint": "St.", "MT": "Mount"}) == {
            "saint": "st",
            "mt": "mount",
        }

    def test_chained_abbreviations_rejected(self):
        with pytest.raises(ValueError):
            normalize_abbreviations({"saint": "st", "st": "street"})

    def test_multi_word_abbreviation_rejected(self):
        with pytest.raises(ValueError):
            normalize_abbreviations({"mt": "big mountain"})


class TestConfigLoader:
    """Test configuration loading."""

    def test_missing_file_uses_defaults(self):
        loader = ConfigLoader("does_not_exist_geoquiz.txt")
        assert loader.get_int("RANKING_SIZE") == 10
        assert loader.get_mapping("DEFAULT_ABBREVIATIONS") == {"saint": "st", "mt": "mount"}

    def test_threshold_config(self):
        loader = ConfigLoader("does_not_exist_geoquiz.txt")
        thresholds = loader.get_threshold_config()
        assert set(thresholds) == {"prominence", "elevation"}
        assert thresholds["prominence"][0] == 0
        assert thresholds["prominence"] == sorted(thresholds["prominence"])

    def test_parse_value_types(self):
        loader = ConfigLoader("does_not_exist_geoquiz.txt")
        assert loader._parse_value("true") is True
        assert loader._parse_value("12") == 12
        assert loader._parse_value("-3") == -3
        assert loader._parse_value("0.5") == 0.5
        assert loader._parse_value("saint:st") == "saint:st"

    def test_file_values_override_defaults(self):
        """Values from a config file replace defaults, other defaults remain."""
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "custom_config.txt"
            config_path.write_text("# comment\nRANKING_SIZE=5\nnot a pair\n", encoding="utf-8")
            loader = ConfigLoader(str(config_path))

        assert loader.get_int("RANKING_SIZE") == 5
        assert loader.get_int("FETCH_TIMEOUT_SECONDS") == 20

    def test_typed_getters_fall_back(self):
        loader = ConfigLoader("does_not_exist_geoquiz.txt")
        loader.config["BAD_INT"] = "abc"
        assert loader.get_int("BAD_INT", 7) == 7
        assert loader.get_float("BAD_INT", 1.5) == 1.5
        loader.config["SHOW_SOURCE"] = "yes"
        assert loader.get_bool("SHOW_SOURCE") is True
        assert loader.get_bool("MISSING_FLAG", True) is True
        assert loader.get_list_of_strings("THRESHOLD_ATTRIBUTES") == ["prominence", "elevation"]

    def test_global_config(self):
        assert get_config() is get_config()
        assert reload_config() is get_config()
