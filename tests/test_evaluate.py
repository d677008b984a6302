"""
Test suite for geoquiz.evaluate.
Tests coverage statistics, rankings, proportions, threshold filtering and reports.
"""

import json

import pytest

from geoquiz.core.entity import AttributeDefinition, EntityCollection, MeasurementLevel, QuizConfiguration
from geoquiz.evaluate.metrics import (
    QuizStatisticsEngine,
    UNDEFINED_BIN,
    percentage,
    round_half_away_from_zero,
)
from geoquiz.evaluate.report import format_correct_entities, format_statistics, statistics_to_dict
from geoquiz.evaluate.threshold_filter import ThresholdControls, filter_entities


def build(records, definitions=(), **config):
    """Build a collection of (id, properties) pairs with attribute definitions."""
    config["attributeDefinitions"] = [
        {"name": name, "measurementLevel": level} for name, level in definitions
    ]
    return EntityCollection.build(records, QuizConfiguration.from_dict(config))


def numbered(values, attribute="elevation"):
    """Collection whose entities carry the given values, ids e0, e1, ..."""
    return build(
        [(f"e{i}", {"title": f"Peak {i}", attribute: value}) for i, value in enumerate(values)],
        [(attribute, "rational")],
    )


class TestPercentage:
    """Test rounding and denominator guards."""

    def test_half_rounds_away_from_zero(self):
        assert round_half_away_from_zero(12.5) == 13
        assert round_half_away_from_zero(0.5) == 1
        assert round_half_away_from_zero(-2.5) == -3
        assert round_half_away_from_zero(2.4) == 2

    def test_percentage(self):
        assert percentage(1, 8) == 13
        assert percentage(250, 1000) == 25
        assert percentage(0, 5) == 0

    def test_zero_denominator(self):
        assert percentage(0, 0) is None
        assert percentage(5, 0) is None

    def test_non_finite_ratio(self):
        assert percentage(float("inf"), float("inf")) is None
        assert percentage(float("nan"), 10) is None
        assert percentage(float("inf"), 10) is None


class TestNominalBreakdown:
    """Test categorical bin tables."""

    @pytest.fixture
    def engine(self):
        return QuizStatisticsEngine(ranking_size=10)

    def test_nominal_coverage(self, engine):
        collection = build(
            [("a", {"country": "US"}), ("b", {"country": "US"}), ("c", {"country": "CA"})],
            [("country", "nominal")],
        )
        correct = {collection.get("a")}

        breakdown = engine.nominal_breakdown(collection.entities, correct, "country")

        bins = {item.value: (item.correct, item.total) for item in breakdown.bins}
        assert bins == {"US": (1, 2), "CA": (0, 1)}
        assert breakdown.covered_bins == 1
        assert breakdown.total_bins == 2
        assert [item.percent for item in breakdown.bins] == [50, 0]

    def test_undefined_values_form_their_own_bin(self, engine):
        collection = build(
            [("a", {"state": "WA"}), ("b", {}), ("c", {"state": None})],
            [("state", "nominal")],
        )
        breakdown = engine.nominal_breakdown(collection.entities, {collection.get("b")}, "state")

        bins = {item.value: (item.correct, item.total) for item in breakdown.bins}
        assert bins == {"WA": (0, 1), UNDEFINED_BIN: (1, 2)}
        assert breakdown.covered_bins == 1

    def test_nan_values_join_undefined_bin(self, engine):
        document = json.loads('{"zone": NaN}')
        collection = build(
            [("a", {"zone": document["zone"]}), ("b", {"zone": "x"}), ("c", {})],
            [("zone", "nominal")],
        )
        breakdown = engine.nominal_breakdown(collection.entities, set(), "zone")

        bins = {item.value: item.total for item in breakdown.bins}
        assert bins == {UNDEFINED_BIN: 2, "x": 1}
        assert sum(item.total for item in breakdown.bins) == 3

    def test_values_of_different_types_stay_apart(self, engine):
        collection = build(
            [("a", {"v": True}), ("b", {"v": 1}), ("c", {"v": 1.0}), ("d", {"v": 1})],
            [("v", "nominal")],
        )
        breakdown = engine.nominal_breakdown(collection.entities, set(), "v")

        assert [(item.value, item.total) for item in breakdown.bins] == [(True, 1), (1, 2), (1.0, 1)]
        assert isinstance(breakdown.bins[0].value, bool)
        assert isinstance(breakdown.bins[2].value, float)

    def test_bins_keep_first_appearance_order(self, engine):
        collection = build(
            [("a", {"s": "OR"}), ("b", {"s": "WA"}), ("c", {"s": "OR"}), ("d", {"s": "CA"})],
            [("s", "nominal")],
        )
        breakdown = engine.nominal_breakdown(collection.entities, set(), "s")
        assert [item.value for item in breakdown.bins] == ["OR", "WA", "CA"]

    def test_empty_collection(self, engine):
        breakdown = engine.nominal_breakdown([], set(), "country")
        assert breakdown.bins == ()
        assert breakdown.total_bins == 0


class TestRanking:
    """Test top/bottom rankings and cutoff inclusion."""

    @pytest.fixture
    def engine(self):
        return QuizStatisticsEngine(ranking_size=10)

    def test_top_cutoff_is_tenth_largest(self, engine):
        collection = numbered(list(range(12, 0, -1)))  # 12..1
        view = engine.ranking(collection.entities, set(), "elevation")
        assert view.top.cutoff == 3
        assert view.top.total_within == 10
        assert view.bottom.cutoff == 10
        assert view.bottom.total_within == 10

    def test_tied_value_at_cutoff_counts_as_within(self, engine):
        """An entity equal to the cutoff is inside the top 10 even past rank 10."""
        collection = numbered(list(range(12, 0, -1)) + [3])  # e12 ties with e9 at 3
        late_three = collection.get("e12")

        view = engine.ranking(collection.entities, {late_three}, "elevation")

        assert view.top.cutoff == 3
        assert view.top.total_within == 11
        assert view.top.correct_within == 1
        assert view.top.correct_entities == (late_three,)

    def test_correct_lists_sorted_and_limited(self, engine):
        collection = numbered([5, 50, 20, 40, 10, 30])
        correct = {collection.get(f"e{i}") for i in (0, 2, 3)}  # 5, 20, 40

        view = engine.ranking(collection.entities, correct, "elevation")

        assert [e.number("elevation") for e in view.top.correct_entities] == [40, 20, 5]
        assert [e.number("elevation") for e in view.bottom.correct_entities] == [5, 20, 40]

        small = QuizStatisticsEngine(ranking_size=2)
        view = small.ranking(collection.entities, correct, "elevation")
        assert [e.number("elevation") for e in view.top.correct_entities] == [40, 20]
        assert view.top.cutoff == 40
        assert view.top.correct_within == 1
        assert view.top.total_within == 2

    def test_fewer_than_ranking_size_uses_last(self, engine):
        collection = numbered([7, 3, 9])
        view = engine.ranking(collection.entities, set(), "elevation")
        assert view.top.cutoff == 3
        assert view.top.total_within == 3
        assert view.bottom.cutoff == 9

    def test_undefined_values_excluded(self, engine):
        collection = numbered([7, None, "unknown", 3])
        correct = {collection.get("e1"), collection.get("e3")}
        view = engine.ranking(collection.entities, correct, "elevation")
        assert view.top.total_within == 2
        assert view.top.correct_entities == (collection.get("e3"),)

    def test_empty_ranking(self, engine):
        view = engine.ranking([], set(), "elevation")
        assert view.top.cutoff is None
        assert view.top.total_within == 0
        assert view.bottom.correct_entities == ()

    def test_invalid_ranking_size(self):
        with pytest.raises(ValueError):
            QuizStatisticsEngine(ranking_size=0)


class TestWeightedProportion:
    """Test rational weighted-sum proportions."""

    @pytest.fixture
    def engine(self):
        return QuizStatisticsEngine(ranking_size=10)

    def test_rational_proportion(self, engine):
        collection = numbered([250, 500, 250], attribute="prominence")
        view = engine.weighted_proportion(
            collection.entities, {collection.get("e0")}, "prominence"
        )
        assert view.total_sum == 1000
        assert view.correct_sum == 250
        assert view.percent == 25

    def test_zero_denominator_guard(self, engine):
        collection = numbered([0, 0], attribute="prominence")
        view = engine.weighted_proportion(
            collection.entities, {collection.get("e0")}, "prominence"
        )
        assert view.total_sum == 0
        assert view.percent is None

    def test_empty_collection(self, engine):
        view = engine.weighted_proportion([], set(), "prominence")
        assert view.percent is None

    def test_infinite_values_are_undefined(self, engine):
        collection = numbered(["inf", 100, "Infinity"], attribute="prominence")
        view = engine.weighted_proportion(
            collection.entities, {collection.get("e1")}, "prominence"
        )
        assert view.total_sum == 100
        assert view.percent == 100


class TestCompute:
    """Test dispatch by measurement level."""

    def test_views_follow_measurement_level(self):
        collection = build(
            [
                ("a", {"title": "A", "state": "WA", "rank": 1, "prominence": 100}),
                ("b", {"title": "B", "state": "OR", "rank": 2, "prominence": 300}),
            ],
            [("state", "nominal"), ("rank", "ordinal"), ("prominence", "rational")],
        )
        engine = QuizStatisticsEngine(ranking_size=10)

        stats = engine.compute(
            collection.entities, {collection.get("b")}, collection.config.attribute_definitions
        )

        assert stats.coverage.correct == 1
        assert stats.coverage.total == 2
        assert stats.coverage.percent == 50

        state = stats.for_attribute("state")
        assert state.nominal is not None and state.ranking is None and state.proportion is None

        rank = stats.for_attribute("rank")
        assert rank.ranking is not None and rank.proportion is None and rank.nominal is None

        prominence = stats.for_attribute("prominence")
        assert prominence.ranking is not None
        assert prominence.proportion.percent == 75
        assert stats.for_attribute("missing") is None

    def test_empty_collection_coverage(self):
        engine = QuizStatisticsEngine(ranking_size=10)
        definition = AttributeDefinition("prominence", MeasurementLevel.RATIONAL)
        stats = engine.compute([], set(), [definition])
        assert stats.coverage.percent is None
        assert stats.for_attribute("prominence").proportion.percent is None


class TestThresholdFilter:
    """Test numeric cutoff filtering."""

    @pytest.fixture
    def peaks(self):
        return build(
            [
                ("a", {"elevation": 4392, "prominence": 4027}),
                ("b", {"elevation": 3286, "prominence": 2706}),
                ("c", {"elevation": 2550, "prominence": 500}),
                ("d", {"elevation": 4000}),
            ],
            [("elevation", "rational"), ("prominence", "rational")],
        )

    def test_conjunction(self, peaks):
        correct = {peaks.get("a"), peaks.get("c")}
        result = filter_entities(
            peaks.entities, correct, [("elevation", 3000), ("prominence", 1000)]
        )
        assert [e.id for e in result.filtered_all] == ["a", "b"]
        assert [e.id for e in result.filtered_correct] == ["a"]
        assert result.percent == 50

    def test_undefined_value_excluded(self, peaks):
        correct = {peaks.get("d")}
        result = filter_entities(peaks.entities, correct, [("prominence", 0)])
        assert peaks.get("d") not in result.filtered_all
        assert result.filtered_correct == ()

    def test_minimum_is_inclusive(self, peaks):
        result = filter_entities(peaks.entities, set(), [("prominence", 500)])
        assert [e.id for e in result.filtered_all] == ["a", "b", "c"]

    def test_no_predicates_passes_everything(self, peaks):
        result = filter_entities(peaks.entities, set(), [])
        assert len(result.filtered_all) == 4
        assert result.percent == 0

    def test_inputs_not_modified(self, peaks):
        correct = {peaks.get("a")}
        entities = list(peaks.entities)
        filter_entities(entities, correct, [("elevation", 5000)])
        assert len(entities) == 4
        assert correct == {peaks.get("a")}


class TestThresholdControls:
    """Test named cutoffs with enumerated options."""

    @pytest.fixture
    def controls(self):
        return ThresholdControls({"prominence": [300, 0, 1000], "elevation": [0, 3000]})

    def test_defaults_to_lowest_option(self, controls):
        assert controls.get("prominence") == 0
        assert controls.options["prominence"] == (0, 300, 1000)

    def test_set_and_predicates(self, controls):
        controls.set("prominence", 1000)
        assert controls.predicates() == [("prominence", 1000), ("elevation", 0)]
        assert controls.predicates(["prominence"]) == [("prominence", 1000)]

    def test_invalid_value(self, controls):
        with pytest.raises(ValueError):
            controls.set("prominence", 42)

    def test_unknown_control(self, controls):
        with pytest.raises(KeyError):
            controls.set("isolation", 0)
        with pytest.raises(KeyError):
            controls.get("isolation")

    def test_default_options_from_config(self):
        controls = ThresholdControls()
        assert "prominence" in controls.names


class TestReport:
    """Test report rendering."""

    @pytest.fixture
    def collection(self):
        return build(
            [
                ("a", {"title": "Rainier", "state": "WA", "prominence": 13210}),
                ("b", {"title": "Hood", "state": "OR", "prominence": 7706}),
            ],
            [("state", "nominal"), ("prominence", "rational")],
            itemsLabel="peaks",
            notableAttributes=["state"],
            source="Peak list",
        )

    def test_format_statistics(self, collection):
        engine = QuizStatisticsEngine(ranking_size=10)
        stats = engine.compute(
            collection.entities, {collection.get("a")}, collection.config.attribute_definitions
        )
        text = format_statistics(stats, collection.config)

        assert text.splitlines()[0] == "1 of 2 peaks (50%)"
        assert "state: 1 of 2 covered" in text
        assert "includes 1 of the top 2" in text
        assert "Rainier (13,210)" in text
        assert "Source: Peak list" in text

    def test_statistics_to_dict_is_json_ready(self, collection):
        engine = QuizStatisticsEngine(ranking_size=10)
        stats = engine.compute([], set(), collection.config.attribute_definitions)
        data = statistics_to_dict(stats)

        assert data["coverage"]["percent"] is None
        assert data["attributes"]["prominence"]["proportion"]["percent"] is None
        json.dumps(data)

    def test_format_correct_entities(self, collection):
        lines = format_correct_entities([collection.get("b")], collection.config)
        assert lines == ["Hood (state: OR)"]
