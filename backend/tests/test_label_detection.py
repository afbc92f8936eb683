"""Tests for label-mode extraction."""

import pytest

from cheflens.config import Settings
from cheflens.models.vision import Feature, LabelAnnotation
from cheflens.services.candidates import DetectionMode
from cheflens.services.label_detection import LabelDetector

from conftest import FakeVisionClient


def labels(*pairs):
    return [LabelAnnotation(description=d, score=s) for d, s in pairs]


@pytest.fixture
def detector(ingredient_filter, translator, settings):
    """Label detector over a client that must not be called."""
    client = FakeVisionClient(lambda image, feature: pytest.fail("unexpected request"))
    return LabelDetector(client, ingredient_filter, translator, settings)


class TestLabelSelection:
    """Test filtering of raw labels."""

    def test_similar_labels_keep_higher(self, detector):
        """Test only the higher-scored of two similar labels survives."""
        result = detector.select(labels(("Tomato", 0.9), ("Cherry tomato", 0.85)))
        assert [c.name for c in result] == ["トマト"]

    def test_below_threshold_dropped(self, detector):
        """Test labels under the confidence threshold never appear."""
        result = detector.select(labels(("Tomato", 0.69), ("Egg", 0.75)))

        assert [c.name for c in result] == ["卵"]
        assert all(c.score >= 0.7 for c in result)

    def test_non_food_dropped(self, detector):
        """Test non-food labels are ignored even when confident."""
        result = detector.select(labels(("Plastic", 0.99), ("Tableware", 0.98), ("Egg", 0.9)))
        assert [c.name for c in result] == ["卵"]

    def test_capped_at_five(self, detector):
        """Test no more than five ingredients are returned."""
        result = detector.select(labels(
            ("Tomato", 0.95), ("Carrot", 0.94), ("Egg", 0.93), ("Milk", 0.92),
            ("Beef", 0.91), ("Apple", 0.90), ("Banana", 0.89),
        ))

        assert len(result) == 5
        assert [c.name for c in result] == ["トマト", "にんじん", "卵", "牛乳", "牛肉"]

    def test_single_mode_drops_same_category(self, detector):
        """Test a clear winner suppresses weaker labels of its category."""
        result = detector.select(labels(("Tomato", 0.95), ("Carrot", 0.80), ("Egg", 0.80)))
        assert [c.name for c in result] == ["トマト", "卵"]

    def test_multiple_mode_keeps_same_category(self, detector):
        """Test close top scores keep several ingredients of one category."""
        result = detector.select(labels(("Tomato", 0.95), ("Carrot", 0.93)))
        assert [c.name for c in result] == ["トマト", "にんじん"]

    def test_gap_settings_are_tunable(self, ingredient_filter, translator):
        """Test the category gap comes from settings."""
        settings = Settings(vision_api_key="k", category_confidence_gap=0.5)
        detector = LabelDetector(None, ingredient_filter, translator, settings)

        result = detector.select(labels(("Tomato", 0.95), ("Carrot", 0.80)))
        assert [c.name for c in result] == ["トマト", "にんじん"]

    def test_candidates_carry_mode_and_source(self, detector):
        """Test candidates record their mode and provider string."""
        (candidate,) = detector.select(labels(("Tomato", 0.9)))

        assert candidate.source_mode == DetectionMode.LABEL
        assert candidate.source_name == "Tomato"
        assert candidate.score == 0.9


class TestLabelDetect:
    """Test the request path."""

    def test_detect_requests_fifty_labels(self, ingredient_filter, translator, settings):
        """Test one label request with the configured size."""
        client = FakeVisionClient(lambda image, feature: {
            "labelAnnotations": [{"description": "Egg", "score": 0.92}]
        })
        detector = LabelDetector(client, ingredient_filter, translator, settings)

        assert detector.detect_names(b"img") == ["卵"]
        assert client.calls == [(Feature.LABEL_DETECTION, 50)]

    def test_no_labels(self, ingredient_filter, translator, settings):
        """Test an empty response yields nothing."""
        client = FakeVisionClient(lambda image, feature: {})
        detector = LabelDetector(client, ingredient_filter, translator, settings)

        assert detector.detect(b"img") == []
