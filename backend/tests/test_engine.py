"""Tests for engine wiring and mode dispatch."""

import pytest

from cheflens.config import Settings
from cheflens.exceptions import ConfigurationMissing, DetectionCancelled
from cheflens.models.vision import Feature
from cheflens.services.engine import DetectionEngine, EngineMode
from cheflens.services.fusion import CancellationToken

from conftest import FakeVisionClient, object_annotation, text_annotations


RESPONSES = {
    Feature.LABEL_DETECTION: {"labelAnnotations": [{"description": "Egg", "score": 0.9}]},
    Feature.OBJECT_LOCALIZATION: {"localizedObjectAnnotations": [
        object_annotation("Tomato", 0.9, 0, 0, 0.5, 0.5),
        object_annotation("Tomato", 0.8, 0.5, 0.5, 1, 1),
    ]},
    Feature.WEB_DETECTION: {"webDetection": {"webEntities": [{"description": "Milk", "score": 0.8}]}},
    Feature.TEXT_DETECTION: text_annotations("納豆"),
}


@pytest.fixture
def engine(food_data, settings):
    client = FakeVisionClient(lambda image, feature: RESPONSES[feature])
    return DetectionEngine.from_settings(settings, client=client, food_data=food_data)


class TestDetectionEngine:
    """Test per-mode dispatch."""

    @pytest.mark.parametrize("mode, expected, feature", [
        (EngineMode.LABEL, ["卵"], Feature.LABEL_DETECTION),
        (EngineMode.OBJECTS, ["トマト"], Feature.OBJECT_LOCALIZATION),
        (EngineMode.WEB, ["牛乳"], Feature.WEB_DETECTION),
        (EngineMode.TEXT, ["納豆"], Feature.TEXT_DETECTION),
    ])
    def test_single_modes(self, engine, fridge_image_bytes, mode, expected, feature):
        """Test each single mode issues one request of its feature."""
        result = engine.detect(mode, fridge_image_bytes)

        assert result.ingredients == expected
        assert result.weights == []
        assert engine.client.features_called() == [feature]

    def test_mode_accepts_string(self, engine, fridge_image_bytes):
        """Test modes may be passed by value."""
        assert engine.detect("text", fridge_image_bytes).ingredients == ["納豆"]

    def test_combined(self, engine, fridge_image_bytes):
        """Test combined mode runs the orchestrator."""
        result = engine.detect(EngineMode.COMBINED, fridge_image_bytes)

        assert result.ingredients == ["納豆"]
        assert result.weights[0].count == 2
        assert result.regions == 2

    def test_components_share_food_data(self, engine):
        """Test every component sees the same document."""
        assert engine.ingredient_filter.food_data is engine.food_data
        assert engine.translator.food_data is engine.food_data
        assert engine.orchestrator.min_crop_size == engine.food_data.filtering.min_crop_size

    def test_cancelled_token_stops_single_mode(self, engine, fridge_image_bytes):
        """Test a cancelled request issues no recognition call."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(DetectionCancelled):
            engine.detect(EngineMode.LABEL, fridge_image_bytes, token)
        assert engine.client.calls == []

    def test_close_closes_client(self, engine):
        """Test closing the engine closes the client."""
        engine.close()
        assert engine.client.closed

    def test_missing_api_key(self, food_data):
        """Test building without a key or client is a configuration error."""
        with pytest.raises(ConfigurationMissing):
            DetectionEngine.from_settings(Settings(vision_api_key=""), food_data=food_data)
