"""Tests for the food data document and its loader."""

import json

import pytest
from pydantic import ValidationError

from cheflens.exceptions import ConfigurationMissing
from cheflens.models.food_data import (
    FoodData,
    ProductPattern,
    SimilarityGroup,
    load_food_data,
    parse_food_data,
)


def minimal_document(**overrides) -> dict:
    document = {
        "version": "0.1",
        "filtering": {
            "confidence_threshold": 0.7,
            "exclude_keywords": ["plastic"],
            "generic_categories": ["food"],
        },
        "foods": {"vegetables": ["tomato", "carrot"], "others": ["egg"]},
        "similar_pairs": [{"primary": "tomato", "similar": ["cherry tomato"]}],
        "translations": {"tomato": "トマト"},
    }
    document.update(overrides)
    return document


class TestParseFoodData:
    """Test validation of decoded documents."""

    def test_minimal_document(self):
        """Test optional blocks default sensibly."""
        food_data = parse_food_data(minimal_document())

        assert food_data.filtering.min_crop_size == 50
        assert food_data.filtering.object_detection_confidence_threshold == 0.5
        assert food_data.text_detection is None

    def test_missing_filtering_raises(self):
        """Test a missing required block is a configuration error."""
        document = minimal_document()
        del document["filtering"]

        with pytest.raises(ConfigurationMissing) as exc_info:
            parse_food_data(document)
        assert "filtering" in exc_info.value.details

    def test_missing_threshold_raises(self):
        """Test a missing threshold inside filtering is reported."""
        document = minimal_document(filtering={"exclude_keywords": [], "generic_categories": []})

        with pytest.raises(ConfigurationMissing):
            parse_food_data(document)

    def test_document_is_immutable(self):
        """Test the loaded document cannot be changed."""
        food_data = parse_food_data(minimal_document())

        with pytest.raises(ValidationError):
            food_data.version = "2"


class TestFoodDataHelpers:
    """Test lookup helpers."""

    def test_all_food_names_lowercase_in_order(self):
        """Test names come back lowercase in category order."""
        food_data = parse_food_data(minimal_document(foods={"a": ["Tomato"], "b": ["EGG"]}))
        assert food_data.all_food_names() == ["tomato", "egg"]

    def test_category_of_first_match(self):
        """Test the first category in document order wins."""
        food_data = parse_food_data(minimal_document())

        assert food_data.category_of("Cherry Tomato") == "vegetables"
        assert food_data.category_of("boiled egg") == "others"
        assert food_data.category_of("cup") is None

    def test_similarity_group_contains_is_symmetric(self):
        """Test group membership ignores order and case."""
        group = SimilarityGroup(primary="tomato", similar=["Cherry Tomato"])

        assert group.contains("cherry tomato", "TOMATO")
        assert group.contains("tomato", "cherry tomato")
        assert not group.contains("tomato", "carrot")

    def test_product_pattern_yields_to(self):
        """Test a pattern is outranked when a yielding regex matches."""
        pattern = ProductPattern(pattern="かつお", ingredient="かつお", yields_to=["さば"])

        assert pattern.is_outranked("さば かつお")
        assert not pattern.is_outranked("かつお節")
        assert pattern.to_regex().search("カツオ") is None


class TestLoadFoodData:
    """Test loading from disk."""

    def test_packaged_document_loads(self, food_data):
        """Test the packaged document and its translation file load."""
        assert isinstance(food_data, FoodData)
        assert food_data.translations["canned mackerel"] == "さば水煮"
        assert food_data.text_detection is not None
        assert food_data.text_detection.product_patterns

    def test_missing_file(self, tmp_path):
        """Test a missing file is a configuration error."""
        with pytest.raises(ConfigurationMissing):
            load_food_data(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Test an unparsable file is a configuration error."""
        path = tmp_path / "food_data.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationMissing):
            load_food_data(path)

    def test_translation_file_replaces_inline(self, tmp_path):
        """Test the sibling translation file wins over inline translations."""
        (tmp_path / "tr.json").write_text(
            json.dumps({"translations": {"carrot": "にんじん"}}), encoding="utf-8"
        )
        path = tmp_path / "food_data.json"
        path.write_text(json.dumps(minimal_document(translation_file="tr.json")), encoding="utf-8")

        food_data = load_food_data(path)
        assert food_data.translations == {"carrot": "にんじん"}

    def test_unreadable_translation_file_keeps_inline(self, tmp_path):
        """Test a missing translation file falls back to inline translations."""
        path = tmp_path / "food_data.json"
        path.write_text(json.dumps(minimal_document(translation_file="absent.json")), encoding="utf-8")

        food_data = load_food_data(path)
        assert food_data.translations == {"tomato": "トマト"}
