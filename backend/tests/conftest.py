"""Shared fixtures: packaged food data, settings and a fake recognition client."""

import io
from typing import Callable, List, Tuple

import pytest
from PIL import Image

from cheflens.config import Settings, DEFAULT_FOOD_DATA_PATH
from cheflens.models.food_data import load_food_data
from cheflens.models.vision import AnnotateImageResponse, Feature
from cheflens.services.translator import IngredientTranslator
from cheflens.services.ingredient_filter import IngredientFilter


class FakeVisionClient:
    """
    Stands in for VisionClient.

    ``handler(image_bytes, feature)`` returns the provider JSON for one
    response, or raises to simulate a failure.
    """

    def __init__(self, handler: Callable[[bytes, Feature], dict]):
        self.handler = handler
        self.calls: List[Tuple[Feature, int]] = []
        self.closed = False

    def annotate(self, image_bytes: bytes, feature: Feature, max_results: int = 10) -> AnnotateImageResponse:
        self.calls.append((feature, max_results))
        return AnnotateImageResponse.model_validate(self.handler(image_bytes, feature))

    def features_called(self) -> List[Feature]:
        return [feature for feature, _ in self.calls]

    def close(self) -> None:
        self.closed = True


def make_image_bytes(width: int = 400, height: int = 300, fmt: str = "JPEG") -> bytes:
    img = Image.new("RGB", (width, height), color=(200, 60, 40))
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def image_size(image_bytes: bytes) -> Tuple[int, int]:
    with Image.open(io.BytesIO(image_bytes)) as img:
        return img.size


def object_annotation(name: str, score: float, left: float, top: float, right: float, bottom: float) -> dict:
    return {
        "name": name,
        "score": score,
        "boundingPoly": {
            "normalizedVertices": [
                {"x": left, "y": top},
                {"x": right, "y": top},
                {"x": right, "y": bottom},
                {"x": left, "y": bottom},
            ]
        },
    }


def text_annotations(*texts: str) -> dict:
    return {"textAnnotations": [{"description": t} for t in texts]}


@pytest.fixture(scope="session")
def food_data():
    """The packaged food data document."""
    return load_food_data(DEFAULT_FOOD_DATA_PATH)


@pytest.fixture
def settings():
    """Settings with a dummy API key and defaults otherwise."""
    return Settings(vision_api_key="test-key")


@pytest.fixture
def translator(food_data):
    return IngredientTranslator(food_data)


@pytest.fixture
def ingredient_filter(food_data, translator):
    return IngredientFilter(food_data, translator)


@pytest.fixture
def fridge_image_bytes():
    """A 400x300 JPEG standing in for a refrigerator photo."""
    return make_image_bytes()
