"""Builds the detection components once per process and dispatches by mode."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import Settings, get_settings
from ..models.food_data import FoodData, load_food_data
from .fusion import CancellationToken, FusionOrchestrator, FusionResult
from .ingredient_filter import IngredientFilter
from .label_detection import LabelDetector
from .object_detection import ObjectDetector
from .text_detection import TextDetector
from .translator import IngredientTranslator
from .vision_client import VisionClient
from .web_detection import WebDetector

logger = logging.getLogger(__name__)


class EngineMode(str, Enum):
    """Detection modes exposed to callers."""
    LABEL = "label"
    OBJECTS = "objects"
    WEB = "web"
    TEXT = "text"
    COMBINED = "combined"


@dataclass(frozen=True)
class DetectionEngine:
    """Immutable bundle of the food data and every detector built on it."""
    food_data: FoodData
    client: VisionClient
    translator: IngredientTranslator
    ingredient_filter: IngredientFilter
    label_detector: LabelDetector
    object_detector: ObjectDetector
    web_detector: WebDetector
    text_detector: TextDetector
    orchestrator: FusionOrchestrator

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[VisionClient] = None,
        food_data: Optional[FoodData] = None,
    ) -> "DetectionEngine":
        """
        Load the food data and wire up the detectors.

        Raises:
            ConfigurationMissing: food data or API key unavailable
        """
        settings = settings or get_settings()
        if food_data is None:
            food_data = load_food_data(settings.food_data_path)
        if client is None:
            client = VisionClient(settings)

        translator = IngredientTranslator(food_data)
        ingredient_filter = IngredientFilter(food_data, translator)
        label_detector = LabelDetector(client, ingredient_filter, translator, settings)
        object_detector = ObjectDetector(
            client,
            translator,
            food_data.filtering.object_detection_confidence_threshold,
            settings,
        )
        web_detector = WebDetector(client, ingredient_filter, translator, settings)
        text_detector = TextDetector(client, ingredient_filter, translator, settings)
        orchestrator = FusionOrchestrator(
            object_detector,
            text_detector,
            web_detector,
            label_detector,
            ingredient_filter,
            settings,
        )

        logger.info(f"Detection engine ready (food data v{food_data.version})")
        return cls(
            food_data=food_data,
            client=client,
            translator=translator,
            ingredient_filter=ingredient_filter,
            label_detector=label_detector,
            object_detector=object_detector,
            web_detector=web_detector,
            text_detector=text_detector,
            orchestrator=orchestrator,
        )

    def detect(
        self,
        mode: EngineMode,
        image_bytes: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> FusionResult:
        """Run one detection mode. Single modes return names without weights."""
        mode = EngineMode(mode)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if mode == EngineMode.COMBINED:
            return self.orchestrator.detect(image_bytes, cancel_token)

        if mode == EngineMode.LABEL:
            names = self.label_detector.detect_names(image_bytes)
        elif mode == EngineMode.OBJECTS:
            names = self.object_detector.detect_names(image_bytes)
        elif mode == EngineMode.WEB:
            names = self.web_detector.detect_names(image_bytes)
        else:
            names = self.text_detector.detect_names(image_bytes)
        return FusionResult(ingredients=names)

    def close(self) -> None:
        self.client.close()
