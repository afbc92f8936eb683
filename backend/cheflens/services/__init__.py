"""Services for recognition calls, ingredient filtering, per-mode extraction and fusion."""

from .vision_client import VisionClient
from .translator import IngredientTranslator
from .ingredient_filter import IngredientFilter
from .candidates import Candidate, DetectionMode
from .label_detection import LabelDetector
from .object_detection import ObjectDetector, DetectedRegion, BoundingBox
from .web_detection import WebDetector
from .text_detection import TextDetector, TextMatch, TextStage
from .image_crops import load_image, cropped_region, validate_image
from .fusion import (
    FusionOrchestrator,
    FusionResult,
    IngredientWeight,
    DetectionStage,
    CancellationToken,
)
from .engine import DetectionEngine, EngineMode

__all__ = [
    "VisionClient",
    "IngredientTranslator",
    "IngredientFilter",
    "Candidate",
    "DetectionMode",
    "LabelDetector",
    "ObjectDetector",
    "DetectedRegion",
    "BoundingBox",
    "WebDetector",
    "TextDetector",
    "TextMatch",
    "TextStage",
    "load_image",
    "cropped_region",
    "validate_image",
    "FusionOrchestrator",
    "FusionResult",
    "IngredientWeight",
    "DetectionStage",
    "CancellationToken",
    "DetectionEngine",
    "EngineMode",
]
