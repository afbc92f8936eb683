"""Pydantic models: food data document, provider responses and API schemas."""

from .schemas import (
    DetectionModeParam,
    IngredientWeightOut,
    DetectionResponse,
    ErrorResponse,
    HealthResponse,
)
from .food_data import (
    FilterConfig,
    SimilarityGroup,
    ProductPattern,
    VariantEntry,
    TextDetectionConfig,
    FoodData,
    load_food_data,
    parse_food_data,
)

__all__ = [
    "DetectionModeParam",
    "IngredientWeightOut",
    "DetectionResponse",
    "ErrorResponse",
    "HealthResponse",
    "FilterConfig",
    "SimilarityGroup",
    "ProductPattern",
    "VariantEntry",
    "TextDetectionConfig",
    "FoodData",
    "load_food_data",
    "parse_food_data",
]
