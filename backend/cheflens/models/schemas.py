"""Pydantic schemas for API requests and responses."""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class DetectionModeParam(str, Enum):
    """Detection mode selectable per request."""
    LABEL = "label"
    OBJECTS = "objects"
    WEB = "web"
    TEXT = "text"
    COMBINED = "combined"


class IngredientWeightOut(BaseModel):
    """Diagnostic weight for one ingredient in combined mode."""
    name: str
    count: int = Field(..., ge=0)
    max_object_score: float = Field(..., ge=0.0, le=1.0)
    max_mode_score: float = Field(..., ge=0.0, le=1.0)
    max_integrated_score: float = Field(..., ge=0.0, le=1.0)
    modes: list[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "さば水煮",
                "count": 1,
                "max_object_score": 0.82,
                "max_mode_score": 0.738,
                "max_integrated_score": 0.605,
                "modes": ["text"]
            }
        }


class DetectionResponse(BaseModel):
    """Response for the detect endpoint."""
    success: bool
    mode: DetectionModeParam
    ingredients: list[str] = Field(default_factory=list)
    weights: Optional[list[IngredientWeightOut]] = None
    used_fallback: Optional[bool] = None
    error: Optional[str] = None
    processing_time_ms: int = 0

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "mode": "combined",
                "ingredients": ["トマト", "卵"],
                "weights": [],
                "used_fallback": False,
                "error": None,
                "processing_time_ms": 2140
            }
        }


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Invalid image format",
                "detail": "Allowed formats: JPEG, JPG, PNG, WEBP"
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    engine_ready: bool
    food_data_version: Optional[str] = None
