"""Application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache


DEFAULT_FOOD_DATA_PATH = Path(__file__).parent / "data" / "food_data.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "ChefLens Ingredient Detection API"
    debug: bool = False

    # CORS - Allow all origins for prototype (restrict in production)
    cors_origins: list[str] = ["*"]

    # Recognition service
    vision_api_key: str = ""
    vision_api_base_url: str = "https://vision.googleapis.com/v1/images:annotate"
    vision_timeout_seconds: float = 30.0

    # Food data document (categories, synonyms, translations, text patterns)
    food_data_path: Path = DEFAULT_FOOD_DATA_PATH

    # Upload limits
    max_upload_size_mb: int = 15
    allowed_extensions: set = {"png", "jpg", "jpeg", "webp"}
    jpeg_quality: int = 90  # Re-encode quality for region crops

    # Per-mode request sizes
    label_max_results: int = 50
    object_max_results: int = 20
    web_max_results: int = 20

    # Label mode tuning
    multiple_ingredients_gap: float = 0.05  # Top-two gap below this = several ingredients
    category_confidence_gap: float = 0.09  # Same-category drop gap (single mode only)
    max_ingredient_results: int = 5

    # Web mode tuning
    web_score_threshold: float = 0.35

    # Fusion tuning
    text_score_factor: float = 0.9  # On-package text is trusted above web/label
    label_default_score: float = 0.8
    region_workers: int = 1  # 1 = sequential, one crop at a time

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
