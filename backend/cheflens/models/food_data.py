"""Food data document: known foods, synonyms, translations and text patterns.

The document is loaded once at startup and passed to every component that
needs it. It is never mutated afterwards.
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional, List, Dict, Union

from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ConfigurationMissing

logger = logging.getLogger(__name__)


class FilterConfig(BaseModel):
    """Thresholds and keyword lists used by the relevance classifier."""
    confidence_threshold: float = Field(..., ge=0.0, le=1.0)
    object_detection_confidence_threshold: float = Field(0.5, ge=0.0, le=1.0)
    min_crop_size: int = Field(50, ge=1, description="Minimum crop edge in pixels")
    exclude_keywords: List[str]
    generic_categories: List[str]
    generic_patterns: List[str] = Field(default_factory=list)
    generic_keywords: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class SimilarityGroup(BaseModel):
    """Alternate names for one ingredient, with a designated primary."""
    primary: str
    similar: List[str]
    note: Optional[str] = None

    class Config:
        frozen = True

    def members(self) -> List[str]:
        return [self.primary.lower()] + [s.lower() for s in self.similar]

    def contains(self, food1: str, food2: str) -> bool:
        """True when both names belong to this group (order-insensitive)."""
        members = self.members()
        return food1.lower() in members and food2.lower() in members


class ProductPattern(BaseModel):
    """Regex recognizing a packaged product in OCR text."""
    pattern: str
    ingredient: str
    priority: int = 100  # Lower runs first
    yields_to: List[str] = Field(
        default_factory=list,
        description="Regexes; if any matches the text this pattern is skipped",
    )

    class Config:
        frozen = True

    def to_regex(self) -> re.Pattern:
        return re.compile(self.pattern, re.IGNORECASE)

    def is_outranked(self, text: str) -> bool:
        return any(re.search(p, text, re.IGNORECASE) for p in self.yields_to)


class VariantEntry(BaseModel):
    """Spelling or script variants mapped to one standard display name."""
    standard: str
    variants: List[str]

    class Config:
        frozen = True


class TextDetectionConfig(BaseModel):
    """Optional tables driving the OCR extractor."""
    product_patterns: List[ProductPattern] = Field(default_factory=list)
    product_keywords: List[str] = Field(default_factory=list)
    display_variants: List[VariantEntry] = Field(default_factory=list)
    false_positive_patterns: Dict[str, List[str]] = Field(default_factory=dict)

    class Config:
        frozen = True


class FoodData(BaseModel):
    """The full food data document."""
    version: str = "0"
    last_updated: str = ""
    description: str = ""
    filtering: FilterConfig
    foods: Dict[str, List[str]]
    similar_pairs: List[SimilarityGroup] = Field(default_factory=list)
    translations: Dict[str, str]
    text_detection: Optional[TextDetectionConfig] = None

    class Config:
        frozen = True

    def all_food_names(self) -> List[str]:
        """Every known food name, lowercase, in category order."""
        return [food.lower() for names in self.foods.values() for food in names]

    def category_of(self, food_name: str) -> Optional[str]:
        """First category (document order) with a food contained in the name."""
        lower_name = food_name.lower()
        for category, names in self.foods.items():
            if any(f.lower() in lower_name for f in names):
                return category
        return None


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"])
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def parse_food_data(data: dict) -> FoodData:
    """
    Validate a decoded food data document.

    Raises:
        ConfigurationMissing: if a required key is absent or malformed
    """
    try:
        return FoodData.model_validate(data)
    except ValidationError as e:
        raise ConfigurationMissing(
            "Food data document is incomplete",
            details=_describe_validation_error(e),
        ) from e


def load_food_data(path: Union[str, Path]) -> FoodData:
    """
    Load the food data document from disk.

    A ``translation_file`` key names a sibling JSON file whose ``translations``
    object replaces the inline one. If that file cannot be read the inline
    translations are kept.

    Raises:
        ConfigurationMissing: if the file is missing or a required key is absent
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationMissing("Food data file not found", details=str(path)) from e
    except json.JSONDecodeError as e:
        raise ConfigurationMissing("Food data file is not valid JSON", details=str(e)) from e

    translation_file = data.get("translation_file")
    if translation_file:
        translation_path = path.parent / translation_file
        try:
            translation_data = json.loads(translation_path.read_text(encoding="utf-8"))
            data["translations"] = dict(translation_data["translations"])
        except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(
                f"Could not read translation file {translation_path}: {e}; "
                "using inline translations"
            )

    food_data = parse_food_data(data)
    logger.info(
        f"Loaded food data v{food_data.version}: "
        f"{len(food_data.all_food_names())} foods, "
        f"{len(food_data.similar_pairs)} similarity groups, "
        f"{len(food_data.translations)} translations"
    )
    return food_data
