"""Text-mode extractor: ingredient names read from package text (OCR).

Every text fragment is run through five stages, first hit wins:

1. product patterns (ascending priority, honouring ``yields_to``)
2. product keywords: the fragment names a product no pattern resolved, stop
3. display names (longest first) guarded by false-positive patterns
4. display-name variants ("たまご" -> "卵")
5. English food names (longest first)
"""

import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, List, Set

from ..config import Settings, get_settings
from ..models.food_data import ProductPattern, TextDetectionConfig, VariantEntry
from ..models.vision import Feature, TextAnnotation
from .candidates import Candidate, DetectionMode
from .ingredient_filter import IngredientFilter
from .translator import IngredientTranslator
from .vision_client import VisionClient

logger = logging.getLogger(__name__)

MIN_FRAGMENT_LENGTH = 2
MAX_COMBINED_FRAGMENTS = 3
PRODUCT_NEIGHBOURHOOD = 10

DEFAULT_TEXT_CONFIG = TextDetectionConfig(
    product_patterns=[
        ProductPattern(pattern=r"カレールウ|カレー.*ルウ|curry.*roux", ingredient="カレールウ", priority=10),
        ProductPattern(pattern=r"カレー粉|curry.*powder", ingredient="カレー粉", priority=20),
        ProductPattern(pattern=r"ゴールデンカレー|golden.*curry", ingredient="カレールウ", priority=30),
        ProductPattern(pattern=r"カレー", ingredient="カレー", priority=40),
        ProductPattern(pattern=r"さば\s*水煮|サバ\s*水煮", ingredient="さば水煮", priority=50),
        ProductPattern(pattern=r"いわし\s*水煮|イワシ\s*水煮", ingredient="いわし", priority=60),
        ProductPattern(pattern=r"サンマ\s*水煮|さんま\s*水煮", ingredient="サンマ", priority=70),
        ProductPattern(pattern=r"まぐろ\s*水煮|マグロ\s*水煮", ingredient="マグロ", priority=80),
        ProductPattern(pattern=r"さば\s*味噌|サバ\s*味噌", ingredient="さば", priority=90),
        ProductPattern(pattern=r"さば\s*味付|サバ\s*味付", ingredient="さば", priority=100),
        ProductPattern(pattern=r"産まれた.*たまご|産まれた.*タマゴ", ingredient="卵", priority=120),
        ProductPattern(pattern=r"新鮮.*たまご|新鮮.*タマゴ|新鮮.*玉子", ingredient="卵", priority=130),
        ProductPattern(pattern=r"たまご|タマゴ|玉子", ingredient="卵", priority=140),
        ProductPattern(pattern=r"梅干し|梅干", ingredient="梅干し", priority=150),
        ProductPattern(pattern=r"納豆", ingredient="納豆", priority=160),
        ProductPattern(pattern=r"豆腐", ingredient="豆腐", priority=170),
    ],
    product_keywords=[
        "カレールウ", "カレー粉", "ゴールデンカレー", "カレー",
        "さば水煮", "さば 水煮", "サバ水煮", "サバ 水煮",
        "いわし水煮", "サンマ水煮", "まぐろ水煮",
        "梅干し", "梅干", "納豆", "豆腐", "たまご", "タマゴ", "玉子",
    ],
    display_variants=[
        VariantEntry(standard="卵", variants=["たまご", "タマゴ", "玉子"]),
        VariantEntry(standard="さば", variants=["さば", "サバ"]),
        VariantEntry(standard="かつお", variants=["かつお", "カツオ"]),
        VariantEntry(standard="梅干し", variants=["梅干", "梅干し"]),
    ],
    false_positive_patterns={
        "なす": ["産まれた", "産ま", "織りなす", "織り成す", "織.*なす"],
    },
)


class TextStage(IntEnum):
    """Extraction stage that produced a name; lower is stronger evidence."""
    PRODUCT_PATTERN = 1
    DISPLAY_NAME = 3
    DISPLAY_VARIANT = 4
    ENGLISH_NAME = 5


@dataclass(frozen=True)
class TextMatch:
    """An ingredient extracted from one piece of text."""
    name: str
    stage: TextStage

    @property
    def is_product(self) -> bool:
        return self.stage == TextStage.PRODUCT_PATTERN


class TextDetector:
    """Reads ingredient names from OCR annotations."""

    def __init__(
        self,
        client: VisionClient,
        ingredient_filter: IngredientFilter,
        translator: IngredientTranslator,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.filter = ingredient_filter
        self.translator = translator
        self.settings = settings or get_settings()

        food_data = ingredient_filter.food_data
        config = food_data.text_detection or DEFAULT_TEXT_CONFIG

        patterns = config.product_patterns or DEFAULT_TEXT_CONFIG.product_patterns
        self._patterns = [
            (p, p.to_regex()) for p in sorted(patterns, key=lambda p: p.priority)
        ]
        self._product_keywords = config.product_keywords or DEFAULT_TEXT_CONFIG.product_keywords
        self._variants = config.display_variants or DEFAULT_TEXT_CONFIG.display_variants
        self._false_positives = {
            name: [re.compile(p, re.IGNORECASE) for p in patterns]
            for name, patterns in (
                config.false_positive_patterns or DEFAULT_TEXT_CONFIG.false_positive_patterns
            ).items()
        }

        self._display_names = translator.display_names()
        self._english_names = sorted(food_data.all_food_names(), key=len, reverse=True)
        self._exclude_keywords = [k.lower() for k in food_data.filtering.exclude_keywords]

    def detect(self, image_bytes: bytes) -> List[Candidate]:
        """OCR an image and return the extracted ingredients as candidates."""
        response = self.client.annotate(image_bytes, Feature.TEXT_DETECTION)
        names = self.extract(response.text_annotations)
        return [
            Candidate(
                name=name,
                score=1.0,
                source_mode=DetectionMode.TEXT,
                source_name=self.translator.to_source_name(name),
            )
            for name in names
        ]

    def detect_names(self, image_bytes: bytes) -> List[str]:
        return [c.name for c in self.detect(image_bytes)]

    def extract(self, annotations: List[TextAnnotation]) -> List[str]:
        """
        Extract up to five ingredient names from OCR annotations.

        The first annotation is the full text and is read first. Each later
        fragment is read together with up to two following fragments. A
        fragment group that yields an accepted name is consumed; when the name
        came from a product pattern, the ten fragments on either side are
        consumed too, since they are usually the rest of the same label.
        """
        if not annotations:
            logger.debug("Text detection: no text found")
            return []

        full_text = annotations[0].description
        if not full_text.strip():
            logger.debug("Text detection: empty text")
            return []

        logger.debug(f"Text detection full text: {full_text!r}")

        ingredients: List[str] = []
        match = self.extract_single(full_text)
        if match is not None:
            ingredients.append(match.name)

        consumed: Set[int] = set()
        for i in range(1, len(annotations)):
            if i in consumed:
                continue

            fragment = annotations[i].description
            if len(fragment.strip()) < MIN_FRAGMENT_LENGTH:
                continue

            combined = fragment
            end = i
            for j in range(i + 1, min(len(annotations), i + MAX_COMBINED_FRAGMENTS)):
                following = annotations[j].description
                if len(following.strip()) >= MIN_FRAGMENT_LENGTH:
                    combined += f" {following}"
                    end = j

            match = self.extract_single(combined)
            if match is None:
                logger.debug(f"Text fragment [{i}] {fragment!r}: no ingredient")
                continue

            if not self._accept(match.name, ingredients):
                continue

            ingredients.append(match.name)
            consumed.update(range(i, end + 1))

            if match.is_product:
                for j in range(i, end + 1):
                    for k in range(1, PRODUCT_NEIGHBOURHOOD + 1):
                        if j - k > 0:
                            consumed.add(j - k)
                        if j + k < len(annotations):
                            consumed.add(j + k)
                logger.debug(f"Product {match.name} found; skipping neighbouring fragments")

        result = ingredients[: self.settings.max_ingredient_results]
        logger.debug(f"Text detection extracted: {result}")
        return result

    def extract_single(self, text: str) -> Optional[TextMatch]:
        """Best single ingredient in a piece of text, or ``None``."""
        product = self._match_product_pattern(text)
        if product is not None:
            logger.debug(f"Product pattern match in {text!r}: {product}")
            return TextMatch(product, TextStage.PRODUCT_PATTERN)

        if any(keyword in text for keyword in self._product_keywords):
            logger.debug(f"Product name in {text!r}; ignoring other foods")
            return None

        for display_name in self._display_names:
            if self._contains_display_name(text, display_name):
                source = self.translator.to_source_name(display_name)
                if source is not None and self.filter.is_food_related(source):
                    return TextMatch(display_name, TextStage.DISPLAY_NAME)

        for entry in self._variants:
            if any(variant in text for variant in entry.variants):
                return TextMatch(entry.standard, TextStage.DISPLAY_VARIANT)

        lower_text = text.lower()
        for food in self._english_names:
            if self._contains_food_name(lower_text, food) and self.filter.is_food_related(food):
                return TextMatch(self.translator.to_display_name(food), TextStage.ENGLISH_NAME)

        return None

    def _match_product_pattern(self, text: str) -> Optional[str]:
        for pattern, regex in self._patterns:
            if pattern.is_outranked(text):
                continue
            if regex.search(text):
                return pattern.ingredient
        return None

    def _contains_display_name(self, text: str, display_name: str) -> bool:
        if text == display_name:
            return True
        if display_name not in text:
            return False
        for pattern in self._false_positives.get(display_name, []):
            if pattern.search(text):
                logger.debug(f"{display_name} in {text!r} rejected as a false positive")
                return False
        return True

    def _contains_food_name(self, lower_text: str, food: str) -> bool:
        if lower_text == food:
            return True
        if re.search(rf"(?:\b|\W){re.escape(food)}(?:\b|\W)", lower_text):
            return True
        if food in lower_text:
            return not any(keyword in lower_text for keyword in self._exclude_keywords)
        return False

    def _accept(self, name: str, accepted: List[str]) -> bool:
        """
        Decide whether a new name joins the accepted list.

        Identical names are rejected. When the new name is similar to an
        accepted one, the similarity group's primary wins, falling back to the
        longer name; an accepted name that loses is removed from the list.
        """
        if name in accepted:
            return False

        source_new = self.translator.to_source_name(name)
        if source_new is None:
            return True

        for existing in list(accepted):
            source_existing = self.translator.to_source_name(existing)
            if source_existing is None or not self.filter.is_similar(source_new, source_existing):
                continue

            preferred = self.filter.get_preferred_name(source_new, source_existing)
            if preferred is not None:
                new_wins = preferred.lower() == source_new.lower()
            else:
                new_wins = len(name) > len(existing)

            if not new_wins:
                logger.debug(f"Dropped {name}: similar to {existing}, keeping {existing}")
                return False

            logger.debug(f"Replaced {existing} with similar {name}")
            accepted.remove(existing)
            return True

        return True
