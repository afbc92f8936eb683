"""Web-mode extractor: best-guess labels and web entities for packaged products."""

import logging
import re
from typing import Optional, List

from ..config import Settings, get_settings
from ..models.vision import Feature, WebDetection
from .candidates import Candidate, DetectionMode
from .ingredient_filter import IngredientFilter
from .translator import IngredientTranslator
from .vision_client import VisionClient

logger = logging.getLogger(__name__)

# Used when the food data carries no generic patterns
DEFAULT_GENERIC_PATTERNS = [
    r"^vegetable",
    r"^fruit",
    r"^food",
    r"^ingredient",
    r"^produce",
    r"^grocery",
    r"^kitchen",
    r"^refrigerator",
    r"^fridge",
    r"^storage",
    r"^container",
    r"^salad",
    r"^meal",
    r"^dish",
    r"^recipe",
    r"^cooking",
    r"^diet",
    r"^nutrition",
    r"^healthy",
    r"^organic",
    r"^fresh",
    r"^superfood",
    r"^plant",
    r"^legume",
    r"^cruciferous",
    r".*\s+in\s+.*",
    r".*\s+on\s+.*",
    r".*\s+with\s+.*",
    r".*\s+and\s+.*",
]

DEFAULT_GENERIC_KEYWORDS = [
    "vegetable", "fruit", "food", "ingredient", "produce", "grocery",
    "kitchen", "refrigerator", "fridge", "storage", "container", "salad",
    "meal", "dish", "recipe", "cooking", "diet", "nutrition", "healthy",
    "organic", "fresh", "superfood", "plant", "legume", "cruciferous",
    "sayuran", "kulkas",
]

JAPANESE_SCRIPT = re.compile(r"[぀-ゟ゠-ヿ一-龯]")
NON_ASCII = re.compile(r"[^\x00-\x7F]")
MAX_FOREIGN_RATIO = 0.3


class WebDetector:
    """Extracts product-level ingredient names from web detection."""

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

        filtering = ingredient_filter.food_data.filtering
        self._generic_patterns = [
            re.compile(p, re.IGNORECASE)
            for p in (filtering.generic_patterns or DEFAULT_GENERIC_PATTERNS)
        ]
        self._generic_keywords = [
            k.lower() for k in (filtering.generic_keywords or DEFAULT_GENERIC_KEYWORDS)
        ]

    def detect(self, image_bytes: bytes) -> List[Candidate]:
        """Scored candidates, best first, similar names collapsed."""
        response = self.client.annotate(
            image_bytes,
            Feature.WEB_DETECTION,
            max_results=self.settings.web_max_results,
        )

        if response.web_detection is None:
            logger.debug("Web detection: response carried no webDetection block")
            return []

        self._log_results(response.web_detection)
        return self.select(response.web_detection)

    def detect_names(self, image_bytes: bytes, limit: int = 1) -> List[str]:
        return [c.name for c in self.detect(image_bytes)[:limit]]

    def select(self, web_detection: WebDetection) -> List[Candidate]:
        candidates: List[Candidate] = []

        # Best guess labels count as fully confident
        for guess in web_detection.best_guess_labels:
            if self.is_too_generic(guess.label):
                logger.debug(f"Best guess label excluded as generic or foreign: {guess.label!r}")
                continue
            if self.filter.is_food_related(guess.label):
                candidates.append(Candidate(
                    name=self.translator.to_display_name(guess.label),
                    score=1.0,
                    source_mode=DetectionMode.WEB,
                    source_name=guess.label,
                ))

        for entity in web_detection.web_entities:
            if not entity.description or entity.score < self.settings.web_score_threshold:
                continue
            if not self.filter.is_food_related(entity.description):
                logger.debug(
                    f"Web entity excluded: {entity.description!r} "
                    f"({entity.score * 100:.1f}%) - not food related"
                )
                continue

            translated = self.translator.to_display_name(entity.description)
            if any(c.name == translated for c in candidates):
                logger.debug(f"Web entity skipped: {entity.description!r} -> {translated} already present")
                continue

            candidates.append(Candidate(
                name=translated,
                score=entity.score,
                source_mode=DetectionMode.WEB,
                source_name=entity.description,
            ))
            logger.debug(
                f"Web entity added: {entity.description!r} -> {translated} "
                f"({entity.score * 100:.1f}%)"
            )

        candidates.sort(key=lambda c: c.score, reverse=True)
        return self._filter_similar(candidates)

    def is_too_generic(self, label: str) -> bool:
        """
        Screen best-guess labels that describe a scene rather than an ingredient.

        Rejects generic patterns ("vegetables in fridge"), generic keywords
        without a specific food name, and text that is mostly non-ASCII with
        no Japanese script (mis-detected foreign text).
        """
        lower_label = label.lower()

        if any(p.search(lower_label) for p in self._generic_patterns):
            return True

        has_generic_keyword = any(k in lower_label for k in self._generic_keywords)
        has_specific_food = any(
            food in lower_label and len(food) > 3
            for food in self.filter.food_data.all_food_names()
        )

        if not JAPANESE_SCRIPT.search(label) and label:
            foreign = len(NON_ASCII.findall(label))
            if foreign / len(label) > MAX_FOREIGN_RATIO:
                return True

        if has_generic_keyword and not has_specific_food:
            return True

        return False

    def _filter_similar(self, candidates: List[Candidate]) -> List[Candidate]:
        """Collapse similar names; the higher score survives."""
        kept: List[Candidate] = []
        for candidate in candidates:
            should_add = True
            for existing in kept:
                if candidate.name == existing.name:
                    should_add = False
                    break

                if self.filter.is_similar(
                    candidate.source_name or candidate.name,
                    existing.source_name or existing.name,
                ):
                    if candidate.score <= existing.score:
                        logger.debug(
                            f"Similar web candidate dropped: {candidate.name} "
                            f"({candidate.score:.3f}) vs {existing.name} ({existing.score:.3f})"
                        )
                        should_add = False
                    else:
                        logger.debug(f"Similar web candidate replaced: {existing.name} by {candidate.name}")
                        kept.remove(existing)
                    break

            if should_add:
                kept.append(candidate)

        return kept

    def _log_results(self, web_detection: WebDetection) -> None:
        logger.debug("Web detection raw results:")
        for entity in web_detection.web_entities:
            logger.debug(f"  entity {entity.description or 'N/A'} (score: {entity.score})")
        for guess in web_detection.best_guess_labels:
            logger.debug(f"  best guess {guess.label}")
        logger.debug(f"  pages with matching images: {len(web_detection.pages_with_matching_images)}")
