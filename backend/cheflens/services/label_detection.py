"""Label-mode extractor: whole-image labels filtered down to distinct ingredients."""

import logging
from typing import Optional, List

from ..config import Settings, get_settings
from ..models.vision import Feature, LabelAnnotation
from .candidates import Candidate, DetectionMode
from .ingredient_filter import IngredientFilter
from .translator import IngredientTranslator
from .vision_client import VisionClient

logger = logging.getLogger(__name__)


class LabelDetector:
    """Turns a label-detection response into at most five ingredient candidates."""

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
        self.confidence_threshold = ingredient_filter.food_data.filtering.confidence_threshold

    def detect(self, image_bytes: bytes) -> List[Candidate]:
        """Request labels for an image and return the filtered candidates."""
        response = self.client.annotate(
            image_bytes,
            Feature.LABEL_DETECTION,
            max_results=self.settings.label_max_results,
        )

        logger.debug("Label detection raw results:")
        for label in response.label_annotations:
            logger.debug(f"  {label.description} (score: {label.score:.3f})")

        return self.select(response.label_annotations)

    def detect_names(self, image_bytes: bytes) -> List[str]:
        return [c.name for c in self.detect(image_bytes)]

    def select(self, labels: List[LabelAnnotation]) -> List[Candidate]:
        """
        Filter raw labels to distinct ingredients.

        Labels below the confidence threshold or not food related are dropped.
        The best label is always kept; later labels are dropped when similar to
        a kept one or, when the image looks like a single ingredient, when they
        share a category with a kept label that outscores them by the category
        gap.
        """
        sorted_labels = sorted(labels, key=lambda l: l.score, reverse=True)

        food_labels = [
            l for l in sorted_labels
            if l.score >= self.confidence_threshold and self.filter.is_food_related(l.description)
        ]
        is_multiple = self._is_multiple_ingredients(food_labels)

        kept: List[LabelAnnotation] = []
        for label in sorted_labels:
            if label.score < self.confidence_threshold:
                continue
            if not self.filter.is_food_related(label.description):
                continue
            if not kept:
                kept.append(label)
                continue
            if self._should_exclude(label, kept, is_multiple):
                continue
            kept.append(label)

        candidates = [
            Candidate(
                name=self.translator.to_display_name(label.description),
                score=label.score,
                source_mode=DetectionMode.LABEL,
                source_name=label.description,
            )
            for label in kept
        ]

        # Several labels can translate to one display name; keep the first
        seen = set()
        unique = []
        for c in candidates:
            if c.name in seen:
                continue
            seen.add(c.name)
            unique.append(c)
        unique = unique[: self.settings.max_ingredient_results]

        logger.info(
            f"Label detection kept {[c.name for c in unique]} "
            f"(threshold {self.confidence_threshold})"
        )
        return unique

    def _is_multiple_ingredients(self, food_labels: List[LabelAnnotation]) -> bool:
        """Top-two scores within the gap threshold means several distinct ingredients."""
        if len(food_labels) < 2:
            return False

        gap = food_labels[0].score - food_labels[1].score
        is_multiple = gap < self.settings.multiple_ingredients_gap
        logger.debug(
            f"{'Multiple' if is_multiple else 'Single'} ingredient mode "
            f"(top-two gap {gap * 100:.1f}%)"
        )
        return is_multiple

    def _should_exclude(
        self,
        label: LabelAnnotation,
        kept: List[LabelAnnotation],
        is_multiple: bool,
    ) -> bool:
        for existing in kept:
            if self.filter.is_similar(label.description, existing.description):
                logger.debug(
                    f"Excluded {label.description} ({label.score:.3f}): "
                    f"similar to {existing.description}"
                )
                return True

            if not is_multiple:
                category = self.filter.category_of(label.description)
                existing_category = self.filter.category_of(existing.description)
                if (
                    category is not None
                    and category == existing_category
                    and existing.score - label.score >= self.settings.category_confidence_gap
                ):
                    logger.debug(
                        f"Excluded {label.description} ({label.score:.3f}): same {category} "
                        f"category as {existing.description} ({existing.score:.3f})"
                    )
                    return True

        return False
