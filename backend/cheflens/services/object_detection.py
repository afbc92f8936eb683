"""Object-mode extractor: localized regions with normalized boxes."""

import logging
from dataclasses import dataclass
from typing import Optional, List

from ..config import Settings, get_settings
from ..models.vision import Feature, LocalizedObjectAnnotation
from .translator import IngredientTranslator
from .vision_client import VisionClient

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in normalized [0, 1] image coordinates."""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def to_pixels(self, image_width: int, image_height: int) -> tuple:
        """(x1, y1, x2, y2) in pixels, clamped to the image."""
        x1 = min(image_width, max(0, round(self.left * image_width)))
        y1 = min(image_height, max(0, round(self.top * image_height)))
        x2 = min(image_width, max(0, round(self.right * image_width)))
        y2 = min(image_height, max(0, round(self.bottom * image_height)))
        return x1, y1, x2, y2


@dataclass(frozen=True)
class DetectedRegion:
    """A localized object: provider label, score and box."""
    label: str
    score: float
    box: BoundingBox

    @classmethod
    def from_annotation(cls, annotation: LocalizedObjectAnnotation) -> Optional["DetectedRegion"]:
        """Region for an annotation, or None when it has no normalized vertices."""
        points = annotation.bounding_poly.points()
        if not points:
            return None
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        box = BoundingBox(
            left=_clamp(min(xs)),
            top=_clamp(min(ys)),
            right=_clamp(max(xs)),
            bottom=_clamp(max(ys)),
        )
        return cls(label=annotation.name, score=annotation.score, box=box)


class ObjectDetector:
    """Localizes objects. Confidence filtering is a separate, explicit step."""

    def __init__(
        self,
        client: VisionClient,
        translator: IngredientTranslator,
        object_confidence_threshold: float,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.translator = translator
        self.object_confidence_threshold = object_confidence_threshold
        self.settings = settings or get_settings()

    def detect_objects(self, image_bytes: bytes) -> List[DetectedRegion]:
        """Every localized object, unfiltered."""
        response = self.client.annotate(
            image_bytes,
            Feature.OBJECT_LOCALIZATION,
            max_results=self.settings.object_max_results,
        )

        if not response.localized_object_annotations:
            logger.debug("Object detection: no objects found")
            return []

        logger.debug("Object detection raw results:")
        regions = []
        for obj in response.localized_object_annotations:
            logger.debug(f"  {obj.name} (score: {obj.score:.3f})")
            region = DetectedRegion.from_annotation(obj)
            if region is None:
                logger.warning(f"Object {obj.name} has no normalized vertices; skipped")
                continue
            regions.append(region)
        return regions

    def filter_by_confidence(self, regions: List[DetectedRegion]) -> List[DetectedRegion]:
        filtered = [r for r in regions if r.score >= self.object_confidence_threshold]
        logger.info(
            f"Objects detected: {len(regions)}, "
            f"above {self.object_confidence_threshold * 100:.0f}%: {len(filtered)}"
        )
        return filtered

    def detect_names(self, image_bytes: bytes) -> List[str]:
        """Distinct translated labels of the confident regions."""
        names = []
        for region in self.filter_by_confidence(self.detect_objects(image_bytes)):
            name = self.translator.to_display_name(region.label)
            if name not in names:
                names.append(name)
        return names
