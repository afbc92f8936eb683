"""Fusion orchestrator: object regions, per-crop detection cascade, weighted merge.

Flow for one image:

1. Localize objects and keep the confident regions.
2. Crop each region and run the detection stages (text, web, label) on the
   crop until one returns candidates.
3. Aggregate every (name, score) sighting into one weight per name.
4. Collapse synonyms, then rank by count and integrated score.

With no confident region, or nothing left after merging, the whole image is
read with text and web detection instead.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from PIL import Image

from ..config import Settings, get_settings
from ..exceptions import (
    DetectionCancelled,
    ImageProcessingError,
    NoDetectionResult,
    ProviderError,
    TransportError,
)
from .candidates import Candidate, DetectionMode
from .image_crops import cropped_region, load_image
from .ingredient_filter import IngredientFilter
from .label_detection import LabelDetector
from .object_detection import DetectedRegion, ObjectDetector
from .text_detection import TextDetector
from .web_detection import WebDetector

logger = logging.getLogger(__name__)

# Failures that cost one region, never the whole request
REGION_ERRORS = (ImageProcessingError, TransportError, ProviderError, NoDetectionResult)


class CancellationToken:
    """Cooperative cancellation flag shared by one detection request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise DetectionCancelled()


@dataclass
class IngredientWeight:
    """Running aggregate of every sighting of one display name."""
    name: str
    count: int = 0
    max_object_score: float = 0.0
    max_web_score: float = 0.0  # Mode score of the best sighting
    max_integrated_score: float = 0.0
    modes: Set[DetectionMode] = field(default_factory=set)

    def record(self, object_score: float, mode_score: float, mode: DetectionMode) -> None:
        self.count += 1
        self.modes.add(mode)
        integrated = object_score * mode_score
        if integrated > self.max_integrated_score:
            self.max_integrated_score = integrated
            self.max_object_score = object_score
            self.max_web_score = mode_score


@dataclass
class FusionResult:
    """Ranked ingredient names plus the weights behind them."""
    ingredients: List[str]
    weights: List[IngredientWeight] = field(default_factory=list)
    used_fallback: bool = False
    regions: int = 0


@dataclass(frozen=True)
class DetectionStage:
    """
    One step of the per-crop cascade.

    ``rescore`` maps (candidate, region score) to the mode score used for
    weighting; without it the candidate's own score is kept.
    """
    mode: DetectionMode
    detect: Callable[[bytes], List[Candidate]]
    rescore: Optional[Callable[[Candidate, float], float]] = None

    def run(self, image_bytes: bytes, region_score: float) -> List[Candidate]:
        candidates = self.detect(image_bytes)
        if self.rescore is None:
            return candidates
        return [c.with_score(self.rescore(c, region_score)) for c in candidates]


class FusionOrchestrator:
    """Combines object localization with per-region text, web and label detection."""

    def __init__(
        self,
        object_detector: ObjectDetector,
        text_detector: TextDetector,
        web_detector: WebDetector,
        label_detector: LabelDetector,
        ingredient_filter: IngredientFilter,
        settings: Optional[Settings] = None,
        stages: Optional[List[DetectionStage]] = None,
    ):
        self.object_detector = object_detector
        self.text_detector = text_detector
        self.web_detector = web_detector
        self.label_detector = label_detector
        self.filter = ingredient_filter
        self.settings = settings or get_settings()
        self.min_crop_size = ingredient_filter.food_data.filtering.min_crop_size
        self.stages = stages if stages is not None else self.default_stages()

    def default_stages(self) -> List[DetectionStage]:
        """Text first, then web, then label."""
        text_factor = self.settings.text_score_factor
        label_score = self.settings.label_default_score
        return [
            DetectionStage(
                DetectionMode.TEXT,
                self.text_detector.detect,
                lambda candidate, region_score: text_factor * region_score,
            ),
            DetectionStage(DetectionMode.WEB, self.web_detector.detect),
            DetectionStage(
                DetectionMode.LABEL,
                self.label_detector.detect,
                lambda candidate, region_score: label_score,
            ),
        ]

    def detect(
        self,
        image_bytes: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> FusionResult:
        """
        Detect ingredients in a refrigerator photo.

        Args:
            image_bytes: Encoded image
            cancel_token: Optional token; checked before every region and stage

        Returns:
            FusionResult with ranked names and their weights

        Raises:
            ImageProcessingError: the image cannot be decoded
            DetectionCancelled: the token was cancelled
            TransportError, ProviderError: object localization or the
                whole-image fallback failed
        """
        token = cancel_token or CancellationToken()
        token.raise_if_cancelled()

        regions = self.object_detector.filter_by_confidence(
            self.object_detector.detect_objects(image_bytes)
        )
        if not regions:
            logger.info("No confident object regions; reading the whole image")
            return self.detect_whole_image(image_bytes, token)

        image = load_image(image_bytes)
        try:
            sightings = self._detect_regions(image, regions, token)
        finally:
            image.close()

        weights = self._aggregate(regions, sightings)
        merged = self._merge_synonyms(weights)
        ranked = sorted(merged, key=lambda w: (-w.count, -w.max_integrated_score))

        for weight in ranked:
            logger.info(
                f"  {weight.name}: count={weight.count}, "
                f"object={weight.max_object_score:.3f}, mode={weight.max_web_score:.3f}, "
                f"integrated={weight.max_integrated_score:.3f}"
            )

        if not ranked:
            logger.info("Regions produced no ingredients; reading the whole image")
            result = self.detect_whole_image(image_bytes, token)
            result.regions = len(regions)
            return result

        return FusionResult(
            ingredients=[w.name for w in ranked],
            weights=ranked,
            used_fallback=False,
            regions=len(regions),
        )

    def detect_whole_image(
        self,
        image_bytes: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> FusionResult:
        """Text names, then web names not similar to any of them. Errors propagate."""
        token = cancel_token or CancellationToken()

        token.raise_if_cancelled()
        ingredients = self.text_detector.detect_names(image_bytes)

        token.raise_if_cancelled()
        for candidate in self.web_detector.detect(image_bytes):
            if any(self.filter.is_similar(candidate.name, name) for name in ingredients):
                continue
            ingredients.append(candidate.name)

        logger.info(f"Whole-image detection: {ingredients}")
        return FusionResult(ingredients=ingredients, used_fallback=True)

    def _detect_regions(
        self,
        image: Image.Image,
        regions: List[DetectedRegion],
        token: CancellationToken,
    ) -> List[List[Candidate]]:
        """Candidates per region, in region order."""
        workers = max(1, self.settings.region_workers)
        if workers == 1 or len(regions) == 1:
            return [self._safe_detect_region(image, region, token) for region in regions]

        with ThreadPoolExecutor(max_workers=min(workers, len(regions))) as executor:
            futures = [
                executor.submit(self._safe_detect_region, image, region, token)
                for region in regions
            ]
            try:
                return [f.result() for f in futures]
            except DetectionCancelled:
                for f in futures:
                    f.cancel()
                raise

    def _safe_detect_region(
        self,
        image: Image.Image,
        region: DetectedRegion,
        token: CancellationToken,
    ) -> List[Candidate]:
        try:
            return self._detect_region(image, region, token)
        except NoDetectionResult:
            logger.info(f"Region {region.label} ({region.score:.3f}): nothing detected")
        except REGION_ERRORS as e:
            logger.warning(f"Region {region.label} ({region.score:.3f}) skipped: {e}")
        return []

    def _detect_region(
        self,
        image: Image.Image,
        region: DetectedRegion,
        token: CancellationToken,
    ) -> List[Candidate]:
        token.raise_if_cancelled()

        with cropped_region(
            image,
            region.box,
            min_size=self.min_crop_size,
            jpeg_quality=self.settings.jpeg_quality,
        ) as crop_bytes:
            for stage in self.stages:
                token.raise_if_cancelled()
                candidates = stage.run(crop_bytes, region.score)
                if candidates:
                    logger.info(
                        f"Region {region.label} ({region.score:.3f}) "
                        f"{stage.mode.value}: {[c.name for c in candidates]}"
                    )
                    return candidates

        raise NoDetectionResult(details=region.label)

    def _aggregate(
        self,
        regions: List[DetectedRegion],
        sightings: List[List[Candidate]],
    ) -> List[IngredientWeight]:
        weights: Dict[str, IngredientWeight] = {}
        for region, candidates in zip(regions, sightings):
            for candidate in candidates:
                weight = weights.setdefault(candidate.name, IngredientWeight(name=candidate.name))
                weight.record(region.score, candidate.score, candidate.source_mode)
        return list(weights.values())

    def _merge_synonyms(self, weights: List[IngredientWeight]) -> List[IngredientWeight]:
        """
        Keep one weight per group of similar names.

        The similarity group's preferred name wins; otherwise the higher count
        wins and the first seen wins a tie. The losing weight is dropped.
        A weight is kept only if it beats every similar kept weight, so no
        two kept names are similar.
        """
        merged: List[IngredientWeight] = []
        for weight in weights:
            rivals = [w for w in merged if self.filter.is_similar(weight.name, w.name)]
            winner = next((r for r in rivals if not self._beats(weight, r)), None)
            if winner is not None:
                logger.debug(f"Merged {weight.name} into {winner.name}")
                continue

            for rival in rivals:
                logger.debug(f"Merged {rival.name} into {weight.name}")
                merged.remove(rival)
            merged.append(weight)
        return merged

    def _beats(self, weight: IngredientWeight, existing: IngredientWeight) -> bool:
        """Whether a newcomer replaces a similar, already kept weight."""
        preferred = self.filter.get_preferred_name(weight.name, existing.name)
        if preferred is not None:
            return preferred.lower() == weight.name.lower()
        return weight.count > existing.count
