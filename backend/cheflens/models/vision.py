"""Typed views of the recognition service's ``images:annotate`` response.

Only the fields the engine reads are modelled. Required keys are enforced on
validation so a malformed payload fails at the client boundary instead of deep
inside an extractor.
"""

from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field


class Feature(str, Enum):
    """Recognition feature types."""
    LABEL_DETECTION = "LABEL_DETECTION"
    OBJECT_LOCALIZATION = "OBJECT_LOCALIZATION"
    WEB_DETECTION = "WEB_DETECTION"
    TEXT_DETECTION = "TEXT_DETECTION"


class _ProviderModel(BaseModel):
    class Config:
        populate_by_name = True
        frozen = True


class Vertex(_ProviderModel):
    """Polygon vertex. The provider omits zero coordinates."""
    x: float = 0.0
    y: float = 0.0


class BoundingPoly(_ProviderModel):
    vertices: List[Vertex] = Field(default_factory=list)
    normalized_vertices: List[Vertex] = Field(default_factory=list, alias="normalizedVertices")

    def points(self) -> List[Vertex]:
        """Normalized vertices. Pixel ``vertices`` are never mixed in."""
        return self.normalized_vertices


class LabelAnnotation(_ProviderModel):
    description: str
    score: float


class LocalizedObjectAnnotation(_ProviderModel):
    name: str
    score: float
    bounding_poly: BoundingPoly = Field(..., alias="boundingPoly")


class WebEntity(_ProviderModel):
    description: Optional[str] = None
    score: float = 0.0


class BestGuessLabel(_ProviderModel):
    label: str


class WebPage(_ProviderModel):
    url: Optional[str] = None
    page_title: Optional[str] = Field(None, alias="pageTitle")


class WebDetection(_ProviderModel):
    web_entities: List[WebEntity] = Field(default_factory=list, alias="webEntities")
    best_guess_labels: List[BestGuessLabel] = Field(default_factory=list, alias="bestGuessLabels")
    pages_with_matching_images: List[WebPage] = Field(
        default_factory=list, alias="pagesWithMatchingImages"
    )


class TextAnnotation(_ProviderModel):
    description: str
    bounding_poly: Optional[BoundingPoly] = Field(None, alias="boundingPoly")


class Status(_ProviderModel):
    code: int = 0
    message: str = ""


class AnnotateImageResponse(_ProviderModel):
    """One entry of the ``responses`` array."""
    label_annotations: List[LabelAnnotation] = Field(default_factory=list, alias="labelAnnotations")
    localized_object_annotations: List[LocalizedObjectAnnotation] = Field(
        default_factory=list, alias="localizedObjectAnnotations"
    )
    web_detection: Optional[WebDetection] = Field(None, alias="webDetection")
    text_annotations: List[TextAnnotation] = Field(default_factory=list, alias="textAnnotations")
    error: Optional[Status] = None


class BatchAnnotateImagesResponse(_ProviderModel):
    responses: List[AnnotateImageResponse]
