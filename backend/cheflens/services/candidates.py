"""Detection candidate types shared by the extractors and the orchestrator."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DetectionMode(str, Enum):
    """Recognition mode that produced a candidate."""
    LABEL = "label"
    OBJECT = "object"
    WEB = "web"
    TEXT = "text"


@dataclass(frozen=True)
class Candidate:
    """A single scored ingredient name from one recognition mode."""
    name: str  # Display (translated) name
    score: float
    source_mode: DetectionMode
    source_name: Optional[str] = None  # Untranslated provider string

    def with_score(self, score: float) -> "Candidate":
        return Candidate(
            name=self.name,
            score=score,
            source_mode=self.source_mode,
            source_name=self.source_name,
        )
