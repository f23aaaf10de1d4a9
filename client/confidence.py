"""Display buckets for extraction confidence scores."""

import enum
from dataclasses import dataclass
from typing import Mapping


class ConfidenceLevel(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True)
class ConfidencePolicy:
    """Buckets a score in [0, 1]. Display only; never gates a value."""

    high: float = 0.85
    medium: float = 0.6

    def __post_init__(self):
        if not 0.0 <= self.medium <= self.high <= 1.0:
            raise ValueError("thresholds must satisfy 0 <= medium <= high <= 1")

    def level(self, score: float) -> ConfidenceLevel:
        if score > self.high:
            return ConfidenceLevel.HIGH
        if score > self.medium:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def levels(self, confidence: Mapping[str, float]) -> dict[str, ConfidenceLevel]:
        return {field: self.level(score) for field, score in confidence.items()}

    @staticmethod
    def describe(confidence: Mapping[str, float]) -> str:
        """``"vendor: 90%, contractTitle: 80%"``."""
        return ", ".join(f"{field}: {round(score * 100)}%" for field, score in confidence.items())
