"""SiBCS Classifier: rule-based Brazilian soil order classification."""

__version__ = "0.1.0"

from sibcs_classifier.engine import ClassificationService, build_snapshot, classify
from sibcs_classifier.models import (
    ClassificationOutcome,
    ClassificationRequest,
    ClassificationResult,
    SoilOrder,
    TriState,
)

__all__ = [
    "ClassificationOutcome",
    "ClassificationRequest",
    "ClassificationResult",
    "ClassificationService",
    "SoilOrder",
    "TriState",
    "build_snapshot",
    "classify",
]
