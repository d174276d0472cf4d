"""Template-based piece recognition."""

from repertoirevision.recognition.change import ChangeDetector
from repertoirevision.recognition.matcher import PieceMatcher, compute_inverse_mse
from repertoirevision.recognition.templates import (
    ReferenceTemplateSet,
    TemplateCalibrator,
)

__all__ = [
    "ChangeDetector",
    "PieceMatcher",
    "ReferenceTemplateSet",
    "TemplateCalibrator",
    "compute_inverse_mse",
]
