"""
RepertoireVision - Opening repertoire reconstruction from chess videos

This package provides:
- Calibration-free chessboard localization in extracted video frames
- Piece recognition from templates learned on the starting position
- Branching move tree reconstruction from the recognized positions
"""

__version__ = "0.1.0"
__author__ = "RepertoireVision Contributors"

from repertoirevision.core.models import (
    RecognizedPosition,
    RecognitionResult,
    RecognitionStatus,
    RepertoireNode,
    TreeBuildResult,
)
from repertoirevision.core.interfaces import CancellationToken
from repertoirevision.orchestrator.pipeline import RecognitionConfig, RecognitionPipeline
from repertoirevision.tree.builder import PositionTreeBuilder, TreeBuilderOptions

__all__ = [
    "CancellationToken",
    "PositionTreeBuilder",
    "RecognitionConfig",
    "RecognitionPipeline",
    "RecognitionResult",
    "RecognitionStatus",
    "RecognizedPosition",
    "RepertoireNode",
    "TreeBuildResult",
    "TreeBuilderOptions",
    "__version__",
]
