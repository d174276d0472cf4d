"""Core abstractions, data models, and utilities."""

from repertoirevision.core.models import (
    BoardRegion,
    CellKey,
    CellSize,
    Frame,
    FrameProvenance,
    Margins,
    PieceClass,
    RecognitionResult,
    RecognitionStatus,
    RecognizedPosition,
    RepertoireColor,
    RepertoireNode,
    SquareColor,
    TreeBuildLog,
    TreeBuildResult,
)
from repertoirevision.core.interfaces import (
    CancellationSource,
    CancellationToken,
    ProgressCallback,
)
from repertoirevision.core.errors import (
    FrameDirectoryError,
    NoFramesError,
    RecognitionError,
)
from repertoirevision.core.fen import (
    STARTING_BOARD,
    FENValidationError,
    grid_to_fen,
    parse_fen_board,
    validate_board_structure,
)

__all__ = [
    # Models
    "BoardRegion",
    "CellKey",
    "CellSize",
    "Frame",
    "FrameProvenance",
    "Margins",
    "PieceClass",
    "RecognitionResult",
    "RecognitionStatus",
    "RecognizedPosition",
    "RepertoireColor",
    "RepertoireNode",
    "SquareColor",
    "TreeBuildLog",
    "TreeBuildResult",
    # Interfaces
    "CancellationSource",
    "CancellationToken",
    "ProgressCallback",
    # Errors
    "FrameDirectoryError",
    "NoFramesError",
    "RecognitionError",
    # FEN utilities
    "STARTING_BOARD",
    "FENValidationError",
    "grid_to_fen",
    "parse_fen_board",
    "validate_board_structure",
]
