"""
Nearest-template piece classification.

Every cell of a board crop is compared with the reference templates of
its square color using a normalized inverse mean-squared error, and the
best-scoring template's piece class wins. There is no learning step; the
result depends only on the similarity metric and the calibration.
"""

import logging

import cv2
import numpy as np
from numpy.typing import NDArray

from repertoirevision.core.fen import grid_to_fen
from repertoirevision.core.models import CellSize, Margins, PieceClass, SquareColor
from repertoirevision.recognition.templates import ReferenceTemplateSet, crop_cell


logger = logging.getLogger(__name__)

MAX_SQUARED_ERROR = 255.0 * 255.0


def compute_inverse_mse(a: NDArray, b: NDArray) -> float:
    """
    Similarity of two pixel vectors: ``1 - mean((a - b)^2) / 255^2``.

    Identical inputs score 1.0; all-0 against all-255 scores 0.0. If the
    lengths differ only the common prefix is compared. Empty input scores 0.
    """
    a = np.asarray(a, dtype=np.float32).ravel()
    b = np.asarray(b, dtype=np.float32).ravel()

    n = min(a.size, b.size)
    if n == 0:
        return 0.0

    diff = a[:n] - b[:n]
    mse = float(np.mean(diff * diff))
    return 1.0 - mse / MAX_SQUARED_ERROR


class PieceMatcher:
    """Classifies all 64 cells of a board image against reference templates."""

    def recognize(
        self,
        board_image: NDArray[np.uint8],
        templates: ReferenceTemplateSet,
        cell_size: CellSize,
        margins: Margins,
    ) -> str:
        """
        Classify every cell and return the board-only FEN.

        Args:
            board_image: Grayscale crop of the board region
            templates: Calibrated reference templates
            cell_size: Cell size from calibration
            margins: Crop margins from calibration

        Returns:
            FEN piece placement, e.g. "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR"
        """
        grid = [
            [
                self.classify_cell(
                    crop_cell(board_image, row, col, cell_size, margins),
                    SquareColor.at(row, col),
                    templates,
                )
                for col in range(8)
            ]
            for row in range(8)
        ]
        return grid_to_fen(grid)

    def classify_cell(
        self,
        cell: NDArray[np.uint8],
        square_color: SquareColor,
        templates: ReferenceTemplateSet,
    ) -> PieceClass:
        """Piece class of the best-matching template for one cell."""
        if cell.size == 0:
            return PieceClass.EMPTY

        cell_f = cell.astype(np.float32)
        rows, cols = cell_f.shape[:2]

        best_score = -2.0
        best_piece = PieceClass.EMPTY

        for key, reference in templates.items_for(square_color):
            if reference.shape[:2] != (rows, cols):
                reference = cv2.resize(
                    reference, (cols, rows), interpolation=cv2.INTER_LINEAR
                )

            score = compute_inverse_mse(cell_f, reference)
            if score > best_score:
                best_score = score
                best_piece = key.piece

        return best_piece
