"""
Reference template calibration from a known starting position.

The first board found in a video is assumed to show the standard starting
position. Its 64 cells become labelled samples: averaging them yields one
template per (piece class, square color) seen, and the brightness gap
between empty light and empty dark squares fills in the square colors
the starting position never shows. The assumption is not verified; if
the first board is not the starting position the templates are silently
wrong.
"""

from collections.abc import Iterator
import logging

import cv2
import numpy as np
from numpy.typing import NDArray

from repertoirevision.core.fen import STARTING_BOARD, parse_fen_board
from repertoirevision.core.models import (
    CellKey,
    CellSize,
    Margins,
    PieceClass,
    SquareColor,
)


logger = logging.getLogger(__name__)


def compute_cell_geometry(board: NDArray[np.uint8]) -> tuple[CellSize, Margins]:
    """Cell size of an 8x8 board image and the per-side crop margins."""
    h, w = board.shape[:2]
    cell_size = CellSize(h // 8, w // 8)
    margins = Margins(max(1, cell_size.height // 8), max(1, cell_size.width // 8))
    return cell_size, margins


def crop_cell(
    board: NDArray[np.uint8],
    row: int,
    col: int,
    cell_size: CellSize,
    margins: Margins,
) -> NDArray[np.uint8]:
    """Margin-cropped view of one cell; row 0 is the top of the image."""
    y1 = row * cell_size.height + margins.y
    y2 = (row + 1) * cell_size.height - margins.y
    x1 = col * cell_size.width + margins.x
    x2 = (col + 1) * cell_size.width - margins.x
    return board[y1:y2, x1:x2]


class ReferenceTemplateSet:
    """
    Averaged cell templates keyed by (piece class, square color).

    Templates are float32 arrays of one shared shape. The set is built
    once per run and is read-only afterwards; use it as a context manager
    or call close() to drop the arrays when the run ends.
    """

    def __init__(self, templates: dict[CellKey, NDArray[np.float32]]) -> None:
        self._templates = dict(templates)
        first = next(iter(self._templates.values()), None)
        self._shape: tuple[int, int] = first.shape if first is not None else (0, 0)

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, cols) shared by every template."""
        return self._shape

    @property
    def closed(self) -> bool:
        return not self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, key: object) -> bool:
        return key in self._templates

    def __getitem__(self, key: CellKey) -> NDArray[np.float32]:
        return self._templates[key]

    def keys(self):
        return self._templates.keys()

    def items_for(
        self, square_color: SquareColor
    ) -> Iterator[tuple[CellKey, NDArray[np.float32]]]:
        """Templates of one square color, in insertion order."""
        for key, template in self._templates.items():
            if key.square_color == square_color:
                yield key, template

    def close(self) -> None:
        """Release template memory."""
        self._templates.clear()

    def __enter__(self) -> "ReferenceTemplateSet":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class TemplateCalibrator:
    """Builds reference templates from a board assumed to be in a known position."""

    def calibrate(
        self,
        board_image: NDArray[np.uint8],
        assumed_fen: str = STARTING_BOARD,
    ) -> tuple[ReferenceTemplateSet, CellSize, Margins]:
        """
        Build the reference template set from one board crop.

        Args:
            board_image: Grayscale crop of the detected board region
            assumed_fen: Position the crop is assumed to show

        Returns:
            Tuple of (templates, cell size, margins). The same cell size and
            margins must be used when matching later frames.
        """
        cell_size, margins = compute_cell_geometry(board_image)
        samples = self._collect_samples(board_image, assumed_fen, cell_size, margins)

        averages = {
            key: self._average(cells)
            for key, cells in samples.items()
        }
        averages = {k: v for k, v in averages.items() if v is not None}

        delta = self._brightness_delta(averages)
        templates = self._synthesize_missing(averages, delta)

        logger.info(
            f"Calibrated {len(templates)} templates from {len(averages)} observed "
            f"(cell {cell_size.height}x{cell_size.width}, delta {delta:.1f})"
        )
        return ReferenceTemplateSet(templates), cell_size, margins

    def _collect_samples(
        self,
        board: NDArray[np.uint8],
        assumed_fen: str,
        cell_size: CellSize,
        margins: Margins,
    ) -> dict[CellKey, list[NDArray[np.uint8]]]:
        """Group all 64 cells by (piece class, square color)."""
        grid = parse_fen_board(assumed_fen)
        samples: dict[CellKey, list[NDArray[np.uint8]]] = {}

        for row in range(8):
            for col in range(8):
                key = CellKey(grid[row][col], SquareColor.at(row, col))
                cell = crop_cell(board, row, col, cell_size, margins)
                samples.setdefault(key, []).append(cell)

        return samples

    def _average(self, cells: list[NDArray[np.uint8]]) -> NDArray[np.float32] | None:
        """Pixel-wise mean of samples, resized to the first sample's shape."""
        cells = [c for c in cells if c.size > 0]
        if not cells:
            return None

        rows, cols = cells[0].shape[:2]
        total = np.zeros((rows, cols), dtype=np.float64)

        for cell in cells:
            if cell.shape[:2] != (rows, cols):
                cell = cv2.resize(cell, (cols, rows), interpolation=cv2.INTER_LINEAR)
            total += cell

        return (total / len(cells)).astype(np.float32)

    def _brightness_delta(self, averages: dict[CellKey, NDArray[np.float32]]) -> float:
        """Mean(empty light) minus mean(empty dark), or 0 if either is missing."""
        light = averages.get(CellKey(PieceClass.EMPTY, SquareColor.LIGHT))
        dark = averages.get(CellKey(PieceClass.EMPTY, SquareColor.DARK))
        if light is None or dark is None:
            return 0.0
        return float(light.mean()) - float(dark.mean())

    def _synthesize_missing(
        self,
        averages: dict[CellKey, NDArray[np.float32]],
        delta: float,
    ) -> dict[CellKey, NDArray[np.float32]]:
        """Add the square-color variant each piece class is missing."""
        templates = dict(averages)
        # Board order, so template iteration is stable between runs
        pieces = list(dict.fromkeys(key.piece for key in averages))

        for piece in pieces:
            light_key = CellKey(piece, SquareColor.LIGHT)
            dark_key = CellKey(piece, SquareColor.DARK)

            if light_key in averages and dark_key not in averages:
                synth = np.clip(averages[light_key] - delta, 0, 255)
                templates[dark_key] = synth.astype(np.float32)
            elif dark_key in averages and light_key not in averages:
                synth = np.clip(averages[dark_key] + delta, 0, 255)
                templates[light_key] = synth.astype(np.float32)

        return templates
