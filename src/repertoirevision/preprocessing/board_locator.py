"""
Calibration-free chessboard localization in video frames.

Finds the axis-aligned square that looks most like an 8x8 checkerboard by
sliding candidate windows over a grayscale frame at several scales, then
grows the winner to the full board when only its interior was found.
"""

from typing import Sequence
import logging

import numpy as np
from numpy.typing import NDArray

from repertoirevision.core.models import BoardRegion


logger = logging.getLogger(__name__)

# Detection parameters
DEFAULT_SCALES = (0.8, 0.6, 0.5, 0.4, 0.3)  # Fractions of the shorter image side
MIN_CANDIDATE_SIZE = 100   # Candidate windows smaller than this are not scanned
MIN_CELL_SIZE = 5          # Grid cells smaller than this score 0
CONTRAST_THRESHOLD = 20    # Mean-intensity difference counted as a color change
DETECTION_THRESHOLD = 0.3  # Minimum checkerboard score for a board

# Refinement parameters
REFINE_CELL_COUNTS = range(4, 8)  # How many cells the coarse hit may span
REFINE_MIN_CELL_SIZE = 10
REFINE_SEARCH_CELLS = 1.5         # Translation search radius, in cells


def checkerboard_score(
    region: NDArray[np.uint8],
    contrast_threshold: float = CONTRAST_THRESHOLD,
) -> float:
    """
    Score how much a grayscale region looks like a checkerboard.

    The region is split into an 8x8 grid and the mean intensity of each
    cell compared with its right and lower neighbours. The score is the
    fraction of those 112 adjacent pairs whose difference exceeds
    ``contrast_threshold``.

    Returns:
        A score between 0.0 (uniform) and 1.0 (perfectly alternating)
    """
    h, w = region.shape[:2]
    cell_h = h // 8
    cell_w = w // 8

    if cell_h < MIN_CELL_SIZE or cell_w < MIN_CELL_SIZE:
        return 0.0

    grid = region[:cell_h * 8, :cell_w * 8].astype(np.float32)
    means = grid.reshape(8, cell_h, 8, cell_w).mean(axis=(1, 3))

    horizontal = np.abs(np.diff(means, axis=1)) > contrast_threshold
    vertical = np.abs(np.diff(means, axis=0)) > contrast_threshold

    total = horizontal.size + vertical.size
    return float(horizontal.sum() + vertical.sum()) / total


class BoardLocator:
    """
    Locates a chessboard in a grayscale frame at unknown scale and position.

    Pipeline:
    1. Slide square windows at each scale with a quarter-size step
    2. Keep the window with the highest checkerboard score
    3. Reject if the best score does not exceed the detection threshold
    4. Try to expand the hit to the full 8x8 board
    """

    def __init__(
        self,
        scales: Sequence[float] = DEFAULT_SCALES,
        min_candidate_size: int = MIN_CANDIDATE_SIZE,
        contrast_threshold: float = CONTRAST_THRESHOLD,
        detection_threshold: float = DETECTION_THRESHOLD,
    ):
        self.scales = tuple(scales)
        self.min_candidate_size = min_candidate_size
        self.contrast_threshold = contrast_threshold
        self.detection_threshold = detection_threshold

    def locate(self, image: NDArray[np.uint8]) -> tuple[BoardRegion | None, float]:
        """
        Find the board in a grayscale image.

        Args:
            image: Single-channel 8-bit image

        Returns:
            Tuple of (region, score). Region is None and score 0.0 when no
            candidate scores above the detection threshold.
        """
        best_region, best_score = self._scan(image)

        if best_region is None or best_score <= self.detection_threshold:
            return None, 0.0

        refined = self._refine(image, best_region, best_score)
        if refined is not None:
            logger.debug(
                f"Refined board {best_region.width}px -> {refined.width}px "
                f"at ({refined.x1}, {refined.y1})"
            )
            return refined, refined.score

        region = BoardRegion(
            best_region.x1, best_region.y1, best_region.x2, best_region.y2,
            score=best_score,
        )
        return region, best_score

    def _scan(self, image: NDArray[np.uint8]) -> tuple[BoardRegion | None, float]:
        """Coarse multi-scale sliding-window search."""
        h, w = image.shape[:2]
        min_dim = min(h, w)

        best_region: BoardRegion | None = None
        best_score = 0.0

        for scale in self.scales:
            size = int(min_dim * scale)
            if size < self.min_candidate_size:
                continue

            step = max(1, size // 4)

            for y in range(0, h - size + 1, step):
                for x in range(0, w - size + 1, step):
                    window = image[y:y + size, x:x + size]
                    score = checkerboard_score(window, self.contrast_threshold)

                    if score > best_score:
                        best_score = score
                        best_region = BoardRegion(x, y, x + size, y + size)

        return best_region, best_score

    def _refine(
        self,
        image: NDArray[np.uint8],
        region: BoardRegion,
        coarse_score: float,
    ) -> BoardRegion | None:
        """
        Expand a detection that covers only part of the board.

        The coarse scan often locks onto the empty middle ranks because
        they alternate cleanly. Assuming the hit spans 4 to 7 cells, this
        estimates the cell size and searches nearby translations for the
        best full 8x8 square. Returns None unless the result is larger and
        scores at least as well as the coarse hit.
        """
        h, w = image.shape[:2]
        cx = (region.x1 + region.x2) / 2.0
        cy = (region.y1 + region.y2) / 2.0

        best: BoardRegion | None = None
        best_score = -1.0

        for n_cells in REFINE_CELL_COUNTS:
            cell = region.width / n_cells
            if cell < REFINE_MIN_CELL_SIZE:
                continue

            full_size = int(round(cell * 8))
            search_range = int(cell * REFINE_SEARCH_CELLS)
            search_step = max(1, int(cell / 4))

            for dy in range(-search_range, search_range + 1, search_step):
                for dx in range(-search_range, search_range + 1, search_step):
                    x1 = int(round(cx + dx - full_size / 2.0))
                    y1 = int(round(cy + dy - full_size / 2.0))
                    x2 = x1 + full_size
                    y2 = y1 + full_size

                    if x1 < 0 or y1 < 0 or x2 > w or y2 > h:
                        continue

                    score = checkerboard_score(
                        image[y1:y2, x1:x2], self.contrast_threshold
                    )
                    if score > best_score:
                        best_score = score
                        best = BoardRegion(x1, y1, x2, y2)

        if best is None or best_score < max(self.detection_threshold, coarse_score):
            return None

        if best.area <= region.area:
            return None

        return BoardRegion(best.x1, best.y1, best.x2, best.y2, score=best_score)
