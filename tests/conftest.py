"""
Pytest configuration and fixtures for RepertoireVision tests.
"""

from pathlib import Path
from typing import Callable

import cv2
import numpy as np
import pytest

from repertoirevision.core.fen import RECOGNIZED_FEN_SUFFIX, parse_fen_board
from repertoirevision.core.models import BoardRegion, PieceClass, RecognizedPosition


LIGHT_SQUARE = 200
DARK_SQUARE = 100
WHITE_PIECE = 250
BLACK_PIECE = 15

BOARD_ORIGIN = (40, 40)   # x, y of the board's top-left corner
SQUARE_SIZE = 40
CANVAS_SIZE = (400, 480)  # height, width


def _draw_piece(image: np.ndarray, piece: PieceClass, x: int, y: int, size: int) -> None:
    """Draw a distinct flat glyph for each piece type inside one square."""
    color = WHITE_PIECE if piece.value.startswith("w_") else BLACK_PIECE
    kind = piece.value[2:]
    cx, cy = x + size // 2, y + size // 2
    q = size // 4

    if kind == "pawn":
        cv2.circle(image, (cx, cy), size // 6, color, -1)
    elif kind == "knight":
        pts = np.array([[cx, y + q], [x + 3 * q, y + 3 * q], [x + q, y + 3 * q]], np.int32)
        cv2.fillPoly(image, [pts], color)
    elif kind == "bishop":
        pts = np.array([[cx, y + q], [x + 3 * q, cy], [cx, y + 3 * q], [x + q, cy]], np.int32)
        cv2.fillPoly(image, [pts], color)
    elif kind == "rook":
        cv2.rectangle(image, (x + q, y + q), (x + 3 * q, y + 3 * q), color, -1)
    elif kind == "queen":
        cv2.circle(image, (cx, cy), size // 3, color, -1)
    elif kind == "king":
        cv2.rectangle(image, (cx - 3, y + q), (cx + 3, y + 3 * q), color, -1)
        cv2.rectangle(image, (x + q, cy - 3), (x + 3 * q, cy + 3), color, -1)


def draw_board(
    fen_board: str,
    origin: tuple[int, int] = BOARD_ORIGIN,
    square: int = SQUARE_SIZE,
    canvas: tuple[int, int] = CANVAS_SIZE,
    background: int = 60,
) -> np.ndarray:
    """Render a grayscale frame with a flat 2D board showing ``fen_board``."""
    image = np.full(canvas, background, dtype=np.uint8)
    grid = parse_fen_board(fen_board)
    ox, oy = origin

    for row in range(8):
        for col in range(8):
            x = ox + col * square
            y = oy + row * square
            value = LIGHT_SQUARE if (row + col) % 2 == 0 else DARK_SQUARE
            image[y:y + square, x:x + square] = value

            piece = grid[row][col]
            if piece != PieceClass.EMPTY:
                _draw_piece(image, piece, x, y, square)

    return image


def board_region_for(
    origin: tuple[int, int] = BOARD_ORIGIN, square: int = SQUARE_SIZE
) -> BoardRegion:
    ox, oy = origin
    return BoardRegion(ox, oy, ox + 8 * square, oy + 8 * square, score=1.0)


class FixedLocator:
    """Locator stand-in that always reports the same region."""

    def __init__(self, region: BoardRegion | None) -> None:
        self.region = region
        self.calls = 0

    def locate(self, image: np.ndarray) -> tuple[BoardRegion | None, float]:
        self.calls += 1
        if self.region is None:
            return None, 0.0
        return self.region, self.region.score


@pytest.fixture
def render_board() -> Callable[..., np.ndarray]:
    """Renderer for synthetic board frames."""
    return draw_board


@pytest.fixture
def board_region() -> BoardRegion:
    """Exact region of boards drawn by ``render_board`` with default arguments."""
    return board_region_for()


@pytest.fixture
def fixed_locator(board_region: BoardRegion) -> FixedLocator:
    return FixedLocator(board_region)


@pytest.fixture
def write_frames(tmp_path: Path) -> Callable[[list[np.ndarray]], Path]:
    """Write images as frame_0.png, frame_1.png, ... and return the directory."""

    def _write(images: list[np.ndarray], start: int = 0) -> Path:
        frames_dir = tmp_path / "frames"
        frames_dir.mkdir(exist_ok=True)
        for offset, image in enumerate(images):
            cv2.imwrite(str(frames_dir / f"frame_{start + offset}.png"), image)
        return frames_dir

    return _write


@pytest.fixture
def make_position() -> Callable[..., RecognizedPosition]:
    """Factory for detected positions with the recognizer's FEN suffix."""

    def _make(
        frame_index: int,
        board: str,
        suffix: str = RECOGNIZED_FEN_SUFFIX,
        detected: bool = True,
    ) -> RecognizedPosition:
        return RecognizedPosition(
            frame_index=frame_index,
            timestamp_seconds=float(frame_index),
            fen=board + suffix if detected else "",
            confidence=1.0 if detected else 0.0,
            board_detected=detected,
        )

    return _make


@pytest.fixture
def starting_board() -> str:
    """The standard chess starting position, board field only."""
    return "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"
