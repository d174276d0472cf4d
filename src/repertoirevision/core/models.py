"""
Data models for RepertoireVision.

This module defines the core data structures shared by the recognition
pipeline and the tree builder. Value objects are frozen dataclasses;
tree nodes are mutable only while the builder is assembling them.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, NamedTuple


class PieceClass(Enum):
    """Visual class of a single board cell."""
    EMPTY = "empty"
    W_PAWN = "w_pawn"
    W_KNIGHT = "w_knight"
    W_BISHOP = "w_bishop"
    W_ROOK = "w_rook"
    W_QUEEN = "w_queen"
    W_KING = "w_king"
    B_PAWN = "b_pawn"
    B_KNIGHT = "b_knight"
    B_BISHOP = "b_bishop"
    B_ROOK = "b_rook"
    B_QUEEN = "b_queen"
    B_KING = "b_king"

    @property
    def fen_char(self) -> str | None:
        """FEN letter for this class, or None for an empty cell."""
        return _CLASS_TO_FEN.get(self)

    @classmethod
    def from_fen_char(cls, char: str) -> "PieceClass":
        """Map a FEN piece letter to its class."""
        try:
            return _FEN_TO_CLASS[char]
        except KeyError:
            raise ValueError(f"Invalid FEN piece character: '{char}'") from None


_FEN_TO_CLASS: dict[str, PieceClass] = {
    "P": PieceClass.W_PAWN, "N": PieceClass.W_KNIGHT, "B": PieceClass.W_BISHOP,
    "R": PieceClass.W_ROOK, "Q": PieceClass.W_QUEEN, "K": PieceClass.W_KING,
    "p": PieceClass.B_PAWN, "n": PieceClass.B_KNIGHT, "b": PieceClass.B_BISHOP,
    "r": PieceClass.B_ROOK, "q": PieceClass.B_QUEEN, "k": PieceClass.B_KING,
}
_CLASS_TO_FEN: dict[PieceClass, str] = {v: k for k, v in _FEN_TO_CLASS.items()}


class SquareColor(Enum):
    """Color of the board square underneath a cell."""
    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def at(cls, row: int, col: int) -> "SquareColor":
        """Square color of a cell, row 0 being the top of the image."""
        return cls.LIGHT if (row + col) % 2 == 0 else cls.DARK


class CellKey(NamedTuple):
    """Identifies one reference template."""
    piece: PieceClass
    square_color: SquareColor


class CellSize(NamedTuple):
    """Pixel dimensions of one board cell before margin cropping."""
    height: int
    width: int


class Margins(NamedTuple):
    """Pixels cropped from each side of a cell to avoid grid lines."""
    y: int
    x: int


class RecognitionStatus(Enum):
    """How a recognition run ended."""
    COMPLETED = auto()   # Ran to the last frame
    NO_BOARD = auto()    # No board in the search window; nothing to classify
    CANCELLED = auto()   # Stopped early at the caller's request


class RepertoireColor(Enum):
    """Which side a repertoire is built for."""
    WHITE = "white"
    BLACK = "black"


@dataclass(frozen=True)
class Frame:
    """A still image extracted from the source video."""
    index: int  # Parsed from the filename, drives ordering
    path: str


@dataclass(frozen=True)
class BoardRegion:
    """Axis-aligned board rectangle in source image pixels."""
    x1: int
    y1: int
    x2: int
    y2: int
    score: float = 0.0  # Checkerboard-ness of the detection, 0.0 to 1.0

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict[str, Any]:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "score": self.score,
        }


@dataclass(frozen=True)
class RecognizedPosition:
    """
    The recognition result for a single frame.

    ``fen`` is empty and ``board_detected`` is False when the frame could
    not be read or the classification was malformed.
    """
    frame_index: int
    timestamp_seconds: float
    fen: str = ""
    confidence: float = 0.0
    board_detected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "frameIndex": self.frame_index,
            "timestampSeconds": self.timestamp_seconds,
            "fen": self.fen,
            "confidence": self.confidence,
            "boardDetected": self.board_detected,
        }


@dataclass(frozen=True)
class RecognitionResult:
    """Complete output of one recognition run."""
    status: RecognitionStatus
    positions: tuple[RecognizedPosition, ...] = field(default_factory=tuple)
    total_frames: int = 0
    frames_with_board: int = 0
    board_region: BoardRegion | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == RecognitionStatus.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.name.lower(),
            "positions": [p.to_dict() for p in self.positions],
            "totalFrames": self.total_frames,
            "framesWithBoard": self.frames_with_board,
            "boardRegion": self.board_region.to_dict() if self.board_region else None,
        }


@dataclass
class RepertoireNode:
    """
    One position in a reconstructed repertoire tree.

    The root has ``move`` and ``parent_id`` set to None. Every other node's
    FEN is reachable from its parent's FEN by exactly ``move``.
    """
    id: str
    fen: str                       # Board, turn, castling, en passant
    move: str | None               # SAN of the move leading here
    parent_id: str | None
    first_seen_timestamp: float
    frame_index: int
    move_number: int = 0
    color_to_move: str = "w"
    children: list["RepertoireNode"] = field(default_factory=list)

    @property
    def board_fen(self) -> str:
        return self.fen.split()[0]

    def find_child(self, move: str) -> "RepertoireNode | None":
        """Return the child reached by ``move``, if one exists."""
        for child in self.children:
            if child.move == move:
                return child
        return None

    def iter_nodes(self):
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fen": self.fen,
            "move": self.move,
            "moveNumber": self.move_number,
            "colorToMove": self.color_to_move,
            "parentId": self.parent_id,
            "firstSeenTimestamp": self.first_seen_timestamp,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class FrameProvenance:
    """Where in the source video a tree node was first shown."""
    frame_index: int
    timestamp_seconds: float


@dataclass(frozen=True)
class SkippedPosition:
    """A position that could not be connected to the tree."""
    frame_index: int
    fen: str
    reason: str


@dataclass(frozen=True)
class FilteredPosition:
    """A position rejected before tree construction."""
    frame_index: int
    fen: str
    filter: str  # "structural" or "continuity"
    reason: str


@dataclass
class TreeBuildLog:
    """Diagnostics collected while building a tree."""
    skipped: list[SkippedPosition] = field(default_factory=list)
    filtered: list[FilteredPosition] = field(default_factory=list)


@dataclass
class TreeBuildResult:
    """Output of the tree builder."""
    root: RepertoireNode | None
    color: RepertoireColor
    provenance: dict[str, FrameProvenance] = field(default_factory=dict)
    log: TreeBuildLog = field(default_factory=TreeBuildLog)

    @property
    def node_count(self) -> int:
        if self.root is None:
            return 0
        return sum(1 for _ in self.root.iter_nodes())

    def to_dict(self) -> dict[str, Any]:
        return {
            "color": self.color.value,
            "tree": self.root.to_dict() if self.root else None,
            "provenance": {
                node_id: {
                    "frameIndex": p.frame_index,
                    "timestampSeconds": p.timestamp_seconds,
                }
                for node_id, p in self.provenance.items()
            },
            "skipped": [
                {"frameIndex": s.frame_index, "fen": s.fen, "reason": s.reason}
                for s in self.log.skipped
            ],
            "filtered": [
                {
                    "frameIndex": f.frame_index,
                    "fen": f.fen,
                    "filter": f.filter,
                    "reason": f.reason,
                }
                for f in self.log.filtered
            ],
        }
