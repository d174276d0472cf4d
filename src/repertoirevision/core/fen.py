"""
FEN (Forsyth-Edwards Notation) utilities.

The recognizer only ever sees piece placement, so most helpers here work
on the board-only field. Grids are 8x8 lists of PieceClass with row 0
holding rank 8, matching the top-down order of a board image.
"""

from typing import Sequence

from repertoirevision.core.models import PieceClass


class FENValidationError(Exception):
    """Raised when a FEN board string cannot be parsed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
        self.message = message


# Valid piece characters
VALID_PIECES = set("KQRBNPkqrbnp")

STARTING_BOARD = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"
STARTING_FEN = f"{STARTING_BOARD} w KQkq - 0 1"

# Game state appended to recognized boards; side to move is not visible
RECOGNIZED_FEN_SUFFIX = " w KQkq -"

MAX_PIECES_PER_SIDE = 16
MAX_PAWNS_PER_SIDE = 8

Grid = list[list[PieceClass]]


def parse_fen_board(board: str) -> Grid:
    """
    Parse a board-only FEN into an 8x8 grid of piece classes.

    Accepts a full FEN too; only the first field is read. Squares beyond
    the 8x8 bounds are ignored.
    """
    grid: Grid = [[PieceClass.EMPTY] * 8 for _ in range(8)]
    row, col = 0, 0

    for char in get_piece_placement_only(board):
        if char == "/":
            row += 1
            col = 0
        elif char.isdigit():
            col += int(char)
        elif char in VALID_PIECES:
            if row < 8 and col < 8:
                grid[row][col] = PieceClass.from_fen_char(char)
            col += 1
        else:
            raise FENValidationError(
                f"Invalid character '{char}' in board", field="placement"
            )

    return grid


def grid_to_fen(grid: Sequence[Sequence[PieceClass]]) -> str:
    """Convert an 8x8 grid of piece classes to a board-only FEN."""
    ranks = []

    for rank in grid:
        rank_str = ""
        empty_count = 0

        for piece in rank:
            if piece == PieceClass.EMPTY:
                empty_count += 1
            else:
                if empty_count > 0:
                    rank_str += str(empty_count)
                    empty_count = 0
                rank_str += piece.fen_char

        if empty_count > 0:
            rank_str += str(empty_count)

        ranks.append(rank_str)

    return "/".join(ranks)


def validate_board_structure(placement: str) -> tuple[bool, str | None]:
    """
    Check that a board could occur in a real game.

    Requires 64 squares, exactly one king per side, at most 16 pieces and
    8 pawns per side, and no pawns on the first or eighth rank.

    Returns:
        A tuple of (is_valid, error_message). If valid, error_message is None.
    """
    expanded = expand_board_fen(placement)
    if len(expanded) != 64:
        return False, f"Board must have 64 squares, got {len(expanded)}"

    counts: dict[str, int] = {}
    white_pieces = 0
    black_pieces = 0

    for idx, char in enumerate(expanded):
        if char == ".":
            continue
        if char not in VALID_PIECES:
            return False, f"Invalid character '{char}'"

        counts[char] = counts.get(char, 0) + 1
        if char.isupper():
            white_pieces += 1
        else:
            black_pieces += 1

        rank = 8 - idx // 8
        if char in "Pp" and rank in (1, 8):
            side = "white" if char == "P" else "black"
            return False, f"{side.capitalize()} pawn on rank {rank}"

    white_kings = counts.get("K", 0)
    black_kings = counts.get("k", 0)
    if white_kings != 1:
        return False, f"Must have exactly 1 white king, got {white_kings}"
    if black_kings != 1:
        return False, f"Must have exactly 1 black king, got {black_kings}"

    if white_pieces > MAX_PIECES_PER_SIDE:
        return False, f"Too many white pieces: {white_pieces}"
    if black_pieces > MAX_PIECES_PER_SIDE:
        return False, f"Too many black pieces: {black_pieces}"
    if counts.get("P", 0) > MAX_PAWNS_PER_SIDE:
        return False, f"Too many white pawns: {counts['P']}"
    if counts.get("p", 0) > MAX_PAWNS_PER_SIDE:
        return False, f"Too many black pawns: {counts['p']}"

    return True, None


def normalize_fen(fen: str) -> str:
    """
    Fill a partial FEN out to all six fields.

    Missing castling rights default to ``KQkq``; a chess engine drops any
    right the board cannot support. Does NOT validate.
    """
    parts = fen.strip().split()
    defaults = ["w", "KQkq", "-", "0", "1"]

    if parts and len(parts) < 6:
        parts.extend(defaults[len(parts) - 1:])

    return " ".join(parts)


def expand_board_fen(placement: str) -> str:
    """Expand a board into 64 characters, '.' marking empty squares."""
    result = []
    for char in get_piece_placement_only(placement):
        if char == "/":
            continue
        if char.isdigit():
            result.append("." * int(char))
        else:
            result.append(char)
    return "".join(result)


def count_board_diffs(board_a: str, board_b: str) -> int:
    """Number of squares that differ between two boards (64 if either is malformed)."""
    a = expand_board_fen(board_a)
    b = expand_board_fen(board_b)
    if len(a) != 64 or len(b) != 64:
        return 64
    return sum(1 for x, y in zip(a, b) if x != y)


def get_piece_placement_only(fen: str) -> str:
    """Extract just the piece placement field from a FEN string."""
    parts = fen.split()
    return parts[0] if parts else ""
