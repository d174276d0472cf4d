"""
Branching move tree reconstruction from recognized positions.

Commentary videos rarely play a single line straight through: they show
a continuation, rewind to an earlier position, and show an alternative.
The builder walks the recognized positions in time order with a cursor
on the tree and, for each new board, applies the first rule that fits:

1. Continuation: one legal move from the cursor reaches the board.
   Append a child (or follow an existing child for that move).
2. Backtracking: the board was seen before. Move the cursor there.
3. Gap: neither. Drop the position and leave the cursor alone.

Nodes live in an id-keyed arena; the cursor and the visited index refer
to nodes by id. Transpositions are not merged.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
import logging
import uuid

import chess

from repertoirevision.core.fen import (
    count_board_diffs,
    get_piece_placement_only,
    normalize_fen,
    validate_board_structure,
)
from repertoirevision.core.models import (
    FilteredPosition,
    FrameProvenance,
    RecognizedPosition,
    RepertoireColor,
    RepertoireNode,
    SkippedPosition,
    TreeBuildLog,
    TreeBuildResult,
)


logger = logging.getLogger(__name__)


@dataclass
class TreeBuilderOptions:
    """Pre-filters applied before the tree is built."""
    enable_structural_filter: bool = True
    enable_continuity_filter: bool = False
    continuity_max_diff: int = 6  # Squares allowed to change between accepted boards


@dataclass
class TreeState:
    """
    Mutable state threaded through the reconstruction.

    Invariants: ``cursor_id`` always names a node in ``nodes``; entries in
    ``visited`` are never removed or overwritten.
    """
    nodes: dict[str, RepertoireNode]
    cursor_id: str
    visited: dict[str, str] = field(default_factory=dict)  # board FEN -> node id

    @property
    def cursor(self) -> RepertoireNode:
        return self.nodes[self.cursor_id]


def _new_id() -> str:
    return str(uuid.uuid4())


def _color_to_move(board: chess.Board) -> str:
    return "w" if board.turn == chess.WHITE else "b"


def _next_move_number(parent: RepertoireNode) -> int:
    """
    Full-move number of a move played from ``parent``.

    Node FENs carry no move counters, so numbering is relative to the
    root, whose position counts as move 1.
    """
    if parent.parent_id is None:
        return 1
    return parent.move_number + (1 if parent.color_to_move == "w" else 0)


def find_legal_move(from_fen: str, target_board: str) -> tuple[str, chess.Board] | None:
    """
    Find the single legal move turning ``from_fen`` into ``target_board``.

    Args:
        from_fen: Position to move from (missing fields are filled in)
        target_board: Piece placement to reach

    Returns:
        Tuple of (SAN move, resulting board), or None if no legal move
        produces the target or the source FEN cannot be parsed.
    """
    try:
        board = chess.Board(normalize_fen(from_fen))
    except ValueError:
        return None

    for move in board.legal_moves:
        board.push(move)
        reached = board.board_fen() == target_board
        board.pop()

        if reached:
            san = board.san(move)
            after = board.copy(stack=False)
            after.push(move)
            return san, after

    return None


class PositionTreeBuilder:
    """
    Builds a repertoire tree from a time-ordered list of recognized positions.

    Never raises for odd input: every position is consumed as a
    continuation or backtrack, or recorded as skipped.
    """

    def __init__(
        self,
        options: TreeBuilderOptions | None = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._options = options or TreeBuilderOptions()
        self._new_id = id_factory

    @property
    def options(self) -> TreeBuilderOptions:
        return self._options

    def build(self, positions: Iterable[RecognizedPosition]) -> TreeBuildResult:
        """
        Reconstruct the move tree.

        Positions without a detected board are ignored. The root is the
        first remaining position after filtering and deduplication.

        Returns:
            TreeBuildResult; its root is None only when no usable position
            exists at all.
        """
        log = TreeBuildLog()
        detected = [p for p in positions if p.board_detected and p.fen]

        filtered = self.filter_positions(detected, log)
        deduped = self.deduplicate_consecutive(filtered)

        if not deduped:
            return TreeBuildResult(root=None, color=RepertoireColor.WHITE, log=log)

        root = self._create_root(deduped[0])
        state = TreeState(nodes={root.id: root}, cursor_id=root.id)
        state.visited[root.board_fen] = root.id
        provenance = {
            root.id: FrameProvenance(deduped[0].frame_index, deduped[0].timestamp_seconds)
        }

        for position in deduped[1:]:
            state = self._step(state, position, provenance, log)

        color = (
            RepertoireColor.WHITE if root.color_to_move == "w" else RepertoireColor.BLACK
        )
        logger.info(
            f"Built tree with {len(state.nodes)} nodes from {len(deduped)} positions "
            f"({len(log.skipped)} skipped, {len(log.filtered)} filtered)"
        )
        return TreeBuildResult(root=root, color=color, provenance=provenance, log=log)

    def filter_positions(
        self,
        positions: list[RecognizedPosition],
        log: TreeBuildLog,
    ) -> list[RecognizedPosition]:
        """
        Drop structurally impossible or discontinuous boards.

        If every position is rejected the input is returned unchanged, so a
        run always has something to build from.
        """
        opts = self._options
        if not (opts.enable_structural_filter or opts.enable_continuity_filter):
            return list(positions)

        accepted: list[RecognizedPosition] = []
        last_board: str | None = None

        for position in positions:
            board = get_piece_placement_only(position.fen)

            if opts.enable_structural_filter:
                valid, reason = validate_board_structure(board)
                if not valid:
                    log.filtered.append(FilteredPosition(
                        position.frame_index, position.fen, "structural", reason or ""
                    ))
                    continue

            if opts.enable_continuity_filter and last_board is not None:
                diff = count_board_diffs(last_board, board)
                if diff > opts.continuity_max_diff:
                    log.filtered.append(FilteredPosition(
                        position.frame_index, position.fen, "continuity",
                        f"too many diffs: {diff} (max {opts.continuity_max_diff})",
                    ))
                    continue

            last_board = board
            accepted.append(position)

        if positions and not accepted:
            logger.warning("All positions rejected by filters; using unfiltered input")
            return list(positions)

        return accepted

    @staticmethod
    def deduplicate_consecutive(
        positions: list[RecognizedPosition],
    ) -> list[RecognizedPosition]:
        """Collapse runs of the same board, keeping the earliest frame of each run."""
        result: list[RecognizedPosition] = []
        prev_board: str | None = None

        for position in positions:
            board = get_piece_placement_only(position.fen)
            if board != prev_board:
                result.append(position)
                prev_board = board

        return result

    def _create_root(self, position: RecognizedPosition) -> RepertoireNode:
        """Root node from the first position, taking side to move from its FEN."""
        try:
            board = chess.Board(normalize_fen(position.fen))
            fen = board.epd()
            color_to_move = _color_to_move(board)
        except ValueError:
            fields = position.fen.split()
            fen = " ".join(fields[:4])
            color_to_move = "b" if len(fields) > 1 and fields[1] == "b" else "w"

        return RepertoireNode(
            id=self._new_id(),
            fen=fen,
            move=None,
            parent_id=None,
            first_seen_timestamp=position.timestamp_seconds,
            frame_index=position.frame_index,
            move_number=0,
            color_to_move=color_to_move,
        )

    def _step(
        self,
        state: TreeState,
        position: RecognizedPosition,
        provenance: dict[str, FrameProvenance],
        log: TreeBuildLog,
    ) -> TreeState:
        """Apply one position to the tree: continue, backtrack, or skip."""
        target = get_piece_placement_only(position.fen)
        cursor = state.cursor

        found = find_legal_move(cursor.fen, target)
        if found is not None:
            san, after = found
            child = cursor.find_child(san)

            if child is None:
                child = RepertoireNode(
                    id=self._new_id(),
                    fen=after.epd(),
                    move=san,
                    parent_id=cursor.id,
                    first_seen_timestamp=position.timestamp_seconds,
                    frame_index=position.frame_index,
                    move_number=_next_move_number(cursor),
                    color_to_move=_color_to_move(after),
                )
                cursor.children.append(child)
                state.nodes[child.id] = child
                provenance[child.id] = FrameProvenance(
                    position.frame_index, position.timestamp_seconds
                )
                logger.debug(f"Frame {position.frame_index}: {san} after {cursor.move or 'root'}")

            state.visited.setdefault(target, child.id)
            state.cursor_id = child.id
            return state

        node_id = state.visited.get(target)
        if node_id is not None:
            logger.debug(f"Frame {position.frame_index}: back to {state.nodes[node_id].move or 'root'}")
            state.cursor_id = node_id
            return state

        logger.debug(f"Frame {position.frame_index}: no move from cursor, skipped")
        log.skipped.append(SkippedPosition(
            position.frame_index, position.fen, "no legal move from current position"
        ))
        return state
