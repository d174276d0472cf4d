"""Move tree reconstruction from recognized positions."""

from repertoirevision.tree.builder import (
    PositionTreeBuilder,
    TreeBuilderOptions,
    TreeState,
    find_legal_move,
)

__all__ = [
    "PositionTreeBuilder",
    "TreeBuilderOptions",
    "TreeState",
    "find_legal_move",
]
