"""Preprocessing module for frame enumeration and board localization."""

from repertoirevision.preprocessing.board_locator import BoardLocator, checkerboard_score
from repertoirevision.preprocessing.frames import FrameCatalog

__all__ = ["BoardLocator", "FrameCatalog", "checkerboard_score"]
