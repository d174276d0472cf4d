"""Enumeration of extracted video frames on disk."""

import logging
import os
import re
from pathlib import Path

from repertoirevision.core.errors import FrameDirectoryError
from repertoirevision.core.models import Frame


logger = logging.getLogger(__name__)

FRAME_PATTERN = re.compile(r"^frame_(\d+)\.(png|jpg|jpeg)$")


class FrameCatalog:
    """
    Lists the frame images of one video in playback order.

    Files must be named ``frame_<digits>.<png|jpg|jpeg>``. Anything else,
    including subdirectories, is ignored. Ordering uses the parsed number,
    so ``frame_3`` comes before ``frame_10``.
    """

    def __init__(self, frames_dir: str | Path) -> None:
        self._frames_dir = Path(frames_dir)

    @property
    def frames_dir(self) -> Path:
        return self._frames_dir

    def list_frames(self) -> list[Frame]:
        """Return all frames sorted by index."""
        try:
            entries = list(os.scandir(self._frames_dir))
        except OSError as e:
            raise FrameDirectoryError(str(self._frames_dir), e) from e

        frames = []
        for entry in entries:
            if entry.is_dir():
                continue
            match = FRAME_PATTERN.match(entry.name)
            if match is None:
                continue
            frames.append(Frame(index=int(match.group(1)), path=entry.path))

        frames.sort(key=lambda f: f.index)
        logger.debug(f"Found {len(frames)} frames in {self._frames_dir}")
        return frames
