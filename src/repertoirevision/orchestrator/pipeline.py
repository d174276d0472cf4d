"""
Frame sequence to position sequence orchestration.

This module runs the recognition stages over one video's frames:
locate the board once, calibrate templates once, then classify every
frame, reusing the previous classification whenever the board crop has
not visibly changed. It is a single sequential scan with no shared state
between instances, so separate videos can be processed concurrently by
separate pipelines.
"""

from dataclasses import dataclass
from pathlib import Path
import logging

import cv2
import numpy as np
from numpy.typing import NDArray

from repertoirevision.core.errors import NoFramesError
from repertoirevision.core.fen import RECOGNIZED_FEN_SUFFIX, STARTING_BOARD
from repertoirevision.core.interfaces import CancellationSource, ProgressCallback
from repertoirevision.core.models import (
    BoardRegion,
    CellSize,
    Frame,
    Margins,
    RecognitionResult,
    RecognitionStatus,
    RecognizedPosition,
)
from repertoirevision.preprocessing.board_locator import BoardLocator
from repertoirevision.preprocessing.frames import FrameCatalog
from repertoirevision.recognition.change import ChangeDetector
from repertoirevision.recognition.matcher import PieceMatcher
from repertoirevision.recognition.templates import (
    ReferenceTemplateSet,
    TemplateCalibrator,
)


logger = logging.getLogger(__name__)

RANK_SEPARATORS = 7


@dataclass
class RecognitionConfig:
    """Tunable parameters for a recognition run."""
    board_search_limit: int = 10     # Frames searched for the board
    detection_threshold: float = 0.3
    change_threshold: float = 5.0    # Mean absolute difference, 8-bit scale
    progress_interval: int = 5       # Report every N frames and on the last
    frames_per_second: float = 1.0   # Extraction rate; timestamp = index / fps
    assumed_fen: str = STARTING_BOARD

    def __post_init__(self) -> None:
        if self.board_search_limit < 0:
            raise ValueError(
                f"board_search_limit must be >= 0, got {self.board_search_limit}"
            )
        if self.change_threshold < 0:
            raise ValueError(
                f"change_threshold must be >= 0, got {self.change_threshold}"
            )
        if self.progress_interval < 1:
            raise ValueError(
                f"progress_interval must be >= 1, got {self.progress_interval}"
            )
        if self.frames_per_second <= 0:
            raise ValueError(
                f"frames_per_second must be > 0, got {self.frames_per_second}"
            )


@dataclass
class _Calibration:
    """Board geometry and templates fixed for the whole run."""
    region: BoardRegion
    templates: ReferenceTemplateSet
    cell_size: CellSize
    margins: Margins


def read_grayscale(path: str) -> NDArray[np.uint8] | None:
    """Load an image as grayscale, or None if it cannot be decoded."""
    return cv2.imread(path, cv2.IMREAD_GRAYSCALE)


def crop_region(image: NDArray[np.uint8], region: BoardRegion) -> NDArray[np.uint8]:
    return image[region.y1:region.y2, region.x1:region.x2]


def is_well_formed_board(fen_board: str) -> bool:
    """Basic shape check on matcher output: non-empty with 8 ranks."""
    return bool(fen_board) and fen_board.count("/") == RANK_SEPARATORS


class RecognitionPipeline:
    """
    Turns a directory of extracted frames into recognized positions.

    Responsibilities:
    - Enumerate frames in index order
    - Find the board in the first few frames and fix its region
    - Calibrate templates assuming that frame shows the starting position
    - Classify each frame, skipping unchanged ones
    - Report progress and honour cancellation between frames
    """

    def __init__(
        self,
        config: RecognitionConfig | None = None,
        locator: BoardLocator | None = None,
        calibrator: TemplateCalibrator | None = None,
        matcher: PieceMatcher | None = None,
        change_detector: ChangeDetector | None = None,
    ) -> None:
        self._config = config or RecognitionConfig()
        self._locator = locator or BoardLocator(
            detection_threshold=self._config.detection_threshold
        )
        self._calibrator = calibrator or TemplateCalibrator()
        self._matcher = matcher or PieceMatcher()
        self._change_detector = change_detector or ChangeDetector(
            self._config.change_threshold
        )

    @property
    def config(self) -> RecognitionConfig:
        return self._config

    def recognize(
        self,
        frames_dir: str | Path,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationSource | None = None,
    ) -> RecognitionResult:
        """
        Recognize the board position in every frame of a directory.

        Args:
            frames_dir: Directory of ``frame_<n>.<png|jpg|jpeg>`` files
            on_progress: Called with (processed, total) at a fixed cadence
            cancel_token: Polled once per frame; when set the run stops

        Returns:
            RecognitionResult. Status is NO_BOARD when no board was found in
            the search window and CANCELLED when stopped early, in which
            case positions holds whatever was recognized before the stop.

        Raises:
            FrameDirectoryError: The directory cannot be read
            NoFramesError: The directory contains no frames
        """
        frames = FrameCatalog(frames_dir).list_frames()
        total = len(frames)
        if total == 0:
            raise NoFramesError(str(frames_dir))

        logger.info(f"Recognizing {total} frames from {frames_dir}")

        calibration, cancelled = self._calibrate(frames, cancel_token)
        if cancelled:
            return RecognitionResult(
                status=RecognitionStatus.CANCELLED,
                total_frames=total,
            )
        if calibration is None:
            logger.info("No board found in the search window")
            return RecognitionResult(
                status=RecognitionStatus.NO_BOARD,
                total_frames=total,
            )

        with calibration.templates:
            return self._process_frames(frames, calibration, on_progress, cancel_token)

    def _calibrate(
        self,
        frames: list[Frame],
        cancel_token: CancellationSource | None,
    ) -> tuple[_Calibration | None, bool]:
        """
        Search the first frames for a board and build templates from it.

        Returns:
            Tuple of (calibration or None, cancelled)
        """
        limit = min(self._config.board_search_limit, len(frames))

        for frame in frames[:limit]:
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info("Recognition cancelled during board search")
                return None, True

            image = read_grayscale(frame.path)
            if image is None:
                logger.warning(f"Could not read frame {frame.index}: {frame.path}")
                continue

            region, score = self._locator.locate(image)
            if region is None or score <= self._config.detection_threshold:
                logger.debug(f"No board in frame {frame.index} (score {score:.2f})")
                continue

            logger.info(
                f"Board found in frame {frame.index} at "
                f"({region.x1}, {region.y1})-({region.x2}, {region.y2}), "
                f"score {score:.2f}"
            )
            templates, cell_size, margins = self._calibrator.calibrate(
                crop_region(image, region), self._config.assumed_fen
            )
            return _Calibration(region, templates, cell_size, margins), False

        return None, False

    def _process_frames(
        self,
        frames: list[Frame],
        calibration: _Calibration,
        on_progress: ProgressCallback | None,
        cancel_token: CancellationSource | None,
    ) -> RecognitionResult:
        """Classify every frame, reusing results across unchanged crops."""
        total = len(frames)
        positions: list[RecognizedPosition] = []
        frames_with_board = 0

        prev_crop: NDArray[np.uint8] | None = None
        prev_fen = ""
        prev_confidence = 0.0
        status = RecognitionStatus.COMPLETED

        region = calibration.region

        for i, frame in enumerate(frames):
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info(f"Recognition cancelled after {i} of {total} frames")
                status = RecognitionStatus.CANCELLED
                break

            timestamp = frame.index / self._config.frames_per_second
            image = read_grayscale(frame.path)
            crop = crop_region(image, region) if image is not None else None

            if crop is None or crop.shape != (region.height, region.width):
                logger.warning(f"Could not read frame {frame.index}: {frame.path}")
                position = RecognizedPosition(frame.index, timestamp)
            elif not self._change_detector.changed(prev_crop, crop):
                position = RecognizedPosition(
                    frame_index=frame.index,
                    timestamp_seconds=timestamp,
                    fen=prev_fen,
                    confidence=prev_confidence,
                    board_detected=prev_fen != "",
                )
            else:
                position = self._classify(frame, timestamp, crop, calibration)
                # Own the pixels so the full frame can be freed
                prev_crop = crop.copy()
                prev_fen = position.fen
                prev_confidence = position.confidence

            positions.append(position)
            if position.board_detected:
                frames_with_board += 1

            self._report_progress(on_progress, i + 1, total)

        logger.info(
            f"Recognition {status.name.lower()}: {frames_with_board}/{total} "
            f"frames with a board"
        )
        return RecognitionResult(
            status=status,
            positions=tuple(positions),
            total_frames=total,
            frames_with_board=frames_with_board,
            board_region=calibration.region,
        )

    def _classify(
        self,
        frame: Frame,
        timestamp: float,
        crop: NDArray[np.uint8],
        calibration: _Calibration,
    ) -> RecognizedPosition:
        """Run the matcher on one crop and validate its output."""
        fen_board = self._matcher.recognize(
            crop, calibration.templates, calibration.cell_size, calibration.margins
        )

        if not is_well_formed_board(fen_board):
            logger.debug(f"Malformed classification for frame {frame.index}: {fen_board!r}")
            return RecognizedPosition(frame.index, timestamp)

        logger.debug(f"Frame {frame.index}: {fen_board}")
        return RecognizedPosition(
            frame_index=frame.index,
            timestamp_seconds=timestamp,
            fen=fen_board + RECOGNIZED_FEN_SUFFIX,
            confidence=1.0,
            board_detected=True,
        )

    def _report_progress(
        self,
        on_progress: ProgressCallback | None,
        processed: int,
        total: int,
    ) -> None:
        if on_progress is None:
            return
        if processed % self._config.progress_interval == 0 or processed == total:
            on_progress(processed, total)
