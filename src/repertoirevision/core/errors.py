"""Exceptions raised by the recognition pipeline."""


class RecognitionError(Exception):
    """Base class for fatal recognition failures."""


class FrameDirectoryError(RecognitionError):
    """The frame directory is missing or cannot be listed."""

    def __init__(self, frames_dir: str, cause: OSError | None = None):
        message = f"Failed to read frames directory: {frames_dir}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)
        self.frames_dir = frames_dir


class NoFramesError(RecognitionError):
    """The frame directory contains no frame images."""

    def __init__(self, frames_dir: str):
        super().__init__(f"No frame files found in {frames_dir}")
        self.frames_dir = frames_dir
