"""
Protocol definitions for the pipeline's collaborators.

The external import layer supplies a progress sink and a cancellation
flag; these structural interfaces let it pass anything with the right
shape (a queue adapter, a web request's disconnect flag, a test spy).
"""

import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class ProgressCallback(Protocol):
    """Receives ``(processed_frames, total_frames)`` during a run."""

    def __call__(self, processed_frames: int, total_frames: int) -> None:
        ...


@runtime_checkable
class CancellationSource(Protocol):
    """
    Cooperative cancellation flag.

    The pipeline polls ``is_cancelled`` once per frame; it never blocks
    on the source.
    """

    @property
    def is_cancelled(self) -> bool:
        ...


class CancellationToken:
    """Thread-safe cancellation flag that another thread may set."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request that the run stop at the next frame boundary."""
        self._event.set()
