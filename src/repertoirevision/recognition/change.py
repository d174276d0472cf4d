"""Frame-to-frame change detection for the board region."""

import cv2
import numpy as np
from numpy.typing import NDArray


DEFAULT_CHANGE_THRESHOLD = 5.0  # Mean absolute pixel difference, 8-bit scale


class ChangeDetector:
    """
    Decides whether a board crop differs enough from the previous one to
    be worth classifying again.

    Most consecutive frames of a commentary video are identical, so this
    gate skips the bulk of the template matching.
    """

    def __init__(self, threshold: float = DEFAULT_CHANGE_THRESHOLD) -> None:
        self.threshold = threshold

    def changed(
        self,
        prev_region: NDArray[np.uint8] | None,
        curr_region: NDArray[np.uint8],
        threshold: float | None = None,
    ) -> bool:
        """
        True if there is no previous crop, the sizes differ, or the mean
        absolute difference exceeds the threshold.
        """
        if threshold is None:
            threshold = self.threshold

        if prev_region is None or prev_region.size == 0:
            return True
        if prev_region.shape != curr_region.shape:
            return True

        diff = cv2.absdiff(prev_region, curr_region)
        return float(np.mean(diff)) > threshold
