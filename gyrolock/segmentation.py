"""
Motion segmentation module for GyroLock.

Cuts the gesture out of a full recording by discarding the rest
samples before the motion starts and after it settles.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import Config


@dataclass(frozen=True, eq=False)
class MotionSegment:
    """
    The part of one axis recording judged to contain the gesture.

    values[i] pairs with indices[i] == i to form the 2-D point
    sequence handed to the aligner.
    """
    values: np.ndarray
    indices: np.ndarray
    start: int = 0              # position in the source buffer
    end: int = 0                # exclusive
    has_motion: bool = True     # False if nothing left the deadband

    @classmethod
    def from_values(cls, values, start: int = 0, end: Optional[int] = None,
                    has_motion: bool = True) -> 'MotionSegment':
        vals = np.array(values, dtype=np.float64).reshape(-1)
        idx = np.arange(len(vals), dtype=np.float64)
        vals.setflags(write=False)
        idx.setflags(write=False)
        if end is None:
            end = start + len(vals)
        return cls(values=vals, indices=idx, start=start, end=end,
                   has_motion=has_motion)

    @property
    def points(self) -> np.ndarray:
        """(len, 2) array of (value, index) pairs."""
        return np.column_stack([self.values, self.indices])

    @property
    def is_empty(self) -> bool:
        return len(self.values) == 0

    def __len__(self) -> int:
        return len(self.values)


class MotionSegmenter:
    """
    Deadband segmenter.

    - start: first sample outside the deadband, scanning forward
    - end: last sample back inside the deadband, scanning backward
    The segment is buffer[start:end].
    """

    def __init__(self, config: Config):
        self.config = config
        self._low = config.deadband_low
        self._high = config.deadband_high

    def is_active(self, value: float) -> bool:
        """True if the value lies outside the rest band (edges count)."""
        return value <= self._low or value >= self._high

    def is_at_rest(self, value: float) -> bool:
        """True if the value lies inside the rest band (edges count)."""
        return self._low <= value <= self._high

    def find_bounds(self, samples: np.ndarray) -> Tuple[int, int, bool]:
        """
        Locate the motion window in a recording.

        Args:
            samples: Normalized samples of one axis

        Returns:
            (start, end, has_motion); end is exclusive
        """
        n = len(samples)
        start = 0
        end = n - 1
        has_motion = False

        for i in range(n):
            if self.is_active(samples[i]):
                start = i
                has_motion = True
                break

        # Index 0 is never taken as the end
        for i in range(n - 1, 0, -1):
            if self.is_at_rest(samples[i]):
                end = i
                break

        return start, end, has_motion

    def extract(self, samples) -> MotionSegment:
        """
        Build the motion segment of one full buffer.

        Never fails: without a crossing the window falls back to the
        start of the buffer, and start >= end yields an empty segment.
        """
        samples = np.asarray(samples, dtype=np.float64)
        if len(samples) == 0:
            return MotionSegment.from_values([], has_motion=False)

        start, end, has_motion = self.find_bounds(samples)

        if start >= end:
            return MotionSegment.from_values([], start=start, end=start,
                                             has_motion=has_motion)

        return MotionSegment.from_values(samples[start:end], start=start,
                                         end=end, has_motion=has_motion)

    def extract_axes(self, samples) -> Tuple[MotionSegment, ...]:
        """Segment each column of a (ticks, axes) array independently."""
        samples = np.asarray(samples, dtype=np.float64)
        return tuple(self.extract(samples[:, k]) for k in range(samples.shape[1]))


def suggest_deadband(rest_samples, margin: float = 0.05) -> Tuple[float, float]:
    """
    Suggest deadband edges from a recording made at rest.

    Takes the widest excursion from the 0.5 midpoint seen on any axis,
    adds a safety margin, and returns symmetric edges.

    Args:
        rest_samples: Normalized samples recorded while holding still
        margin: Extra room beyond the observed excursion

    Returns:
        (low, high) edges, clipped to stay inside (0, 1)
    """
    samples = np.asarray(rest_samples, dtype=np.float64)
    if samples.size == 0:
        raise ValueError("need at least one rest sample")

    half_width = float(np.max(np.abs(samples - 0.5))) + margin
    half_width = min(half_width, 0.49)
    return (0.5 - half_width, 0.5 + half_width)
