"""Fixed-capacity per-axis sample buffer for one recording session."""

import numpy as np
from typing import List


class BufferFullError(ValueError):
    """Raised when appending to a buffer that already holds its capacity."""


class SampleBuffer:
    """
    Append-only buffer of normalized samples for a single axis.

    Positions are insertion ordered and represent time. The buffer
    never grows past its capacity; appending to a full buffer raises
    BufferFullError instead of dropping the sample.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._samples: List[float] = []

    def append(self, value: float) -> None:
        """Add one sample at the next position."""
        if self.is_full:
            raise BufferFullError(
                f"buffer already holds {self.capacity} samples"
            )
        self._samples.append(float(value))

    @property
    def is_full(self) -> bool:
        return len(self._samples) >= self.capacity

    @property
    def values(self) -> np.ndarray:
        """Read-only snapshot of the samples so far."""
        arr = np.array(self._samples, dtype=np.float64)
        arr.setflags(write=False)
        return arr

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)
