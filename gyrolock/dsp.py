"""
Signal conditioning module for GyroLock.

Converts raw gyro readings to angular rate and squashes them into a
bounded range before segmentation.
"""

import numpy as np
from scipy.special import expit
from dataclasses import dataclass
from typing import Union


AXES = ("x", "y", "z")

DEG_TO_RAD = np.pi / 180.0


@dataclass(frozen=True)
class SampleFrame:
    """Angular rate on all three axes for one tick (rad/s)."""
    x: float
    y: float
    z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_sequence(cls, values) -> 'SampleFrame':
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)


def sigmoid(v: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Logistic squash 1 / (1 + e^-v).

    Args:
        v: Scalar or array of raw values

    Returns:
        Values in (0, 1), same shape as the input
    """
    out = expit(v)
    if np.ndim(out) == 0:
        return float(out)
    return out


def counts_to_rad_per_sec(raw: Union[int, np.ndarray],
                          sensitivity_mdps: float = 17.5) -> Union[float, np.ndarray]:
    """
    Convert signed 16-bit gyro counts to rad/s.

    Args:
        raw: Raw register value(s)
        sensitivity_mdps: Sensor sensitivity in millidegrees/s per LSB

    Returns:
        Angular rate in rad/s
    """
    rate = np.asarray(raw, dtype=np.float64) * (sensitivity_mdps / 1000.0) * DEG_TO_RAD
    if rate.ndim == 0:
        return float(rate)
    return rate


class SigmoidNormalizer:
    """
    Per-sample normalizer.

    Stateless: each frame is mapped independently, no history is kept.
    """

    def normalize(self, frame: SampleFrame) -> np.ndarray:
        """Return the normalized (x, y, z) of one frame."""
        return sigmoid(frame.as_array())

    def normalize_array(self, rates: np.ndarray) -> np.ndarray:
        """Normalize a (ticks, 3) array of raw rates in one go."""
        return sigmoid(np.asarray(rates, dtype=np.float64))

    @property
    def rest_level(self) -> float:
        """Normalized value of a perfectly still axis."""
        return sigmoid(0.0)
