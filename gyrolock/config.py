"""
Configuration module for GyroLock.

All tunable parameters in one place for easy experimentation.
"""

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass
class Config:
    """GyroLock configuration parameters."""

    # ==========================================================================
    # Sampling
    # ==========================================================================
    sample_rate_hz: float = 20.0          # Hz - data-ready cadence of the source
    samples_per_session: int = 60         # N - 3 seconds of movement at 20 Hz

    # ==========================================================================
    # Sensor
    # ==========================================================================
    gyro_sensitivity_mdps: float = 17.5   # mdps/LSB at the ±500 dps range
    serial_baudrate: int = 115200
    serial_timeout_sec: float = 0.05

    # ==========================================================================
    # Segmentation
    # ==========================================================================
    # Deadband on the sigmoid scale. Rest sits at 0.5, so the edges are
    # 0.5 ± 0.4. Re-tune with `main.py calibrate`.
    deadband_low: float = 0.1
    deadband_high: float = 0.9

    # ==========================================================================
    # Decision
    # ==========================================================================
    accept_threshold: float = 100.0       # max DTW distance per axis

    # ==========================================================================
    # Feedback
    # ==========================================================================
    blink_count: int = 3                  # blinks on accept / reject
    blink_on_sec: float = 0.5
    blink_off_sec: float = 0.1

    def __post_init__(self):
        if self.samples_per_session < 2:
            raise ValueError(
                f"samples_per_session must be >= 2, got {self.samples_per_session}"
            )
        if self.sample_rate_hz <= 0:
            raise ValueError(f"sample_rate_hz must be positive, got {self.sample_rate_hz}")
        if not self.deadband_low < self.deadband_high:
            raise ValueError(
                f"deadband_low ({self.deadband_low}) must be below "
                f"deadband_high ({self.deadband_high})"
            )
        # inf would let the empty-segment sentinel pass
        if not math.isfinite(self.accept_threshold) or self.accept_threshold < 0:
            raise ValueError(
                f"accept_threshold must be finite and non-negative, "
                f"got {self.accept_threshold}"
            )

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def tick_interval_sec(self) -> float:
        """Nominal time between two samples."""
        return 1.0 / self.sample_rate_hz

    @property
    def session_duration_sec(self) -> float:
        """Wall-clock length of one recording session."""
        return self.samples_per_session / self.sample_rate_hz

    @property
    def deadband(self) -> Tuple[float, float]:
        """(low, high) edges of the rest band."""
        return (self.deadband_low, self.deadband_high)
