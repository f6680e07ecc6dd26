"""Common test fixtures for GyroLock tests."""

import numpy as np
import pytest
from unittest.mock import MagicMock

from gyrolock import Config
from gyrolock.auth import AuthenticationStateMachine, FeedbackSink
from gyrolock.dsp import SampleFrame


# Per-tick normalized values for an 8-sample session. With a deadband of
# (0.45, 0.55) the gesture segment is exactly [0.6, 0.65, 0.7, 0.68, 0.6].
ENROLL_AXIS = [0.5, 0.6, 0.65, 0.7, 0.68, 0.6, 0.5, 0.58]
DIFFERENT_AXIS = [0.5, 0.9, 0.95, 0.92, 0.88, 0.91, 0.5, 0.58]
GESTURE = [0.6, 0.65, 0.7, 0.68, 0.6]


def logit(p):
    """Inverse of the sigmoid: raw rate that normalizes to p."""
    p = np.asarray(p, dtype=np.float64)
    return np.log(p / (1.0 - p))


@pytest.fixture
def config():
    """Default configuration."""
    return Config()


@pytest.fixture
def scenario_config():
    """Short sessions with a narrow deadband around the 0.5 rest level."""
    return Config(samples_per_session=8, deadband_low=0.45, deadband_high=0.55)


@pytest.fixture
def make_rates():
    """Build a (ticks, 3) raw-rate array from normalized per-axis values."""
    def _make(x, y=None, z=None):
        y = x if y is None else y
        z = x if z is None else z
        return np.column_stack([logit(x), logit(y), logit(z)])
    return _make


@pytest.fixture
def feed():
    """Push every row of a rate array through machine.process()."""
    def _feed(machine, rates):
        result = None
        for row in rates:
            out = machine.process(SampleFrame.from_sequence(row))
            if out is not None:
                result = out
        return result
    return _feed


@pytest.fixture
def mock_ui():
    """Feedback sink that records every notification."""
    return MagicMock(spec=FeedbackSink)


@pytest.fixture
def enrolled_machine(scenario_config, make_rates, feed, mock_ui):
    """State machine already holding the ENROLL_AXIS template."""
    machine = AuthenticationStateMachine(scenario_config, ui=mock_ui)
    machine.start_enrollment()
    feed(machine, make_rates(ENROLL_AXIS))
    return machine
