"""Unit tests for motion segmentation."""

import numpy as np
import pytest

from gyrolock import Config
from gyrolock.segmentation import MotionSegment, MotionSegmenter, suggest_deadband

from conftest import ENROLL_AXIS, GESTURE


@pytest.fixture
def segmenter(scenario_config):
    return MotionSegmenter(scenario_config)


class TestMotionSegment:
    """Test the segment value type."""

    def test_indices_follow_values(self):
        seg = MotionSegment.from_values([0.3, 0.7, 0.9], start=4)
        np.testing.assert_array_equal(seg.indices, [0.0, 1.0, 2.0])
        assert seg.start == 4
        assert seg.end == 7
        assert len(seg) == 3

    def test_points(self):
        seg = MotionSegment.from_values([0.3, 0.7])
        np.testing.assert_array_equal(seg.points, [[0.3, 0.0], [0.7, 1.0]])

    def test_immutable_arrays(self):
        seg = MotionSegment.from_values([0.3, 0.7])
        with pytest.raises(ValueError):
            seg.values[0] = 0.0

    def test_empty(self):
        seg = MotionSegment.from_values([])
        assert seg.is_empty
        assert seg.points.shape == (0, 2)


class TestMotionSegmenter:
    """Test window detection and its fallbacks."""

    def test_extracts_gesture(self, segmenter):
        seg = segmenter.extract(ENROLL_AXIS)
        np.testing.assert_allclose(seg.values, GESTURE)
        assert (seg.start, seg.end) == (1, 6)
        assert seg.has_motion

    def test_shape_invariant_on_random_buffers(self, config):
        segmenter = MotionSegmenter(config)
        rng = np.random.default_rng(7)
        for _ in range(50):
            buf = rng.uniform(0.0, 1.0, config.samples_per_session)
            seg = segmenter.extract(buf)
            assert len(seg.values) == len(seg.indices)
            np.testing.assert_array_equal(seg.indices, np.arange(len(seg)))
            np.testing.assert_array_equal(seg.values, buf[seg.start:seg.start + len(seg)])

    def test_all_rest_defaults_to_buffer_start(self, segmenter):
        seg = segmenter.extract([0.5] * 8)
        assert not seg.has_motion
        assert (seg.start, seg.end) == (0, 7)
        assert len(seg) == 7

    def test_never_back_at_rest_defaults_to_last_index(self, segmenter):
        seg = segmenter.extract([0.9] * 8)
        assert seg.has_motion
        assert (seg.start, seg.end) == (0, 7)
        assert len(seg) == 7

    def test_start_after_end_gives_empty_segment(self, segmenter):
        # Motion only on the final tick: start=7, end=6
        seg = segmenter.extract([0.5] * 7 + [0.9])
        assert seg.is_empty
        assert seg.has_motion

    def test_backward_scan_skips_index_zero(self, segmenter):
        # Only index 0 is at rest, so end keeps its default
        seg = segmenter.extract([0.5] + [0.9] * 7)
        assert (seg.start, seg.end) == (1, 7)
        assert len(seg) == 6

    def test_deadband_edges_count_as_both(self, segmenter):
        assert segmenter.is_active(0.45)
        assert segmenter.is_at_rest(0.45)
        assert segmenter.is_active(0.55)
        assert segmenter.is_at_rest(0.55)
        assert not segmenter.is_active(0.5)
        assert not segmenter.is_at_rest(0.6)

    def test_low_side_crossing(self, segmenter):
        seg = segmenter.extract([0.5, 0.5, 0.3, 0.2, 0.5, 0.4, 0.4, 0.4])
        assert seg.start == 2
        assert seg.end == 4
        np.testing.assert_allclose(seg.values, [0.3, 0.2])

    def test_empty_input(self, segmenter):
        seg = segmenter.extract([])
        assert seg.is_empty
        assert not seg.has_motion

    def test_extract_axes(self, segmenter):
        samples = np.column_stack([ENROLL_AXIS, [0.5] * 8, ENROLL_AXIS])
        x, y, z = segmenter.extract_axes(samples)
        np.testing.assert_allclose(x.values, GESTURE)
        assert not y.has_motion
        np.testing.assert_allclose(z.values, GESTURE)


class TestSuggestDeadband:
    """Test deadband suggestion from rest recordings."""

    def test_symmetric_around_midpoint(self):
        low, high = suggest_deadband([[0.48, 0.51, 0.5], [0.5, 0.53, 0.49]], margin=0.02)
        assert low == pytest.approx(0.45)
        assert high == pytest.approx(0.55)

    def test_clipped_inside_unit_range(self):
        low, high = suggest_deadband([0.0, 1.0], margin=0.1)
        assert 0.0 < low < high < 1.0

    def test_suggestion_is_valid_config(self):
        low, high = suggest_deadband([0.5, 0.52])
        Config(deadband_low=low, deadband_high=high)

    def test_requires_samples(self):
        with pytest.raises(ValueError):
            suggest_deadband([])
