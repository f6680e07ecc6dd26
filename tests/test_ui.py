"""Unit tests for console feedback and plotting."""

import threading

import matplotlib
matplotlib.use("Agg")

from gyrolock import Config
from gyrolock.auth import (AuthenticationStateMachine, AuthState, ReferenceTemplate,
                           VerificationResult)
from gyrolock.segmentation import MotionSegment
from gyrolock.ui import ConsoleUI, Indicator, plot_comparison

from conftest import ENROLL_AXIS, GESTURE


def fast_config(**kwargs):
    return Config(blink_on_sec=0.0, blink_off_sec=0.0, **kwargs)


class TestIndicator:
    """Test the non-blocking light."""

    def test_toggle(self):
        light = Indicator("red")
        assert light.toggle() is True
        assert light.is_on
        assert light.toggle() is False

    def test_change_callback(self):
        changes = []
        light = Indicator("green", on_change=lambda name, on: changes.append((name, on)))
        light.set(True)
        light.set(True)
        light.set(False)
        assert changes == [("green", True), ("green", False)]

    def test_blink_runs_in_background(self):
        changes = []
        light = Indicator("green", on_change=lambda name, on: changes.append(on))
        worker = light.blink(3, 0.0, 0.0)
        worker.join(timeout=2.0)
        assert not worker.is_alive()
        assert changes == [True, False] * 3
        assert not light.is_on

    def test_cancel_blink_turns_light_off(self):
        light = Indicator("red")
        worker = light.blink(3, 10.0, 10.0)
        light.cancel_blink()
        assert not worker.is_alive()
        assert not light.is_on

    def test_new_blink_replaces_running_one(self):
        light = Indicator("green")
        first = light.blink(3, 10.0, 10.0)
        second = light.blink(1, 0.0, 0.0)
        assert not first.is_alive()
        second.join(timeout=2.0)
        assert not light.is_on

    def test_toggle_from_many_threads(self):
        light = Indicator("green")

        def flip():
            for _ in range(1000):
                light.toggle()

        workers = [threading.Thread(target=flip) for _ in range(4)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        # Even number of flips in total
        assert not light.is_on


class TestConsoleUI:
    """Test status rendering."""

    def test_initial_status(self, capsys):
        ui = ConsoleUI(fast_config())
        assert ui.status == ConsoleUI.STATUS_NO_PASSWORD
        assert "NO PASSWORD SAVED" in capsys.readouterr().out

    def test_progress_toggles_matching_light(self):
        ui = ConsoleUI(fast_config())
        ui.progress(AuthState.ENROLLING, 1, 4)
        assert ui.red.is_on
        assert not ui.green.is_on
        ui.progress(AuthState.VERIFYING, 1, 4)
        assert ui.green.is_on

    def test_progress_done_turns_light_off(self, capsys):
        ui = ConsoleUI(fast_config())
        ui.progress(AuthState.ENROLLING, 4, 4)
        assert not ui.red.is_on
        assert "4/4" in capsys.readouterr().out

    def test_new_session_stops_verdict_blink(self):
        config = Config(blink_on_sec=10.0, blink_off_sec=10.0)
        ui = ConsoleUI(config)
        worker = ui.red.blink(config.blink_count, config.blink_on_sec,
                              config.blink_off_sec)

        ui.recording_started(AuthState.VERIFYING)

        assert not worker.is_alive()
        assert not ui.red.is_on
        ui.progress(AuthState.VERIFYING, 1, 4)
        assert ui.green.is_on
        assert not ui.red.is_on

    def test_full_flow(self, make_rates, feed, capsys):
        config = fast_config(samples_per_session=8, deadband_low=0.45,
                             deadband_high=0.55)
        ui = ConsoleUI(config)
        machine = AuthenticationStateMachine(config, ui=ui)

        machine.start_enrollment()
        assert ui.status == ConsoleUI.STATUS_RECORDING
        feed(machine, make_rates(ENROLL_AXIS))
        assert ui.status == ConsoleUI.STATUS_LOCKED

        machine.start_verification()
        feed(machine, make_rates(ENROLL_AXIS))
        assert ui.status == ConsoleUI.STATUS_UNLOCKED

        machine.start_verification()
        feed(machine, make_rates([0.5] * 8))
        assert ui.status == ConsoleUI.STATUS_WRONG

        out = capsys.readouterr().out
        assert "Password saved" in out
        assert "CORRECT" in out
        assert "WRONG" in out


class TestPlotComparison:
    """Test the matplotlib figure."""

    def test_writes_figure(self, tmp_path):
        seg = MotionSegment.from_values(GESTURE)
        template = ReferenceTemplate(seg, seg, seg)
        attempt = (seg, MotionSegment.from_values([0.9, 0.95]), MotionSegment.from_values([]))
        result = VerificationResult(distances=(0.0, 3.2, float("inf")),
                                    threshold=100.0, accepted=False)

        out = tmp_path / "cmp.png"
        fig = plot_comparison(template, attempt, result=result, save_path=str(out))

        assert out.exists()
        assert len(fig.axes) == 6
