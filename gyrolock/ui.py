"""
User interface module for GyroLock.

Console status display, indicator lights, and matplotlib plots of
template vs. attempt.
"""

import threading
from typing import Callable, Optional

import numpy as np

from .auth import AuthState, FeedbackSink, ReferenceTemplate, VerificationResult
from .config import Config
from .dsp import AXES
from .dtw import accumulated_cost


class Indicator:
    """
    A two-state light (LED stand-in).

    Blinking runs on its own daemon thread so the sampling loop never
    waits on feedback timing.
    """

    def __init__(self, name: str, on_change: Optional[Callable] = None):
        """
        Args:
            name: Label used in the display
            on_change: Function(name, is_on) -> None called on every change
        """
        self.name = name
        self._on = False
        self._lock = threading.Lock()
        self._on_change = on_change
        self._blink_thread: Optional[threading.Thread] = None
        self._blink_cancel = threading.Event()

    def _update(self, flip: bool, on: bool = False) -> bool:
        with self._lock:
            old = self._on
            self._on = (not old) if flip else on
            new = self._on
        if new != old and self._on_change is not None:
            self._on_change(self.name, new)
        return new

    def set(self, on: bool):
        self._update(flip=False, on=on)

    def toggle(self) -> bool:
        """Flip the light, return the new state."""
        return self._update(flip=True)

    def blink(self, times: int, on_sec: float, off_sec: float) -> threading.Thread:
        """Blink in the background and return the worker thread."""
        self.cancel_blink()
        cancel = threading.Event()

        def _run():
            try:
                for _ in range(times):
                    self.set(True)
                    if cancel.wait(on_sec):
                        return
                    self.set(False)
                    if cancel.wait(off_sec):
                        return
            finally:
                self.set(False)

        self._blink_cancel = cancel
        self._blink_thread = threading.Thread(target=_run, daemon=True)
        self._blink_thread.start()
        return self._blink_thread

    def cancel_blink(self):
        """Stop a running blink and wait until the light is off."""
        worker = self._blink_thread
        if worker is not None and worker.is_alive():
            self._blink_cancel.set()
            worker.join()
        self._blink_thread = None

    @property
    def is_on(self) -> bool:
        with self._lock:
            return self._on


class ConsoleUI(FeedbackSink):
    """
    Terminal rendering of the lock.

    Shows a status card, a recording progress bar and two indicator
    lights (red while enrolling, green while verifying).
    """

    STATUS_NO_PASSWORD = "NO PASSWORD SAVED"
    STATUS_RECORDING = "Is Recording..."
    STATUS_LOCKED = "LOCKED"
    STATUS_UNLOCKED = "UNLOCKED"
    STATUS_WRONG = "WRONG PASSWORD"

    def __init__(self, config: Config, quiet_lights: bool = True):
        self.config = config
        self.green = Indicator("green", None if quiet_lights else self._show_light)
        self.red = Indicator("red", None if quiet_lights else self._show_light)
        self.status = self.STATUS_NO_PASSWORD
        self._show_status()

    def _show_status(self):
        print(f"\n[UI] == {self.status} ==")

    def _show_light(self, name: str, on: bool):
        print(f"\n[UI] {name} LED {'on' if on else 'off'}")

    def recording_started(self, state: AuthState):
        # The last verdict blink must not interleave with progress toggles
        self.green.cancel_blink()
        self.red.cancel_blink()
        self.status = self.STATUS_RECORDING
        label = "password" if state == AuthState.ENROLLING else "entry"
        print(f"\n[UI] Recording {label}: perform the gesture now "
              f"({self.config.session_duration_sec:.1f}s)")
        self._show_status()

    def progress(self, state: AuthState, count: int, total: int):
        light = self.red if state == AuthState.ENROLLING else self.green
        light.toggle()

        bar_len = int(count / total * 40)
        bar = "█" * bar_len + "░" * (40 - bar_len)
        print(f"\r[{bar}] {count:3d}/{total}", end="", flush=True)
        if count >= total:
            print()
            light.set(False)

    def template_ready(self, template: ReferenceTemplate):
        lengths = ", ".join(f"{a}={len(s)}" for a, s in zip(AXES, template.segments))
        print(f"[UI] Password saved ({lengths})")
        self.status = self.STATUS_LOCKED
        self._show_status()

    def accepted(self, result: VerificationResult):
        print(f"[UI] CORRECT: {result.describe()}")
        self.status = self.STATUS_UNLOCKED
        self._show_status()
        self.green.blink(self.config.blink_count, self.config.blink_on_sec,
                         self.config.blink_off_sec)

    def rejected(self, result: VerificationResult):
        print(f"[UI] WRONG: {result.describe()}")
        self.status = self.STATUS_WRONG
        self._show_status()
        self.red.blink(self.config.blink_count, self.config.blink_on_sec,
                       self.config.blink_off_sec)


def plot_comparison(template: ReferenceTemplate, attempt,
                    result: Optional[VerificationResult] = None,
                    save_path: Optional[str] = None):
    """
    Plot each axis of an attempt over the template, next to its DTW
    cumulative cost table.

    Args:
        template: Enrolled template
        attempt: Three MotionSegments (x, y, z)
        result: Optional verification result for the titles
        save_path: Write the figure here instead of showing it
    """
    import matplotlib
    if save_path:
        matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    plt.style.use('dark_background')
    fig, axes = plt.subplots(3, 2, figsize=(12, 9),
                             gridspec_kw={'width_ratios': [2, 1]})
    title = 'GyroLock - Template vs. Attempt'
    if result is not None:
        title += f"  [{'ACCEPT' if result.accepted else 'REJECT'}]"
    fig.suptitle(title, fontsize=14, fontweight='bold', color='#00ff88')

    for row, (axis, ref, seg) in enumerate(zip(AXES, template.segments, attempt)):
        ax_sig, ax_cost = axes[row]

        ax_sig.plot(ref.indices, ref.values, color='#00ffff', linewidth=2,
                    label=f'template ({len(ref)})')
        ax_sig.plot(seg.indices, seg.values, color='#ff8800', linewidth=1.5,
                    label=f'attempt ({len(seg)})')
        ax_sig.axhline(y=0.5, color='#444', linestyle='-')
        ax_sig.set_ylim(0.0, 1.0)
        ax_sig.set_ylabel(f'{axis} (normalized)', color='#aaa')
        ax_sig.legend(loc='upper right', fontsize=8)

        if result is not None:
            d = result.distances[row]
            color = '#00ff88' if d <= result.threshold else '#ff4444'
            ax_sig.set_title(f'{axis}: DTW = {d:.2f}', color=color)

        ax_cost.axis('off')
        if len(ref) and len(seg):
            table = accumulated_cost(seg, ref)[1:, 1:]
            ax_cost.imshow(np.log1p(table), aspect='auto', origin='lower',
                           cmap='inferno')
            ax_cost.set_title('cumulative cost (log)', color='#aaa', fontsize=9)
        else:
            ax_cost.text(0.5, 0.5, 'empty segment', ha='center', va='center',
                         transform=ax_cost.transAxes, color='#ff6666')

    axes[-1][0].set_xlabel('Sample', color='#aaa')

    try:
        plt.tight_layout()
    except Exception:
        pass  # suptitle + gridspec can upset tight_layout

    if save_path:
        fig.savefig(save_path)
        plt.close(fig)
        print(f"[UI] Plot written to {save_path}")
    else:
        plt.show()
    return fig
