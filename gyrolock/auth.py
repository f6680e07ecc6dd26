"""
Authentication state machine for GyroLock.

Drives enrollment and verification sessions tick by tick:
IDLE -> ENROLLING -> LOCKED <-> VERIFYING
"""

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from .buffer import SampleBuffer
from .config import Config
from .dsp import AXES, SampleFrame, SigmoidNormalizer
from .dtw import EMPTY_SEQUENCE_DISTANCE, dtw_distance
from .segmentation import MotionSegment, MotionSegmenter


class AuthState(Enum):
    """State machine states."""
    IDLE = "idle"              # no template yet
    ENROLLING = "enrolling"    # recording the password motion
    LOCKED = "locked"          # template stored, waiting for an attempt
    VERIFYING = "verifying"    # recording an unlock attempt


class Trigger(Enum):
    """External inputs accepted between ticks."""
    START_ENROLLMENT = "enroll"
    START_VERIFICATION = "verify"


@dataclass(frozen=True)
class ReferenceTemplate:
    """Enrolled motion, one segment per axis."""
    x: MotionSegment
    y: MotionSegment
    z: MotionSegment

    @property
    def segments(self) -> Tuple[MotionSegment, MotionSegment, MotionSegment]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one unlock attempt."""
    distances: Tuple[float, float, float]
    threshold: float
    accepted: bool

    @property
    def axis_passed(self) -> Tuple[bool, bool, bool]:
        return tuple(d <= self.threshold for d in self.distances)

    def describe(self) -> str:
        parts = ", ".join(f"{axis}={d:.2f}" for axis, d in zip(AXES, self.distances))
        verdict = "ACCEPT" if self.accepted else "REJECT"
        return f"{verdict} ({parts}; threshold={self.threshold:g})"


@dataclass
class AuthenticationSession:
    """One bounded recording: the mode and its three axis buffers."""
    state: AuthState
    buffers: Tuple[SampleBuffer, SampleBuffer, SampleBuffer]

    def __post_init__(self):
        if len(self.buffers) != len(AXES):
            raise ValueError(
                f"expected {len(AXES)} axis buffers, got {len(self.buffers)}"
            )

    @classmethod
    def open(cls, state: AuthState, capacity: int) -> 'AuthenticationSession':
        return cls(state=state,
                   buffers=tuple(SampleBuffer(capacity) for _ in AXES))

    @property
    def count(self) -> int:
        """Samples recorded so far."""
        return len(self.buffers[0])

    @property
    def is_complete(self) -> bool:
        return all(b.is_full for b in self.buffers)

    def append(self, normalized) -> None:
        for buf, value in zip(self.buffers, normalized):
            buf.append(value)


def decide(distances, threshold: float) -> bool:
    """Accept only if every axis is within the threshold."""
    return all(d <= threshold for d in distances)


class FeedbackSink:
    """
    One-way notification interface for UI / IO feedback.

    Every method is a no-op here; subclasses override what they render.
    Implementations must return quickly, they run inside the sampling tick.
    """

    def recording_started(self, state: AuthState):
        pass

    def progress(self, state: AuthState, count: int, total: int):
        pass

    def template_ready(self, template: ReferenceTemplate):
        pass

    def accepted(self, result: VerificationResult):
        pass

    def rejected(self, result: VerificationResult):
        pass


class AuthenticationStateMachine:
    """
    Gesture lock driven one sample frame at a time.

    - start_enrollment() / start_verification() open a session when the
      current state allows it, otherwise they are ignored
    - process() feeds one frame; once N frames are in, the session is
      segmented and either stored as the template or verified
    The template is written exactly once per instance.
    """

    def __init__(self, config: Config,
                 ui: Optional[FeedbackSink] = None,
                 aligner: Callable = dtw_distance):
        self.config = config
        self.ui = ui or FeedbackSink()
        self._aligner = aligner
        self._normalizer = SigmoidNormalizer()
        self._segmenter = MotionSegmenter(config)

        self._state = AuthState.IDLE
        self._session: Optional[AuthenticationSession] = None
        self._template: Optional[ReferenceTemplate] = None
        self._last_result: Optional[VerificationResult] = None

    # ----------------------- Triggers -----------------------

    def start_enrollment(self) -> bool:
        """Begin recording the password. Only valid once, from IDLE."""
        if self._state != AuthState.IDLE:
            return False
        self._open_session(AuthState.ENROLLING)
        return True

    def start_verification(self) -> bool:
        """Begin recording an unlock attempt. Only valid from LOCKED."""
        if self._state != AuthState.LOCKED:
            return False
        self._open_session(AuthState.VERIFYING)
        return True

    def handle_trigger(self, trigger: Trigger) -> bool:
        if trigger == Trigger.START_ENROLLMENT:
            return self.start_enrollment()
        if trigger == Trigger.START_VERIFICATION:
            return self.start_verification()
        return False

    def _open_session(self, state: AuthState):
        self._session = AuthenticationSession.open(
            state, self.config.samples_per_session
        )
        self._state = state
        self.ui.recording_started(state)

    # ----------------------- Sampling -----------------------

    def process(self, frame: SampleFrame) -> Optional[VerificationResult]:
        """
        Consume one sample frame.

        Returns:
            VerificationResult when this frame completed a verification
            session, None otherwise
        """
        if self._session is None:
            return None

        session = self._session
        session.append(self._normalizer.normalize(frame))
        self.ui.progress(session.state, session.count,
                         self.config.samples_per_session)

        if not session.is_complete:
            return None

        segments = tuple(self._segmenter.extract(b.values) for b in session.buffers)
        self._session = None

        if session.state == AuthState.ENROLLING:
            self._store_template(ReferenceTemplate(*segments))
            self._state = AuthState.LOCKED
            print(f"[AUTH] Template stored "
                  f"(lengths: {', '.join(str(len(s)) for s in segments)})")
            self.ui.template_ready(self._template)
            return None

        result = self.verify(segments)
        self._state = AuthState.LOCKED
        if result.accepted:
            self.ui.accepted(result)
        else:
            self.ui.rejected(result)
        return result

    def _store_template(self, template: ReferenceTemplate):
        if self._template is not None:
            raise RuntimeError("Reference template is already set")
        self._template = template

    def verify(self, segments) -> VerificationResult:
        """
        Score an attempt against the stored template.

        Does not touch the state; process() calls it when a
        verification session completes.
        """
        if self._template is None:
            raise RuntimeError("No reference template enrolled")

        if not any(seg.has_motion for seg in segments):
            # Nothing moved on any axis
            distances = (EMPTY_SEQUENCE_DISTANCE,) * len(AXES)
        else:
            distances = tuple(
                float(self._aligner(entry, ref))
                for entry, ref in zip(segments, self._template.segments)
            )

        threshold = self.config.accept_threshold
        result = VerificationResult(
            distances=distances,
            threshold=threshold,
            accepted=decide(distances, threshold),
        )
        self._last_result = result
        print(f"[AUTH] distances: {', '.join(f'{d:.3f}' for d in distances)} "
              f"-> {'CORRECT' if result.accepted else 'WRONG'}")
        return result

    # ----------------------- Main loop -----------------------

    def run(self, source, triggers: Optional[queue.Queue] = None,
            max_ticks: Optional[int] = None,
            on_result: Optional[Callable] = None,
            stop: Optional[threading.Event] = None) -> int:
        """
        Cooperative sampling loop.

        Each tick blocks on the source for one frame, applies any
        triggers queued since the last tick, then processes the frame.

        Args:
            source: SampleSource to read from
            triggers: Optional queue of Trigger values fed by another thread
            max_ticks: Stop after this many frames (None = until exhausted)
            on_result: Function(VerificationResult) -> None
            stop: Event checked before each tick to end the loop

        Returns:
            Number of frames processed
        """
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            if stop is not None and stop.is_set():
                break
            try:
                frame = source.read_frame()
            except EOFError:
                break

            if triggers is not None:
                self._drain_triggers(triggers)

            result = self.process(frame)
            ticks += 1

            if result is not None and on_result is not None:
                on_result(result)

        return ticks

    def _drain_triggers(self, triggers: queue.Queue):
        while True:
            try:
                trigger = triggers.get_nowait()
            except queue.Empty:
                return
            if not self.handle_trigger(trigger):
                print(f"[AUTH] Ignored {trigger.value} while {self._state.value}")

    # ----------------------- Properties -----------------------

    @property
    def state(self) -> AuthState:
        """Current state."""
        return self._state

    @property
    def template(self) -> Optional[ReferenceTemplate]:
        """Enrolled template, None until enrollment completes."""
        return self._template

    @property
    def session(self) -> Optional[AuthenticationSession]:
        """Session in progress, if any."""
        return self._session

    @property
    def last_result(self) -> Optional[VerificationResult]:
        return self._last_result
