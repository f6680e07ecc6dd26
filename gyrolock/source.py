"""
Sample sources - where angular-rate frames come from.

Every source hands out exactly one frame per call to read_frame(),
blocking until the next tick's data is ready.
"""

import struct
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import numpy as np

try:
    import serial  # pyserial
except ImportError:
    raise ImportError("pyserial required: pip install pyserial")

from .config import Config
from .dsp import SampleFrame, counts_to_rad_per_sec


class SampleSource(ABC):
    """Cadence-paced provider of (x, y, z) angular-rate frames."""

    @abstractmethod
    def read_frame(self) -> SampleFrame:
        """
        Block until the next frame is available and return it.

        Raises:
            EOFError: when a finite source has no frames left
        """
        pass

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class ReplaySource(SampleSource):
    """
    Replays recorded rates from memory.

    Optionally sleeps between frames to mimic the live cadence.
    """

    def __init__(self, rates, rate_hz: Optional[float] = None):
        """
        Args:
            rates: (ticks, 3) array-like of rad/s values
            rate_hz: Pace output at this rate (None = as fast as asked)
        """
        arr = np.asarray(rates, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 3:
            raise ValueError(f"expected shape (ticks, 3), got {arr.shape}")
        self._rates = arr
        self._pos = 0
        self._interval = 1.0 / rate_hz if rate_hz else 0.0
        self._next_due: Optional[float] = None

    @classmethod
    def from_csv(cls, path, rate_hz: Optional[float] = None) -> 'ReplaySource':
        return cls(load_recording(path), rate_hz=rate_hz)

    def read_frame(self) -> SampleFrame:
        if self._pos >= len(self._rates):
            raise EOFError("replay exhausted")

        if self._interval:
            if self._next_due is not None:
                delay = self._next_due - time.monotonic()
                if delay > 0:
                    time.sleep(delay)
            self._next_due = time.monotonic() + self._interval

        frame = SampleFrame.from_sequence(self._rates[self._pos])
        self._pos += 1
        return frame

    @property
    def remaining(self) -> int:
        return len(self._rates) - self._pos


class SerialGyroSource(SampleSource):
    """
    Reads gyro frames from a microcontroller over a serial port.

    Wire format (little endian, 14 bytes):
        uint32 magic, uint32 seq, int16 x, int16 y, int16 z
    The x/y/z fields are raw counts straight from the sensor output
    registers; they are scaled to rad/s with the configured sensitivity.
    """

    MAGIC = 0x47594C4B
    FRAME_FORMAT = '<IIhhh'
    FRAME_SIZE = struct.calcsize(FRAME_FORMAT)

    def __init__(self, port: str, config: Config, serial_port=None,
                 stop: Optional[threading.Event] = None):
        """
        Args:
            port: Serial port path (e.g., /dev/ttyACM0, COM3)
            config: GyroLock configuration
            serial_port: Already opened port-like object (for tests)
            stop: Event that ends a read waiting on a silent sensor
        """
        self.port = port
        self.config = config
        self.serial = serial_port
        self.stop = stop
        self._buffer = bytearray()
        self._magic = struct.pack('<I', self.MAGIC)
        self._last_seq: Optional[int] = None
        self.dropped_frames = 0
        self.skipped_bytes = 0

    def open(self) -> 'SerialGyroSource':
        """Open the serial connection."""
        if self.serial is not None:
            return self
        try:
            self.serial = serial.Serial(
                self.port, self.config.serial_baudrate,
                timeout=self.config.serial_timeout_sec
            )
            self.serial.reset_input_buffer()
        except serial.SerialException as e:
            print(f"[SERIAL] Failed to connect: {e}")
            raise RuntimeError("Cannot open serial port") from e
        print(f"[SERIAL] Connected {self.port} @ {self.config.serial_baudrate}")
        return self

    def close(self):
        if self.serial is not None:
            self.serial.close()
            self.serial = None
            print("[SERIAL] Closed")

    def __enter__(self):
        return self.open()

    def read_frame(self) -> SampleFrame:
        """
        Block until a complete frame arrives.

        Raises:
            EOFError: the link failed or the stop event was set
        """
        if self.serial is None:
            raise RuntimeError("Serial port is not open")

        while True:
            frame = self._next_frame()
            if frame is not None:
                return frame
            try:
                chunk = self.serial.read(self.FRAME_SIZE)
            except serial.SerialException as e:
                print(f"[SERIAL] Read failed: {e}")
                raise EOFError("serial link lost") from e
            if chunk:
                self._buffer += chunk
            elif self.stop is not None and self.stop.is_set():
                raise EOFError("stopped while waiting for data")

    def _discard(self, count: int):
        """Drop bytes from the front of the receive buffer and report them."""
        if count <= 0:
            return
        del self._buffer[:count]
        self.skipped_bytes += count
        print(f"[SERIAL] Skipped {count} byte(s) of garbage")

    def _next_frame(self) -> Optional[SampleFrame]:
        """Pop one valid frame off the receive buffer, if there is one."""
        while len(self._buffer) >= 4:
            if not self._buffer.startswith(self._magic):
                idx = self._buffer.find(self._magic, 1)
                if idx != -1:
                    self._discard(idx)
                else:
                    # Keep a possible partial magic at the tail
                    self._discard(len(self._buffer) - 3)
                    return None
                continue

            if len(self._buffer) < self.FRAME_SIZE:
                return None

            # Truncated frame: the next magic starts inside this one
            inner = self._buffer.find(self._magic, 4, self.FRAME_SIZE + 3)
            if inner != -1:
                self._discard(inner)
                continue

            raw = bytes(self._buffer[:self.FRAME_SIZE])
            del self._buffer[:self.FRAME_SIZE]
            _, seq, gx, gy, gz = struct.unpack(self.FRAME_FORMAT, raw)
            self._track_sequence(seq)

            rates = counts_to_rad_per_sec(
                np.array([gx, gy, gz]), self.config.gyro_sensitivity_mdps
            )
            return SampleFrame.from_sequence(rates)
        return None

    def _track_sequence(self, seq: int):
        if self._last_seq is not None:
            gap = (seq - self._last_seq - 1) & 0xFFFFFFFF
            if gap:
                self.dropped_frames += gap
                print(f"[SERIAL] {gap} frame(s) missing before seq={seq}")
        self._last_seq = seq

    @classmethod
    def pack_frame(cls, seq: int, gx: int, gy: int, gz: int) -> bytes:
        """Encode one frame in the wire format."""
        return struct.pack(cls.FRAME_FORMAT, cls.MAGIC, seq, gx, gy, gz)


# ----------------------- Recordings -----------------------

def load_recording(path) -> np.ndarray:
    """Load an x,y,z CSV recording (rad/s) into a (ticks, 3) array."""
    data = np.loadtxt(Path(path), delimiter=',', comments='#', ndmin=2)
    if data.shape[1] != 3:
        raise ValueError(f"{path}: expected 3 columns, got {data.shape[1]}")
    return data


def save_recording(path, rates) -> Path:
    """Write a (ticks, 3) rate array as CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(path, np.asarray(rates, dtype=np.float64), delimiter=',',
               header='x,y,z (rad/s)', fmt='%.6f')
    return path


def synthetic_session(config: Config,
                      amplitude=(3.0, -2.5, 1.5),
                      onset: int = 10,
                      duration: int = 25,
                      noise: float = 0.05,
                      seed: Optional[int] = None) -> np.ndarray:
    """
    Generate one session's worth of gesture-like rates.

    Rest, then a half-sine swing per axis, then rest again.

    Args:
        config: Supplies samples_per_session
        amplitude: Peak rate per axis (rad/s)
        onset: Tick at which the motion starts
        duration: Length of the motion in ticks
        noise: Std-dev of Gaussian sensor noise (rad/s)
        seed: RNG seed for reproducible recordings

    Returns:
        (samples_per_session, 3) array of rates
    """
    n = config.samples_per_session
    rng = np.random.default_rng(seed)
    rates = rng.normal(0.0, noise, size=(n, 3))

    stop = min(n, onset + duration)
    if stop > onset:
        t = np.linspace(0.0, np.pi, stop - onset)
        swing = np.sin(t)
        rates[onset:stop] += np.outer(swing, np.asarray(amplitude, dtype=np.float64))

    return rates
