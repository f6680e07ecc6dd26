#!/usr/bin/env python3
"""
GyroLock - Gesture Unlocking with a 3-Axis Gyroscope

Enroll a motion as the password, then repeat it to unlock. Attempts
are matched against the enrolled motion with Dynamic Time Warping.

Usage:
    python main.py run --port /dev/ttyACM0    # Live session over serial
    python main.py simulate                   # Synthetic demo, no hardware
    python main.py replay enroll.csv try.csv  # Offline enroll + verify
    python main.py calibrate --port PORT      # Suggest deadband edges
    python main.py plot enroll.csv try.csv    # Template vs attempt plot

License: MIT
"""

import argparse
import queue
import sys
import threading

import numpy as np

from gyrolock import Config
from gyrolock.auth import AuthenticationStateMachine, ReferenceTemplate, Trigger
from gyrolock.dsp import SigmoidNormalizer
from gyrolock.segmentation import MotionSegmenter, suggest_deadband
from gyrolock.source import (ReplaySource, SerialGyroSource, load_recording,
                             save_recording, synthetic_session)
from gyrolock.ui import ConsoleUI, plot_comparison


def build_config(args) -> Config:
    """Config from the common command-line flags."""
    return Config(
        samples_per_session=args.samples,
        sample_rate_hz=args.rate,
        deadband_low=args.deadband_low,
        deadband_high=args.deadband_high,
        accept_threshold=args.threshold,
    )


def _keyboard_reader(triggers: queue.Queue, stop: threading.Event):
    """Turn typed commands into triggers (runs on its own thread)."""
    commands = {'e': Trigger.START_ENROLLMENT, 'v': Trigger.START_VERIFICATION}
    for line in sys.stdin:
        key = line.strip().lower()[:1]
        if key == 'q':
            break
        if key in commands:
            triggers.put(commands[key])
        elif key:
            print("\n[UI] keys: e = record password, v = unlock, q = quit")
    stop.set()


def cmd_run(args):
    """Live session over a serial gyro."""
    config = build_config(args)
    config.serial_baudrate = args.baud

    print("\n" + "=" * 60)
    print("  GyroLock - Live Session")
    print("=" * 60)
    print(f"\nPort: {args.port} @ {config.serial_baudrate}")
    print(f"Session: {config.samples_per_session} samples "
          f"({config.session_duration_sec:.1f}s at {config.sample_rate_hz:g} Hz)")
    print("\nType 'e' + Enter to record the password, 'v' + Enter to unlock,")
    print("'q' + Enter to quit.\n")

    ui = ConsoleUI(config, quiet_lights=not args.show_leds)
    machine = AuthenticationStateMachine(config, ui=ui)

    triggers: queue.Queue = queue.Queue()
    stop = threading.Event()
    reader = threading.Thread(target=_keyboard_reader, args=(triggers, stop),
                              daemon=True)
    reader.start()

    try:
        with SerialGyroSource(args.port, config, stop=stop) as source:
            ticks = machine.run(source, triggers=triggers, stop=stop)
        print(f"\nSession ended after {ticks} frames")
    except KeyboardInterrupt:
        print("\n\nStopping...")


def _enroll_and_verify(config: Config, enroll_rates, attempts, ui=None):
    """
    Enroll from one recording, then verify each attempt.

    Returns:
        List of (name, VerificationResult or None) per attempt
    """
    machine = AuthenticationStateMachine(config, ui=ui)
    n = config.samples_per_session

    if len(enroll_rates) < n:
        print(f"[REPLAY] Enrollment recording has fewer than {n} samples")
        return []

    machine.start_enrollment()
    machine.run(ReplaySource(enroll_rates), max_ticks=n)

    outcomes = []
    for name, rates in attempts:
        if len(rates) < n:
            print(f"[REPLAY] {name}: fewer than {n} samples, skipped")
            outcomes.append((name, None))
            continue
        machine.start_verification()
        results = []
        machine.run(ReplaySource(rates), max_ticks=n, on_result=results.append)
        outcomes.append((name, results[0]))
    return outcomes


def cmd_simulate(args):
    """Synthetic enroll/verify demo."""
    config = build_config(args)

    print("\n" + "=" * 60)
    print("  GyroLock - Simulation")
    print("=" * 60)

    seed = args.seed
    enroll = synthetic_session(config, seed=seed)
    attempts = [
        ("same gesture", synthetic_session(config, seed=seed + 1)),
        ("late start", synthetic_session(config, onset=16, seed=seed + 2)),
        ("other gesture", synthetic_session(config, amplitude=(-3.0, 1.0, 4.0),
                                            duration=40, seed=seed + 3)),
        ("no motion", synthetic_session(config, amplitude=(0.0, 0.0, 0.0),
                                        seed=seed + 4)),
    ]

    if args.save_dir:
        save_recording(f"{args.save_dir}/enroll.csv", enroll)
        for name, rates in attempts:
            save_recording(f"{args.save_dir}/{name.replace(' ', '_')}.csv", rates)
        print(f"Recordings written to {args.save_dir}/")

    outcomes = _enroll_and_verify(config, enroll, attempts)

    print("\n" + "-" * 60)
    print("Results:")
    print("-" * 60)
    for name, result in outcomes:
        if result is not None:
            print(f"  {name:<14} {result.describe()}")


def cmd_replay(args):
    """Offline enroll + verify from CSV recordings."""
    config = build_config(args)

    enroll = load_recording(args.enroll)
    attempts = [(path, load_recording(path)) for path in args.attempts]

    print(f"\n[REPLAY] Enrolling from {args.enroll}")
    outcomes = _enroll_and_verify(config, enroll, attempts)

    accepted = 0
    for name, result in outcomes:
        if result is None:
            continue
        accepted += result.accepted
        print(f"  {name}: {result.describe()}")
    print(f"\n✓ {accepted}/{len(attempts)} attempts accepted")


def cmd_calibrate(args):
    """Record the sensor at rest and suggest deadband edges."""
    config = build_config(args)
    n_frames = int(args.seconds * config.sample_rate_hz)

    print("\n" + "=" * 60)
    print("  GyroLock - Deadband Calibration")
    print("=" * 60)
    print("\nKeep the device still.\n")

    if args.csv:
        source = ReplaySource.from_csv(args.csv)
    else:
        config.serial_baudrate = args.baud
        source = SerialGyroSource(args.port, config)

    frames = []
    with source:
        for _ in range(n_frames):
            try:
                frames.append(source.read_frame().as_array())
            except EOFError:
                break

    if not frames:
        print("No samples recorded")
        sys.exit(1)

    normalized = SigmoidNormalizer().normalize_array(np.array(frames))
    low, high = suggest_deadband(normalized, margin=args.margin)

    print(f"Recorded {len(frames)} frames")
    for k, axis in enumerate("xyz"):
        col = normalized[:, k]
        print(f"  {axis}: min={col.min():.4f}  max={col.max():.4f}  std={col.std():.4f}")
    print(f"\n✓ Suggested deadband: [{low:.3f}, {high:.3f}]")
    print(f"\nUse: --deadband-low {low:.3f} --deadband-high {high:.3f}")


def cmd_plot(args):
    """Plot an attempt against the enrolled template."""
    config = build_config(args)
    n = config.samples_per_session

    enroll = load_recording(args.enroll)
    attempt = load_recording(args.attempt)
    if len(enroll) < n or len(attempt) < n:
        print(f"Both recordings need at least {n} samples")
        sys.exit(1)

    outcomes = _enroll_and_verify(config, enroll, [(args.attempt, attempt)])
    result = outcomes[0][1] if outcomes else None

    normalizer = SigmoidNormalizer()
    segmenter = MotionSegmenter(config)
    template = ReferenceTemplate(*segmenter.extract_axes(normalizer.normalize_array(enroll[:n])))
    segments = segmenter.extract_axes(normalizer.normalize_array(attempt[:n]))

    plot_comparison(template, segments, result=result, save_path=args.out)


def main():
    default = Config()

    parser = argparse.ArgumentParser(
        description="GyroLock - Gesture Unlocking with a 3-Axis Gyroscope",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py run --port /dev/ttyACM0      # Live session
    python main.py simulate --save-dir data     # Demo + write recordings
    python main.py replay data/enroll.csv data/same_gesture.csv
    python main.py calibrate --csv data/no_motion.csv
    python main.py plot data/enroll.csv data/other_gesture.csv --out cmp.png
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # Common arguments
    def add_common_args(p):
        p.add_argument('--samples', type=int, default=default.samples_per_session,
                       help=f'Samples per session (default: {default.samples_per_session})')
        p.add_argument('--rate', type=float, default=default.sample_rate_hz,
                       help=f'Sampling rate in Hz (default: {default.sample_rate_hz:g})')
        p.add_argument('--deadband-low', type=float, default=default.deadband_low,
                       help=f'Lower deadband edge (default: {default.deadband_low})')
        p.add_argument('--deadband-high', type=float, default=default.deadband_high,
                       help=f'Upper deadband edge (default: {default.deadband_high})')
        p.add_argument('--threshold', type=float, default=default.accept_threshold,
                       help=f'Max DTW distance per axis (default: {default.accept_threshold:g})')

    def add_serial_args(p, required=True):
        p.add_argument('--port', required=required,
                       help='Serial port (e.g., /dev/ttyACM0, COM3)')
        p.add_argument('--baud', type=int, default=default.serial_baudrate,
                       help=f'Baud rate (default: {default.serial_baudrate})')

    # Run command
    p_run = subparsers.add_parser('run', help='Live session over serial')
    add_common_args(p_run)
    add_serial_args(p_run)
    p_run.add_argument('--show-leds', action='store_true',
                       help='Print every indicator change')

    # Simulate command
    p_sim = subparsers.add_parser('simulate', help='Synthetic demo')
    add_common_args(p_sim)
    p_sim.add_argument('--seed', type=int, default=0,
                       help='Random seed (default: 0)')
    p_sim.add_argument('--save-dir', type=str, default=None,
                       help='Write the generated recordings as CSV here')

    # Replay command
    p_replay = subparsers.add_parser('replay', help='Offline enroll + verify')
    add_common_args(p_replay)
    p_replay.add_argument('enroll', help='Enrollment recording (CSV)')
    p_replay.add_argument('attempts', nargs='+', help='Attempt recordings (CSV)')

    # Calibrate command
    p_cal = subparsers.add_parser('calibrate', help='Suggest deadband edges')
    add_common_args(p_cal)
    add_serial_args(p_cal, required=False)
    p_cal.add_argument('--csv', type=str, default=None,
                       help='Use a rest recording instead of the serial port')
    p_cal.add_argument('--seconds', type=float, default=3.0,
                       help='Rest recording length (default: 3.0)')
    p_cal.add_argument('--margin', type=float, default=0.05,
                       help='Extra room beyond observed noise (default: 0.05)')

    # Plot command
    p_plot = subparsers.add_parser('plot', help='Template vs attempt plot')
    add_common_args(p_plot)
    p_plot.add_argument('enroll', help='Enrollment recording (CSV)')
    p_plot.add_argument('attempt', help='Attempt recording (CSV)')
    p_plot.add_argument('--out', type=str, default=None,
                        help='Save figure to this path instead of showing it')

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == 'calibrate' and not (args.csv or args.port):
        parser.error("calibrate needs --port or --csv")

    # Dispatch
    commands = {
        'run': cmd_run,
        'simulate': cmd_simulate,
        'replay': cmd_replay,
        'calibrate': cmd_calibrate,
        'plot': cmd_plot,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
