#!/usr/bin/env python3
"""
Convenient executable script to plot lockbox CSV logs.

Usage:
    python plot_lock_log.py <csv_file> [options]

Examples:
    python plot_lock_log.py lock.csv
    python plot_lock_log.py lock.csv --spectrum --window blackman
    python plot_lock_log.py lock.csv --all --save plots/
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from lockbox_control.analyzer.plots import LockboxPlotter
from lockbox_control.analyzer.spectrum import SpectrumEstimator
from lockbox_control.logging.csv_logger import load_log


def error_spectrum(data, window: str, averages: int):
    """Averaged PSD of the logged error, using the largest even block that fits."""
    error = data['error'][~np.isnan(data['error'])]
    time = data.get('time')
    if time is None or time.size < 2 or np.all(np.isnan(time)):
        raise ValueError("log has no usable 'time' column")
    sample_rate = 1.0 / float(np.nanmedian(np.diff(time)))

    fft_length = (error.size // averages) & ~1
    if fft_length < 2:
        raise ValueError(f"log too short for {averages} averages")

    position = 0

    def source(channel, count):
        nonlocal position
        block = error[position:position + count]
        position += count
        return block

    estimator = SpectrumEstimator(source, sample_rate, fft_length=fft_length,
                                  window=window, averages=averages)
    return estimator.acquire()


def main():
    parser = argparse.ArgumentParser(
        description='Plot lockbox control logs from CSV files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s lock.csv
  %(prog)s lock.csv --spectrum --averages 8
  %(prog)s lock.csv --all --save output_dir/
        """
    )

    parser.add_argument('csv_file', type=str, help='Path to CSV log file')
    parser.add_argument('-r', '--response', action='store_true',
                        help='Plot logged signals (default if no other plot specified)')
    parser.add_argument('-s', '--spectrum', action='store_true',
                        help='Plot the error PSD')
    parser.add_argument('-a', '--all', action='store_true',
                        help='Generate all available plots')
    parser.add_argument('--window', type=str, default='hann',
                        help='Window for the error PSD (default: hann)')
    parser.add_argument('--averages', type=int, default=4,
                        help='Periodogram averages for the error PSD (default: 4)')
    parser.add_argument('--save', type=str, metavar='DIR',
                        help='Save plots to directory instead of displaying')
    parser.add_argument('--dpi', type=int, default=150,
                        help='DPI for saved figures (default: 150)')

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    csv_path = Path(args.csv_file)
    if not csv_path.exists():
        print(f"Error: CSV file not found: {csv_path}", file=sys.stderr)
        sys.exit(1)

    print(f"Loading lock log from: {csv_path}")
    data = load_log(str(csv_path))
    print(f"Loaded {len(next(iter(data.values()), []))} samples")
    print(f"Available columns: {', '.join(data)}")

    if not (args.response or args.spectrum or args.all):
        args.response = True

    plotter = LockboxPlotter()
    figures = []

    if args.response or args.all:
        print("Generating response plot...")
        figures.append(('response', plotter.plot_step_log(data, title=csv_path.stem)))

    if args.spectrum or args.all:
        if 'error' not in data:
            print("  Skipped spectrum: no 'error' column")
        else:
            print("Generating error spectrum...")
            try:
                result = error_spectrum(data, args.window, args.averages)
            except ValueError as e:
                print(f"  Skipped spectrum: {e}")
            else:
                figures.append(('spectrum', plotter.plot_spectrum(result, title='Error PSD')))

    if args.save:
        save_dir = Path(args.save)
        save_dir.mkdir(parents=True, exist_ok=True)
        for name, fig in figures:
            filepath = save_dir / f"{csv_path.stem}_{name}.png"
            LockboxPlotter.save(fig, str(filepath), dpi=args.dpi)
            print(f"  Saved: {filepath}")
    elif figures:
        print(f"\nDisplaying {len(figures)} plot(s)...")
        LockboxPlotter.show()


if __name__ == '__main__':
    main()
