#!/usr/bin/env python3
"""
Analyzer Demo

Demonstrates:
- Swept-sine network analysis of the mock plant
- Averaged power spectral density of the mock input
- Bode and PSD plots
"""

import logging
import sys
from pathlib import Path

import numpy as np

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lockbox_control.analyzer.frequency_response import NetworkAnalyzer
from lockbox_control.analyzer.plots import LockboxPlotter
from lockbox_control.analyzer.spectrum import SpectrumAnalyzer
from lockbox_control.config import HardwareConfig, NetworkAnalyzerConfig, SpectrumAnalyzerConfig
from lockbox_control.hardware.mock_client import MockRedPitaya
from lockbox_control.utils.noise import GaussianNoise


def main():
    print("=" * 60)
    print("Analyzer Demo")
    print("=" * 60)

    hardware = MockRedPitaya(
        HardwareConfig(sample_rate=1e6, noise_level=1e-3),
        noise_source=GaussianNoise(seed=1)
    )
    hardware.connect()

    na = NetworkAnalyzer(hardware, NetworkAnalyzerConfig(excitation_amplitude=0.1))
    frequencies = np.logspace(2, 5, 40)
    sweep = na.sweep(frequencies)
    print(f"\nSweep: {len(sweep)} points")
    print(f"  gain at {sweep.frequency[0]:.0f} Hz: {sweep.gain_db[0]:.2f} dB")
    print(f"  gain at {sweep.frequency[-1]:.0f} Hz: {sweep.gain_db[-1]:.2f} dB")

    sa = SpectrumAnalyzer(hardware, SpectrumAnalyzerConfig(input_channel=2, fft_length=8192))
    spectrum = sa.acquire()
    peak_f, peak_psd = spectrum.peak()
    print(f"\nSpectrum: {len(spectrum)} bins, {spectrum.resolution:.1f} Hz resolution")
    print(f"  peak {peak_psd:.3e} V^2/Hz at {peak_f:.0f} Hz")

    plotter = LockboxPlotter()
    plotter.plot_bode(sweep, title="Mock Plant")
    plotter.plot_spectrum(spectrum)
    print("\nClose plot windows to exit.")
    plotter.show()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    main()
