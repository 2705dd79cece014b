"""
Plotting utilities for lockbox measurements and simulations.
"""

from typing import Dict, Optional, Tuple
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from lockbox_control.analyzer.frequency_response import SweepResult
from lockbox_control.analyzer.spectrum import SpectrumResult


class LockboxPlotter:
    """
    Plotting for network analyzer sweeps, spectra and lock simulations.

    Every method returns the Figure; nothing is shown unless show() is called.
    """

    def __init__(self, style: str = 'seaborn-v0_8-whitegrid'):
        """
        Initialize plotter.

        Args:
            style: Matplotlib style to use
        """
        if style in plt.style.available:
            plt.style.use(style)

        self._colors = {
            'setpoint': '#2ecc71',
            'measurement': '#3498db',
            'error': '#e74c3c',
            'output': '#9b59b6',
            'disturbance': '#f39c12',
            'reference': '#7f8c8d',
        }

    def plot_bode(
        self,
        sweep: SweepResult,
        model: Optional[Tuple[np.ndarray, np.ndarray]] = None,
        title: str = "Frequency Response",
        figsize: Tuple[int, int] = (10, 7)
    ) -> Figure:
        """
        Bode plot of a swept-sine measurement.

        Args:
            sweep: Network analyzer result
            model: Optional (gain, phase in rad) overlay at sweep.frequency
            title: Plot title
            figsize: Figure size

        Returns:
            Matplotlib Figure
        """
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize, sharex=True)

        ax1.semilogx(sweep.frequency, sweep.gain_db, 'o-', color=self._colors['measurement'],
                     markersize=3, label='Measured')
        ax2.semilogx(sweep.frequency, sweep.phase_deg, 'o-', color=self._colors['measurement'],
                     markersize=3, label='Measured')
        if model is not None:
            gain, phase = model
            with np.errstate(divide='ignore'):
                ax1.semilogx(sweep.frequency, 20 * np.log10(gain), '--',
                             color=self._colors['reference'], label='Model')
            ax2.semilogx(sweep.frequency, np.rad2deg(phase), '--',
                         color=self._colors['reference'], label='Model')

        ax1.set_ylabel('Gain (dB)')
        ax1.set_title(title, fontsize=14, fontweight='bold')
        ax1.legend(loc='best')
        ax1.grid(True, which='both', alpha=0.3)

        ax2.set_xlabel('Frequency (Hz)')
        ax2.set_ylabel('Phase (deg)')
        ax2.grid(True, which='both', alpha=0.3)

        plt.tight_layout()
        return fig

    def plot_spectrum(
        self,
        spectrum: SpectrumResult,
        title: str = "Power Spectral Density",
        figsize: Tuple[int, int] = (10, 5)
    ) -> Figure:
        """
        Plot an averaged PSD on log axes (DC bin omitted).

        Args:
            spectrum: Spectrum analyzer result
            title: Plot title
            figsize: Figure size

        Returns:
            Matplotlib Figure
        """
        fig, ax = plt.subplots(figsize=figsize)

        ax.loglog(spectrum.frequency[1:], spectrum.psd[1:], '-', color=self._colors['measurement'],
                  linewidth=1)
        ax.set_xlabel('Frequency (Hz)')
        ax.set_ylabel('PSD (V$^2$/Hz)')
        subtitle = f"{spectrum.window} window, {spectrum.averages} averages"
        if spectrum.window_substituted:
            subtitle += f" ('{spectrum.requested_window}' unknown)"
        ax.set_title(f"{title}\n{subtitle}", fontsize=12)
        ax.grid(True, which='both', alpha=0.3)

        plt.tight_layout()
        return fig

    def plot_lock_simulation(
        self,
        simulation,
        title: str = "Lock Simulation",
        figsize: Tuple[int, int] = (12, 8)
    ) -> Figure:
        """
        Plot a closed-loop lock simulation.

        Args:
            simulation: LockSimulation (time, disturbance, output, error)
            title: Plot title
            figsize: Figure size

        Returns:
            Matplotlib Figure
        """
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize, sharex=True)
        t_ms = simulation.time * 1e3

        ax1.plot(t_ms, simulation.disturbance, '-', color=self._colors['disturbance'],
                 linewidth=1, label='Disturbance')
        ax1.plot(t_ms, simulation.error, '-', color=self._colors['error'],
                 linewidth=1.5, label='Residual error')
        ax1.set_ylabel('Signal')
        ax1.set_title(title, fontsize=14, fontweight='bold')
        ax1.legend(loc='upper right')
        ax1.grid(True, alpha=0.3)

        ax2.plot(t_ms, simulation.output, '-', color=self._colors['output'],
                 linewidth=1.5, label='Loop output')
        ax2.set_xlabel('Time (ms)')
        ax2.set_ylabel('Output')
        ax2.legend(loc='upper right')
        ax2.grid(True, alpha=0.3)
        ax2.axhline(y=0, color='gray', linestyle=':', alpha=0.5)

        plt.tight_layout()
        return fig

    def plot_simulation(
        self,
        result,
        title: str = "Scenario Response",
        figsize: Tuple[int, int] = (12, 8),
        show_error: bool = True
    ) -> Figure:
        """
        Plot a scenario simulation: setpoint, measurement and controller output.

        Args:
            result: SimulationResult
            title: Plot title
            figsize: Figure size
            show_error: Whether to show error on secondary axis

        Returns:
            Matplotlib Figure
        """
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize, sharex=True)

        ax1.plot(result.timestamps, result.setpoints, '--', color=self._colors['setpoint'],
                 linewidth=2, label='Setpoint')
        ax1.plot(result.timestamps, result.measurements, '-', color=self._colors['measurement'],
                 linewidth=1.5, label='Measurement')
        ax1.set_ylabel('Value')
        ax1.set_title(title, fontsize=14, fontweight='bold')
        ax1.legend(loc='upper left')
        ax1.grid(True, alpha=0.3)

        if show_error:
            ax_err = ax1.twinx()
            ax_err.plot(result.timestamps, result.errors, '-', color=self._colors['error'],
                        linewidth=1, alpha=0.7, label='Error')
            ax_err.set_ylabel('Error', color=self._colors['error'])
            ax_err.tick_params(axis='y', labelcolor=self._colors['error'])

        ax2.plot(result.timestamps, result.outputs, '-', color=self._colors['output'],
                 linewidth=1.5, label='Output')
        ax2.set_xlabel('Time (s)')
        ax2.set_ylabel('Controller Output')
        ax2.grid(True, alpha=0.3)

        plt.tight_layout()
        return fig

    def plot_step_log(
        self,
        data: Dict[str, np.ndarray],
        title: str = "Lock Log",
        figsize: Tuple[int, int] = (12, 8)
    ) -> Figure:
        """
        Plot a step log read back with load_log.

        Uses the "time" column when present, otherwise the step index.
        """
        if 'time' in data and not np.all(np.isnan(data['time'])):
            x, xlabel = data['time'], 'Time (s)'
        else:
            x, xlabel = data.get('step', np.arange(len(data.get('output', [])))), 'Step'

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize, sharex=True)
        for name in ('setpoint', 'measurement', 'error'):
            if name in data:
                style = '--' if name == 'setpoint' else '-'
                ax1.plot(x, data[name], style, color=self._colors[name],
                         linewidth=1.2, label=name.capitalize())
        ax1.set_ylabel('Signal')
        ax1.set_title(title, fontsize=14, fontweight='bold')
        ax1.legend(loc='upper right')
        ax1.grid(True, alpha=0.3)

        if 'output' in data:
            ax2.plot(x, data['output'], '-', color=self._colors['output'],
                     linewidth=1.2, label='Output')
        ax2.set_xlabel(xlabel)
        ax2.set_ylabel('Output')
        ax2.grid(True, alpha=0.3)

        plt.tight_layout()
        return fig

    @staticmethod
    def show():
        """Display all open plots."""
        plt.show()

    @staticmethod
    def save(fig: Figure, path: str, dpi: int = 150):
        """Save figure to file."""
        fig.savefig(path, dpi=dpi, bbox_inches='tight')
