"""
Loop analysis using the python-control library.
Provides margins, closed-loop poles and stability for a PID around a plant.
"""

from typing import Dict, Any, Tuple, Optional
import numpy as np
import control as ct

from lockbox_control.core.discretizer import pid_polynomials
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.transfer_function import TransferFunction, coefficients


class ControlSystemAnalyzer:
    """Analyze lock loops using python-control."""

    @staticmethod
    def to_control(tf: TransferFunction) -> ct.TransferFunction:
        """Convert a zero/pole/gain TransferFunction to python-control form."""
        num, den = coefficients(tf)
        return ct.TransferFunction(num, den)

    @staticmethod
    def pid_transfer_function(spec: PIDSpec) -> ct.TransferFunction:
        """Continuous PID C(s) = Kp + Ki/s + Kd*N*s/(s + N)."""
        num, den = pid_polynomials(spec)
        return ct.TransferFunction(num, den)

    @staticmethod
    def bode_data(sys: ct.TransferFunction, frequencies: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Magnitude (dB) and phase (deg) at frequencies in Hz."""
        omega = 2 * np.pi * np.asarray(frequencies, dtype=float)
        h = np.asarray(sys(1j * omega)).ravel()
        with np.errstate(divide='ignore'):
            mag_db = 20 * np.log10(np.abs(h))
        return mag_db, np.rad2deg(np.unwrap(np.angle(h)))

    @staticmethod
    def stability_margins(loop: ct.TransferFunction) -> Dict[str, float]:
        """Gain and phase margins of an open-loop transfer function."""
        gm, pm, wg, wp = ct.margin(loop)
        return {
            'gain_margin': float(gm),
            'gain_margin_db': 20 * np.log10(gm) if np.isfinite(gm) and gm > 0 else np.inf,
            'phase_margin_deg': float(pm),
            'phase_crossover_freq': float(wg) / (2 * np.pi),
            'gain_crossover_freq': float(wp) / (2 * np.pi),
        }

    @staticmethod
    def is_stable(sys: ct.TransferFunction) -> bool:
        """Check if system is stable (all poles in left half-plane)."""
        return bool(np.all(np.real(ct.poles(sys)) < 0))

    @staticmethod
    def closed_loop(plant: ct.TransferFunction,
                    controller: ct.TransferFunction) -> ct.TransferFunction:
        """Reference to measurement: C*G / (1 + C*G)."""
        return ct.feedback(controller * plant, 1)

    @staticmethod
    def sensitivity(plant: ct.TransferFunction,
                    controller: ct.TransferFunction) -> ct.TransferFunction:
        """Disturbance rejection S = 1/(1 + C*G)."""
        return ct.feedback(ct.TransferFunction([1], [1]), controller * plant)

    @staticmethod
    def analyze_loop(plant: TransferFunction, spec: PIDSpec,
                     step_time: Optional[float] = None) -> Dict[str, Any]:
        """
        Complete loop analysis of a PID locking a plant.

        Args:
            plant: Plant model
            spec: Controller parameters
            step_time: Horizon for step_info (python-control default if None)

        Returns:
            Dictionary with closed-loop system, poles, stability, margins,
            DC gain and (for stable loops) step characteristics
        """
        analyzer = ControlSystemAnalyzer
        G = analyzer.to_control(plant)
        C = analyzer.pid_transfer_function(spec)
        loop = C * G
        cl_sys = analyzer.closed_loop(G, C)
        stable = analyzer.is_stable(cl_sys)

        result = {
            'closed_loop_tf': cl_sys,
            'poles': ct.poles(cl_sys),
            'is_stable': stable,
            'margins': analyzer.stability_margins(loop),
            'dc_gain': float(np.real(ct.dcgain(cl_sys))) if stable else np.nan,
        }
        if stable:
            result['step_info'] = ct.step_info(cl_sys, T=step_time)
        return result
