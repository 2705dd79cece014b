"""
Import tests: every entry point loads in a fresh interpreter.
"""

import subprocess

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

ROOT = Path(__file__).parent.parent


def import_fresh(module: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=str(ROOT), capture_output=True, text=True
    )


class TestImports:
    """Tests for package import order."""

    @pytest.mark.parametrize("module", [
        "lockbox_control",
        "lockbox_control.hardware",
        "lockbox_control.hardware.mock_client",
        "lockbox_control.analyzer.frequency_response",
        "lockbox_control.core.lockbox",
        "lockbox_control.simulation",
        "lockbox_control.utils.noise",
        "lockbox_control.config",
    ])
    def test_fresh_import(self, module):
        """No circular import, whichever module is loaded first."""
        result = import_fresh(module)
        assert result.returncode == 0, result.stderr

    def test_public_names(self):
        import lockbox_control
        for name in lockbox_control.__all__:
            assert hasattr(lockbox_control, name)
        assert lockbox_control.__version__ == "1.0.0"

    def test_noise_reexported(self):
        from lockbox_control.hardware import GaussianNoise as from_hardware
        from lockbox_control.utils.noise import GaussianNoise
        assert from_hardware is GaussianNoise


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
