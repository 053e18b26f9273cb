"""
VowelSeg Test Configuration

Helpers for building feature rows, records and tables, and for running
the CLI as a subprocess.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

from vowelseg.config import ToleranceConfig
from vowelseg.features import MATRIX_HEADER, FeatureRecord, parse_line


REPO_ROOT = Path(__file__).parent.parent

# Values of a loud, steady vowel frame
VOICED = {"intensity": 70, "pitch": 120, "f1": 500, "f2": 1500, "f3": 2500}


def run_cli(*args: str, cwd: str | None = None) -> subprocess.CompletedProcess:
    """Run vowelseg CLI as subprocess."""
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "vowelseg", *args],
        capture_output=True,
        text=True,
        cwd=cwd,
        env=env,
    )


def make_row(time_ms: int, **overrides) -> str:
    """
    Build a feature table row (no MFCCs) at time_ms.
    
    Keyword overrides: intensity, pitch, f1, f2, f3 (use the string
    "--undefined--" to emit the sentinel).
    """
    values = {**VOICED, **overrides}
    return ",".join([
        f"{time_ms / 1000:.6f}",
        str(values["intensity"]),
        str(values["pitch"]),
        str(values["f1"]),
        str(values["f2"]),
        str(values["f3"]),
    ])


def make_record(time_ms: int, **overrides) -> FeatureRecord:
    """Parsed record for make_row(time_ms, **overrides)."""
    return parse_line(make_row(time_ms, **overrides))


def write_table(path: Path, rows: list[str]) -> Path:
    """Write a feature table with the expected header."""
    path.write_text("\n".join([MATRIX_HEADER, *rows]) + "\n")
    return path


@pytest.fixture
def five_frame_config() -> ToleranceConfig:
    """Segments of 5 frames at a 20 ms step, default tolerances."""
    config = ToleranceConfig(time_step=0.02, extract_seconds=0.1)
    assert config.frames_per_segment == 5
    return config
