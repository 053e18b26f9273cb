"""
VowelSeg Homogeneity Evaluator.

Measures how far pitch, F1 and F2 spread across a window and compares
each spread with its configured percent tolerance.

Rules:
    - Spread is the percent difference between the window min and max
    - A zero value on either side yields PERCENT_SENTINEL, which no
      tolerance accepts
    - All three dimensions must pass; one failure rejects the window
    - Pure: evaluation never mutates the records it is given
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from vowelseg.config import ToleranceConfig
from vowelseg.features import FeatureRecord


# Larger than any tolerance a caller would configure
PERCENT_SENTINEL = 1000.0

FLAG_PITCH = "P"
FLAG_F1 = "1"
FLAG_F2 = "2"


def percent_difference(a: float, b: float) -> float:
    """
    Symmetric relative spread between two values, in percent.

    Returns:
        0 if a == b; PERCENT_SENTINEL if either is 0;
        otherwise 100 * (max(a, b) / min(a, b) - 1).
    """
    if a == b:
        return 0.0
    if a == 0 or b == 0:
        return PERCENT_SENTINEL
    quotient = a / b if a > b else b / a
    return 100.0 * (quotient - 1.0)


@dataclass(frozen=True)
class Spread:
    """Min/max of one dimension across a window, and their percent difference."""
    low: int
    high: int
    percent: float

    @classmethod
    def of(cls, values: np.ndarray) -> "Spread":
        low = int(values.min())
        high = int(values.max())
        return cls(low=low, high=high, percent=percent_difference(low, high))


@dataclass(frozen=True)
class WindowEvaluation:
    """
    Result of evaluating one window.

    Attributes:
        start_ms: Earliest frame time in the window
        pitch: Pitch spread
        f1: First formant spread
        f2: Second formant spread
        flags: Three characters, "P", "1", "2" for failing dimensions,
            space for passing ones (e.g. "P 2")
    """
    start_ms: int
    pitch: Spread
    f1: Spread
    f2: Spread
    flags: str

    @property
    def accepted(self) -> bool:
        return not self.flags.strip()

    @property
    def failed_dimensions(self) -> tuple[str, ...]:
        return tuple(c for c in self.flags if c != " ")


def evaluate_window(records: Sequence[FeatureRecord], config: ToleranceConfig) -> WindowEvaluation:
    """
    Evaluate a full window against the configured tolerances.

    Args:
        records: Window frames (order does not matter)
        config: Tolerances

    Returns:
        WindowEvaluation with per-dimension spreads and failure flags.

    Raises:
        ValueError: If records is empty.
    """
    if not records:
        raise ValueError("cannot evaluate an empty window")

    table = np.array(
        [(r.time_ms, r.pitch_hz, r.f1_hz, r.f2_hz) for r in records],
        dtype=np.int64,
    )
    pitch = Spread.of(table[:, 1])
    f1 = Spread.of(table[:, 2])
    f2 = Spread.of(table[:, 3])

    flags = "".join([
        FLAG_PITCH if pitch.percent > config.pitch_tolerance else " ",
        FLAG_F1 if f1.percent > config.f1_tolerance else " ",
        FLAG_F2 if f2.percent > config.f2_tolerance else " ",
    ])

    return WindowEvaluation(
        start_ms=int(table[:, 0].min()),
        pitch=pitch,
        f1=f1,
        f2=f2,
        flags=flags,
    )


def format_evaluation(evaluation: WindowEvaluation) -> str:
    """One diagnostic line, e.g. '      200: [P  ] P:[100,200](100.0) F1:...'."""
    def dim(label: str, spread: Spread) -> str:
        return f"{label}:[{spread.low},{spread.high}]({spread.percent:.1f})"

    return (
        f"{evaluation.start_ms:>9}: [{evaluation.flags}] "
        f"{dim('P', evaluation.pitch)} {dim('F1', evaluation.f1)} {dim('F2', evaluation.f2)}"
    )
