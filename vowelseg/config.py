"""
VowelSeg Configuration - Per-run tolerance parameters.

Responsibilities:
- Hold the immutable analysis and tolerance parameters for one run
- Derive the number of frames per extracted segment
- Validate everything before any stream is opened

Invariants:
- ToleranceConfig is frozen; one instance per run
- frames_per_segment never exceeds buffer_capacity
- All numeric parameters are strictly positive
"""

import argparse
import math
from dataclasses import dataclass, fields

from vowelseg.errors import ConfigurationError


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_TIME_STEP = 0.02  # seconds
DEFAULT_WINDOW = 0.25  # seconds, formant analysis window
DEFAULT_MAX_FORMANT = 5500  # Hz; 5500 for female, 5000 for male voices
DEFAULT_PITCH_TOLERANCE = 12.0  # percent
DEFAULT_F1_TOLERANCE = 15.0  # percent
DEFAULT_F2_TOLERANCE = 20.0  # percent
DEFAULT_EXTRACT_SECONDS = 0.5
DEFAULT_MINIMUM_INTENSITY = 55  # dB
BUFFER_CAPACITY = 100  # frames


# =============================================================================
# ToleranceConfig
# =============================================================================


@dataclass(frozen=True)
class ToleranceConfig:
    """
    Frozen per-run parameters consumed by the analysis and the engine.

    Attributes:
        time_step: Analysis time step (seconds)
        window: Formant analysis window width (seconds)
        max_formant: Maximum formant frequency (Hz)
        pitch_tolerance: Max allowed percent spread of pitch in a segment
        f1_tolerance: Max allowed percent spread of F1 in a segment
        f2_tolerance: Max allowed percent spread of F2 in a segment
        extract_seconds: Fixed duration of an extracted segment (seconds)
        minimum_intensity: Intensity floor for a voiced frame (dB)
        buffer_capacity: Fixed capacity of the engine's ring buffer (frames)
    """
    time_step: float = DEFAULT_TIME_STEP
    window: float = DEFAULT_WINDOW
    max_formant: int = DEFAULT_MAX_FORMANT
    pitch_tolerance: float = DEFAULT_PITCH_TOLERANCE
    f1_tolerance: float = DEFAULT_F1_TOLERANCE
    f2_tolerance: float = DEFAULT_F2_TOLERANCE
    extract_seconds: float = DEFAULT_EXTRACT_SECONDS
    minimum_intensity: int = DEFAULT_MINIMUM_INTENSITY
    buffer_capacity: int = BUFFER_CAPACITY

    @property
    def frames_per_segment(self) -> int:
        """Frames in one segment, rounded half up."""
        return int(math.floor(0.5 + self.extract_seconds / self.time_step))

    def validate(self) -> "ToleranceConfig":
        """
        Check every parameter and the derived segment length.

        Returns:
            self, so construction and validation can be chained.

        Raises:
            ConfigurationError: On a non-positive parameter, or when a
                segment does not fit in the ring buffer.
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{f.name} must be positive, got {value}")

        frames = self.frames_per_segment
        if frames < 1:
            raise ConfigurationError(
                f"time step {self.time_step}s is longer than a "
                f"{self.extract_seconds}s segment"
            )
        if frames > self.buffer_capacity:
            raise ConfigurationError(
                f"buffer capacity is {self.buffer_capacity} frames, which is not "
                f"sufficient to store a segment of {frames} frames"
            )
        return self

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ToleranceConfig":
        """Build and validate a config from parsed CLI arguments."""
        return cls(
            time_step=args.time_step,
            window=args.window,
            max_formant=args.max_formant,
            pitch_tolerance=args.pitch_percent,
            f1_tolerance=args.f1_percent,
            f2_tolerance=args.f2_percent,
        ).validate()

    def to_dict(self) -> dict:
        """Serialize to dictionary (includes derived frames_per_segment)."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["frames_per_segment"] = self.frames_per_segment
        return data
