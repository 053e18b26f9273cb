"""
VowelSeg RunContext - Per-run paths and configuration.

Responsibilities:
- Hold all paths and configuration for a run
- Derive output names from the input base name
- Serialization for debugging/logging

Invariants:
- Immutable during a run
- base_path is the input path with its extension removed
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vowelseg.audio import DEFAULT_FFMPEG
from vowelseg.config import ToleranceConfig
from vowelseg.features import FILE_EXT_DATA


WORKING_SUFFIX = "_TEMP"


@dataclass(frozen=True)
class RunContext:
    """Context passed from the CLI through the pipeline to the sink."""

    input_audio: Path
    config: ToleranceConfig = field(default_factory=ToleranceConfig)
    features_path: Path | None = None
    dry_run: bool = False
    ffmpeg: str = DEFAULT_FFMPEG
    summary_json: Path | None = None

    @property
    def base_path(self) -> Path:
        """Input path without its extension (e.g. 'rec/a.wav' -> 'rec/a')."""
        return self.input_audio.with_suffix("")

    @property
    def feature_table_path(self) -> Path:
        """Supplied table if any, else '<base>.txt' written by the analysis."""
        if self.features_path is not None:
            return self.features_path
        return self.base_path.with_name(self.base_path.name + FILE_EXT_DATA)

    @property
    def working_path(self) -> Path:
        """'<base>_TEMP.txt', the in-progress segment table."""
        return self.base_path.with_name(self.base_path.name + WORKING_SUFFIX + FILE_EXT_DATA)

    def segment_path(self, stem: str, suffix: str) -> Path:
        """Output path for a segment stem in the input's directory."""
        return self.base_path.with_name(stem + suffix)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "input_audio": str(self.input_audio),
            "features_path": str(self.feature_table_path),
            "dry_run": self.dry_run,
            "ffmpeg": self.ffmpeg,
            "config": self.config.to_dict(),
        }
