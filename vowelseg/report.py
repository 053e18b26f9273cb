"""
VowelSeg Run Summary Reporter.

Observes engine events and aggregates end-of-run diagnostics. All
output formatting is done by pure functions taking explicit values.
"""

from dataclasses import dataclass, field
from typing import Any

from vowelseg.engine import EngineObserver, SegmentBoundary
from vowelseg.features import FeatureRecord
from vowelseg.homogeneity import FLAG_F1, FLAG_F2, FLAG_PITCH, WindowEvaluation


@dataclass
class RunSummary(EngineObserver):
    """Counters accumulated over one pass."""

    frames: int = 0
    voiced_frames: int = 0
    windows_evaluated: int = 0
    windows_rejected: int = 0
    rejections: dict[str, int] = field(
        default_factory=lambda: {FLAG_PITCH: 0, FLAG_F1: 0, FLAG_F2: 0}
    )
    segments: int = 0
    total_duration_s: float = 0.0

    def on_frame(self, index: int, record: FeatureRecord, voiced: bool) -> None:
        self.frames += 1
        if voiced:
            self.voiced_frames += 1

    def on_window(self, evaluation: WindowEvaluation) -> None:
        self.windows_evaluated += 1
        if not evaluation.accepted:
            self.windows_rejected += 1
            for flag in evaluation.failed_dimensions:
                self.rejections[flag] += 1

    def on_segment(self, boundary: SegmentBoundary) -> None:
        self.segments += 1
        self.total_duration_s += boundary.duration_s

    @property
    def mean_duration_s(self) -> float:
        if self.segments == 0:
            return 0.0
        return self.total_duration_s / self.segments

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "frames": self.frames,
            "voiced_frames": self.voiced_frames,
            "windows_evaluated": self.windows_evaluated,
            "windows_rejected": self.windows_rejected,
            "rejections": {
                "pitch": self.rejections[FLAG_PITCH],
                "f1": self.rejections[FLAG_F1],
                "f2": self.rejections[FLAG_F2],
            },
            "segments": self.segments,
            "total_duration_s": round(self.total_duration_s, 6),
            "mean_duration_s": round(self.mean_duration_s, 6),
        }


def format_extract_line(start_s: float, end_s: float) -> str:
    """e.g. 'EXTRACT:  1.240 to  1.720 (0.480s)'."""
    return f"EXTRACT:{start_s:7.3f} to{end_s:7.3f} ({end_s - start_s:.3f}s)"


def format_summary(frames: int, segments: int, mean_duration_s: float) -> list[str]:
    """End-of-run lines: frame count, then segment count and mean duration."""
    lines = [f"done processing {frames} lines"]
    if segments > 0:
        lines.append(
            f"extracted {segments} segments with mean duration "
            f"{mean_duration_s:.3g} seconds"
        )
    else:
        lines.append("extracted NO segments")
    return lines
