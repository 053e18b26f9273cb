"""
VowelSeg Segmentation Engine - Single-pass sliding-window segmenter.

Per incoming frame, in order:
    1. Ingest: write into the ring at frame_index % frames_per_segment
    2. Voicing: unvoiced -> active_count = 0; voiced -> active_count + 1
    3. Window-full check: continue unless active_count == frames_per_segment
    4. Evaluate the frames_per_segment most recent frames
    5. Accept: hand a SegmentBoundary to the sink, active_count = 0
    6. Reject: active_count - 1 (slide forward one frame and retry)

INVARIANTS:
    - The ring is fixed-size and owned by the engine; only tuple
      snapshots leave it
    - An unvoiced frame discards the whole candidate window
    - A rejected window shrinks by exactly one frame
    - Accepted segments never overlap and are emitted in stream order
    - The sink finishes (or raises) before the next frame is ingested
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from vowelseg.config import ToleranceConfig
from vowelseg.features import FeatureRecord
from vowelseg.homogeneity import WindowEvaluation, evaluate_window, format_evaluation
from vowelseg.voicing import is_voiced

if TYPE_CHECKING:
    from vowelseg.sinks import ExtractionSink


logger = logging.getLogger(__name__)


# =============================================================================
# SegmentBoundary
# =============================================================================


@dataclass(frozen=True)
class SegmentBoundary:
    """
    An accepted window.

    Attributes:
        start_ms: Time of the window's first frame
        end_ms: Time of the window's last frame
        records: Snapshot of the window's frames, oldest first
    """
    start_ms: int
    end_ms: int
    records: tuple[FeatureRecord, ...]

    @property
    def start_s(self) -> float:
        return self.start_ms / 1000.0

    @property
    def end_s(self) -> float:
        return self.end_ms / 1000.0

    @property
    def duration_s(self) -> float:
        return (self.end_ms - self.start_ms) / 1000.0

    def stem(self, base: str) -> str:
        """Output name stem: <base>_<start_ms>_<end_ms>."""
        return f"{base}_{self.start_ms}_{self.end_ms}"


# =============================================================================
# Observer
# =============================================================================


class EngineObserver:
    """No-op hooks called by the engine; subclass what you need."""

    def on_frame(self, index: int, record: FeatureRecord, voiced: bool) -> None:
        pass

    def on_window(self, evaluation: WindowEvaluation) -> None:
        pass

    def on_segment(self, boundary: SegmentBoundary) -> None:
        pass


# =============================================================================
# SegmentationEngine
# =============================================================================


class SegmentationEngine:
    """
    Forward-only segmenter over a stream of FeatureRecords.

    Args:
        config: Validated tolerances; frames_per_segment sizes the ring
        sink: Receives every accepted SegmentBoundary
        observer: Optional hooks (e.g. the run summary)
    """

    def __init__(
        self,
        config: ToleranceConfig,
        sink: "ExtractionSink",
        observer: EngineObserver | None = None,
    ):
        config.validate()
        self.config = config
        self.sink = sink
        self.observer = observer or EngineObserver()

        self._size = config.frames_per_segment
        self._ring: list[FeatureRecord | None] = [None] * self._size
        self._active_count = 0
        self._frames_seen = 0

    @property
    def frames_per_segment(self) -> int:
        return self._size

    @property
    def active_count(self) -> int:
        """Voiced frames in the current candidate window (0..frames_per_segment)."""
        return self._active_count

    @property
    def frames_seen(self) -> int:
        return self._frames_seen

    def window(self) -> tuple[FeatureRecord, ...]:
        """Snapshot of the last frames_per_segment frames, oldest first."""
        if self._frames_seen < self._size:
            return tuple(self._ring[:self._frames_seen])
        start = self._frames_seen % self._size
        return tuple(self._ring[(start + k) % self._size] for k in range(self._size))

    def feed(self, record: FeatureRecord) -> SegmentBoundary | None:
        """
        Process one frame.

        Returns:
            The SegmentBoundary accepted at this frame, or None.

        Raises:
            ExtractionFailure: Propagated from the sink; the engine stops.
        """
        index = self._frames_seen
        self._ring[index % self._size] = record
        self._frames_seen += 1

        voiced = is_voiced(record, self.config.minimum_intensity)
        if voiced:
            self._active_count = min(self._active_count + 1, self._size)
        else:
            self._active_count = 0

        logger.debug(
            "LINE %d : (t)%d, (p)%d, (f1)%d, (f2)%d : (%s)",
            index, record.time_ms, record.pitch_hz, record.f1_hz, record.f2_hz,
            "voiced" if voiced else "UNVOICED",
        )
        self.observer.on_frame(index, record, voiced)

        if self._active_count < self._size:
            return None

        snapshot = self.window()
        evaluation = evaluate_window(snapshot, self.config)
        self.observer.on_window(evaluation)

        if not evaluation.accepted:
            logger.debug("%s", format_evaluation(evaluation))
            self._active_count -= 1
            return None

        logger.info("%s", format_evaluation(evaluation))
        boundary = SegmentBoundary(
            start_ms=snapshot[0].time_ms,
            end_ms=snapshot[-1].time_ms,
            records=snapshot,
        )
        self.sink.on_segment_accepted(boundary)
        self._active_count = 0
        self.observer.on_segment(boundary)
        return boundary

    def run(self, records: Iterable[FeatureRecord]) -> int:
        """
        Feed every record of a stream until it is exhausted.

        Returns:
            Number of frames processed by this call.
        """
        before = self._frames_seen
        for record in records:
            self.feed(record)
        return self._frames_seen - before
