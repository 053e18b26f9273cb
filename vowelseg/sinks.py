"""
VowelSeg Extraction Sinks.

A sink receives every accepted SegmentBoundary from the engine and must
finish with it (or raise) before the engine reads the next frame.

Sinks:
    - FileExtractionSink: feature table + MP3 per segment, next to the input
    - DryRunSink: logs and discards (segmentation and reporting only)
    - CollectingSink: keeps boundaries in memory

Rules:
    - Failure to persist is fatal: raise ExtractionFailure, never retry
    - Already-emitted segments are not cleaned up on failure
    - Each segment's files are opened and closed within one call
"""

import functools
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from vowelseg import audio
from vowelseg.context import RunContext
from vowelseg.engine import SegmentBoundary
from vowelseg.errors import ExtractionFailure
from vowelseg.features import FILE_EXT_DATA, format_table


logger = logging.getLogger(__name__)

AUDIO_EXT_SLICE = ".wav"
AUDIO_EXT_DELIVERY = ".mp3"

Slicer = Callable[[Path, Path, float, float], Path]
Transcoder = Callable[[Path, Path], Path]


class ExtractionSink(ABC):
    """
    Abstract base class for segment consumers.

    Subclasses must implement `on_segment_accepted(boundary)`.
    """

    @abstractmethod
    def on_segment_accepted(self, boundary: SegmentBoundary) -> list[Path]:
        """
        Persist / hand off one accepted segment.

        Returns:
            Paths of the artifacts produced (empty if none).

        Raises:
            ExtractionFailure: If the segment could not be persisted.
        """
        ...

    def close(self) -> None:
        pass

    def __enter__(self) -> "ExtractionSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FileExtractionSink(ExtractionSink):
    """
    Writes '<base>_<start>_<end>.txt' and '<base>_<start>_<end>.mp3'.

    The table goes through the working file '<base>_TEMP.txt', which is
    renamed into place once complete. The audio is cut to a WAV slice,
    transcoded, and the slice removed.
    """

    def __init__(
        self,
        ctx: RunContext,
        slicer: Slicer = audio.cut_slice,
        transcoder: Transcoder | None = None,
    ):
        self.ctx = ctx
        self.slicer = slicer
        self.transcoder = transcoder or functools.partial(audio.transcode, ffmpeg=ctx.ffmpeg)
        self.produced: list[Path] = []

    def _write_table(self, boundary: SegmentBoundary, dest: Path) -> Path:
        working = self.ctx.working_path
        try:
            with open(working, "w", newline="") as f:
                f.write(format_table(boundary.records))
            working.replace(dest)
        except OSError as e:
            raise ExtractionFailure(
                f"failed to write {working} and rename it to {dest}: {e}", stem=dest.stem
            ) from e
        return dest

    def on_segment_accepted(self, boundary: SegmentBoundary) -> list[Path]:
        stem = boundary.stem(self.ctx.base_path.name)
        table_path = self.ctx.segment_path(stem, FILE_EXT_DATA)
        slice_path = self.ctx.segment_path(stem, AUDIO_EXT_SLICE)
        delivery_path = self.ctx.segment_path(stem, AUDIO_EXT_DELIVERY)

        self._write_table(boundary, table_path)
        self.slicer(self.ctx.input_audio, slice_path, boundary.start_s, boundary.end_s)
        self.transcoder(slice_path, delivery_path)
        try:
            slice_path.unlink()
        except OSError as e:
            raise ExtractionFailure(f"couldn't remove {slice_path}: {e}", stem=stem) from e

        logger.info("Extracted %s (%d frames)", stem, len(boundary.records))
        produced = [table_path, delivery_path]
        self.produced.extend(produced)
        return produced


class DryRunSink(ExtractionSink):
    """Accepts segments without side effects."""

    def on_segment_accepted(self, boundary: SegmentBoundary) -> list[Path]:
        logger.debug("Dry run: skipping extraction of %d-%d ms", boundary.start_ms, boundary.end_ms)
        return []


class CollectingSink(ExtractionSink):
    """Keeps every accepted boundary, in stream order."""

    def __init__(self) -> None:
        self.boundaries: list[SegmentBoundary] = []

    def on_segment_accepted(self, boundary: SegmentBoundary) -> list[Path]:
        self.boundaries.append(boundary)
        return []
