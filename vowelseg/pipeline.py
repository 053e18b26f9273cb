"""
VowelSeg Pipeline - One run, start to finish.

Steps (fixed order):
    1. Validate configuration (before any file is touched)
    2. Produce the feature table (acoustic analysis), unless one was supplied
    3. Stream the table through the segmentation engine
    4. Extract each accepted segment (skipped in dry-run)
    5. Report the run summary

INVARIANTS:
    - Single forward pass over the feature table
    - Any fatal error propagates; no summary is produced for a failed run
    - EXTRACT lines are reported in stream order, including in dry-run
"""

import json
import logging
from datetime import datetime, timezone
from typing import Callable

from vowelseg import audio
from vowelseg.context import RunContext
from vowelseg.engine import SegmentationEngine
from vowelseg.errors import AnalysisFailure, VowelSegError
from vowelseg.features import read_feature_table
from vowelseg.report import RunSummary, format_extract_line, format_summary
from vowelseg.sinks import DryRunSink, ExtractionSink, FileExtractionSink


logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_sink(ctx: RunContext) -> ExtractionSink:
    """Dry-run sink in test mode, file sink otherwise."""
    if ctx.dry_run:
        return DryRunSink()
    return FileExtractionSink(ctx)


def run_segmentation(
    ctx: RunContext,
    sink: ExtractionSink | None = None,
    echo: Callable[[str], None] = print,
) -> RunSummary:
    """
    Execute a full run.

    Args:
        ctx: RunContext with input, config and flags
        sink: Override the sink chosen from ctx (library use / tests)
        echo: Receives human-readable progress and summary lines

    Returns:
        RunSummary of the completed pass.

    Raises:
        VowelSegError: Any fatal configuration, analysis, parse or
            extraction error.
    """
    started_at = _now_iso()
    config = ctx.config.validate()
    logger.info("Analysis time step: %s", config.time_step)
    logger.info(
        "Points per segment: %d (%.3f seconds)",
        config.frames_per_segment, config.frames_per_segment * config.time_step,
    )

    table_path = ctx.feature_table_path
    if ctx.features_path is None:
        audio.analyze_features(ctx.input_audio, table_path, config)
    if not table_path.is_file():
        raise AnalysisFailure(f"couldn't open file {table_path} for reading")

    summary = RunSummary()
    segments: list[dict] = []

    with (sink or build_sink(ctx)) as active_sink:
        engine = SegmentationEngine(config, active_sink, observer=summary)
        try:
            for record in read_feature_table(table_path):
                boundary = engine.feed(record)
                if boundary is None:
                    continue
                echo(format_extract_line(boundary.start_s, boundary.end_s))
                segments.append({"start_ms": boundary.start_ms, "end_ms": boundary.end_ms})
        except OSError as e:
            raise VowelSegError(f"error reading {table_path}: {e}") from e

    for line in format_summary(summary.frames, summary.segments, summary.mean_duration_s):
        echo(line)

    if ctx.summary_json is not None:
        document = {
            "run": ctx.to_dict(),
            "started_at": started_at,
            "completed_at": _now_iso(),
            "summary": summary.to_dict(),
            "segments": segments,
        }
        try:
            ctx.summary_json.write_text(json.dumps(document, indent=2, sort_keys=True) + "\n")
        except OSError as e:
            raise VowelSegError(f"couldn't write summary {ctx.summary_json}: {e}") from e

    return summary
