"""
VowelSeg Pipeline Tests

Runs full passes over supplied feature tables (no acoustic analysis).
"""

import json

import pytest

from vowelseg.context import RunContext
from vowelseg.errors import AnalysisFailure, ConfigurationError, MalformedRecord
from vowelseg.config import ToleranceConfig
from vowelseg.pipeline import build_sink, run_segmentation
from vowelseg.sinks import CollectingSink, DryRunSink, FileExtractionSink
from tests.conftest import make_row, write_table


def _table(tmp_path, rows):
    return write_table(tmp_path / "voice.txt", rows)


def _ctx(tmp_path, table, config, **kwargs):
    return RunContext(
        input_audio=tmp_path / "voice.wav",
        config=config,
        features_path=table,
        **kwargs,
    )


class TestRunSegmentation:

    def test_reports_extracts_and_summary(self, tmp_path, five_frame_config):
        rows = [make_row(20 * i) for i in range(11)]
        ctx = _ctx(tmp_path, _table(tmp_path, rows), five_frame_config, dry_run=True)
        lines = []
        summary = run_segmentation(ctx, echo=lines.append)

        assert lines == [
            "EXTRACT:  0.000 to  0.080 (0.080s)",
            "EXTRACT:  0.100 to  0.180 (0.080s)",
            "done processing 11 lines",
            "extracted 2 segments with mean duration 0.08 seconds",
        ]
        assert summary.segments == 2
        assert summary.frames == 11

    def test_sink_receives_segments_in_order(self, tmp_path, five_frame_config):
        rows = [make_row(20 * i) for i in range(10)]
        ctx = _ctx(tmp_path, _table(tmp_path, rows), five_frame_config)
        sink = CollectingSink()
        run_segmentation(ctx, sink=sink, echo=lambda line: None)
        assert [(b.start_ms, b.end_ms) for b in sink.boundaries] == [(0, 80), (100, 180)]

    def test_no_segments(self, tmp_path, five_frame_config):
        rows = [make_row(20 * i, intensity=20) for i in range(10)]
        ctx = _ctx(tmp_path, _table(tmp_path, rows), five_frame_config, dry_run=True)
        lines = []
        run_segmentation(ctx, echo=lines.append)
        assert lines == ["done processing 10 lines", "extracted NO segments"]

    def test_malformed_row_aborts_without_summary(self, tmp_path, five_frame_config):
        rows = [make_row(20 * i) for i in range(5)] + ["0.1,70,120"]
        ctx = _ctx(tmp_path, _table(tmp_path, rows), five_frame_config, dry_run=True)
        lines = []
        with pytest.raises(MalformedRecord) as exc_info:
            run_segmentation(ctx, echo=lines.append)
        assert exc_info.value.line_number == 7
        # The segment before the bad row was reported, the summary was not
        assert lines == ["EXTRACT:  0.000 to  0.080 (0.080s)"]

    def test_blank_line_inside_table_aborts(self, tmp_path, five_frame_config):
        rows = [make_row(20 * i) for i in range(3)] + [""] + [make_row(20 * i) for i in range(3, 13)]
        ctx = _ctx(tmp_path, _table(tmp_path, rows), five_frame_config, dry_run=True)
        lines = []
        with pytest.raises(MalformedRecord) as exc_info:
            run_segmentation(ctx, echo=lines.append)
        assert exc_info.value.line_number == 6
        assert lines == []

    def test_undecodable_table_is_a_run_error(self, tmp_path, five_frame_config):
        table = _table(tmp_path, [make_row(0)])
        with open(table, "ab") as f:
            f.write(b"\xff\xfe,70\n")
        ctx = _ctx(tmp_path, table, five_frame_config, dry_run=True)
        with pytest.raises(MalformedRecord) as exc_info:
            run_segmentation(ctx, echo=lambda line: None)
        assert exc_info.value.line_number == 3

    def test_configuration_checked_first(self, tmp_path):
        ctx = _ctx(tmp_path, tmp_path / "missing.txt", ToleranceConfig(time_step=0.001))
        with pytest.raises(ConfigurationError):
            run_segmentation(ctx, sink=CollectingSink(), echo=lambda line: None)

    def test_missing_table(self, tmp_path, five_frame_config):
        ctx = _ctx(tmp_path, tmp_path / "missing.txt", five_frame_config, dry_run=True)
        with pytest.raises(AnalysisFailure):
            run_segmentation(ctx, echo=lambda line: None)

    def test_summary_json(self, tmp_path, five_frame_config):
        rows = [make_row(20 * i) for i in range(6)]
        out = tmp_path / "summary.json"
        ctx = _ctx(
            tmp_path, _table(tmp_path, rows), five_frame_config,
            dry_run=True, summary_json=out,
        )
        run_segmentation(ctx, echo=lambda line: None)
        document = json.loads(out.read_text())
        assert document["segments"] == [{"start_ms": 0, "end_ms": 80}]
        assert document["summary"]["frames"] == 6
        assert document["run"]["config"]["frames_per_segment"] == 5
        assert document["run"]["dry_run"] is True


class TestBuildSink:

    def test_dry_run(self, tmp_path):
        assert isinstance(build_sink(RunContext(input_audio=tmp_path / "a.wav", dry_run=True)), DryRunSink)

    def test_extraction(self, tmp_path):
        assert isinstance(build_sink(RunContext(input_audio=tmp_path / "a.wav")), FileExtractionSink)
