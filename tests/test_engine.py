"""
VowelSeg Segmentation Engine Tests

Coverage:
- Scenarios: single segment, unvoiced reset, trailing partial window,
  rejected window sliding forward
- Window-reset, shrink and no-overlap laws
- Ring buffer snapshot order after wrap-around
- Sink failures propagate and stop the engine
"""

import pytest

from vowelseg.config import ToleranceConfig
from vowelseg.engine import EngineObserver, SegmentationEngine
from vowelseg.errors import ConfigurationError, ExtractionFailure
from vowelseg.sinks import CollectingSink, ExtractionSink
from tests.conftest import make_record


UNVOICED = {"intensity": 40}


def _engine(config, observer=None):
    sink = CollectingSink()
    return SegmentationEngine(config, sink, observer=observer), sink


def _frames(count, start=0, **overrides):
    return [make_record(20 * (start + i), **overrides) for i in range(count)]


class TestScenarios:

    def test_homogeneous_frames_form_one_segment(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        engine.run(_frames(5))
        assert [(b.start_ms, b.end_ms) for b in sink.boundaries] == [(0, 80)]
        assert engine.active_count == 0

    def test_unvoiced_frame_prevents_segment(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        frames = _frames(5)
        frames[3] = make_record(60, **UNVOICED)
        engine.run(frames)
        assert sink.boundaries == []
        assert engine.active_count == 1

    def test_trailing_frame_cannot_form_window(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        engine.run(_frames(6))
        assert [(b.start_ms, b.end_ms) for b in sink.boundaries] == [(0, 80)]
        assert engine.active_count == 1

    def test_rejected_window_waits_for_next_frame(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        pitches = [100, 100, 100, 100, 200]
        for i, p in enumerate(pitches):
            engine.feed(make_record(20 * i, pitch=p))
        assert sink.boundaries == []
        assert engine.active_count == 4

    def test_rejected_window_slides_until_homogeneous(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        pitches = [100, 100, 100, 100, 200, 200, 200, 200, 200]
        accepted_at = [
            i for i, p in enumerate(pitches)
            if engine.feed(make_record(20 * i, pitch=p)) is not None
        ]
        assert accepted_at == [8]
        assert [(b.start_ms, b.end_ms) for b in sink.boundaries] == [(80, 160)]

    def test_stream_shorter_than_segment(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        assert engine.run(_frames(4)) == 4
        assert sink.boundaries == []
        assert engine.active_count == 4

    def test_empty_stream(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        assert engine.run([]) == 0
        assert sink.boundaries == []


class TestLaws:

    @pytest.mark.parametrize("prior", [0, 1, 3, 4])
    def test_unvoiced_frame_resets_count(self, five_frame_config, prior):
        engine, _ = _engine(five_frame_config)
        engine.run(_frames(prior))
        assert engine.active_count == prior
        engine.feed(make_record(20 * prior, **UNVOICED))
        assert engine.active_count == 0

    def test_unvoiced_after_rejection_resets_count(self, five_frame_config):
        engine, _ = _engine(five_frame_config)
        for i, p in enumerate([100, 100, 100, 100, 200]):
            engine.feed(make_record(20 * i, pitch=p))
        assert engine.active_count == 4
        engine.feed(make_record(100, pitch=0))
        assert engine.active_count == 0

    def test_rejection_shrinks_by_one(self, five_frame_config):
        class Windows(EngineObserver):
            def __init__(self):
                self.evaluations = []

            def on_window(self, evaluation):
                self.evaluations.append(evaluation)

        observer = Windows()
        engine, sink = _engine(five_frame_config, observer)
        # Alternating pitch keeps every window inhomogeneous
        counts = []
        for i in range(12):
            engine.feed(make_record(20 * i, pitch=100 if i % 2 else 200))
            counts.append(engine.active_count)
        assert counts == [1, 2, 3, 4, 4, 4, 4, 4, 4, 4, 4, 4]
        # Re-evaluated on every frame once the window is full
        assert len(observer.evaluations) == 8
        assert all(not e.accepted for e in observer.evaluations)
        assert sink.boundaries == []

    def test_segments_do_not_overlap(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        frames = _frames(23)
        frames[12] = make_record(240, **UNVOICED)
        engine.run(frames)
        spans = [(b.start_ms, b.end_ms) for b in sink.boundaries]
        assert spans == [(0, 80), (100, 180), (260, 340), (360, 440)]
        for first, second in zip(spans, spans[1:]):
            assert first[1] < second[0]

    def test_zero_formant_window_never_accepted(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        frames = _frames(5)
        frames[2] = make_record(40, f2=0)
        engine.run(frames)
        assert sink.boundaries == []
        assert engine.active_count == 4


class TestRingBuffer:

    def test_snapshot_is_oldest_first_after_wrap(self, five_frame_config):
        engine, _ = _engine(five_frame_config)
        engine.run(_frames(8, **UNVOICED))
        assert [r.time_ms for r in engine.window()] == [60, 80, 100, 120, 140]

    def test_partial_snapshot_before_wrap(self, five_frame_config):
        engine, _ = _engine(five_frame_config)
        engine.run(_frames(3, **UNVOICED))
        assert [r.time_ms for r in engine.window()] == [0, 20, 40]

    def test_boundary_records_are_window_frames(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        engine.run(_frames(2, **UNVOICED) + _frames(5, start=2))
        boundary = sink.boundaries[0]
        assert [r.time_ms for r in boundary.records] == [40, 60, 80, 100, 120]
        assert boundary.records[0].time_ms == boundary.start_ms
        assert boundary.records[-1].time_ms == boundary.end_ms

    def test_capacity_checked_at_construction(self):
        with pytest.raises(ConfigurationError):
            SegmentationEngine(ToleranceConfig(time_step=0.001), CollectingSink())

    def test_frames_per_segment(self, five_frame_config):
        engine, _ = _engine(five_frame_config)
        assert engine.frames_per_segment == 5


class TestSinkFailure:

    def test_failure_propagates_and_keeps_count(self, five_frame_config):
        class FailingSink(ExtractionSink):
            def on_segment_accepted(self, boundary):
                raise ExtractionFailure("disk full")

        engine = SegmentationEngine(five_frame_config, FailingSink())
        frames = _frames(7)
        with pytest.raises(ExtractionFailure):
            engine.run(frames)
        # Stopped at the accepting frame
        assert engine.frames_seen == 5


class TestBoundary:

    def test_stem_and_duration(self, five_frame_config):
        engine, sink = _engine(five_frame_config)
        engine.run(_frames(5, start=10))
        boundary = sink.boundaries[0]
        assert boundary.stem("take1") == "take1_200_280"
        assert boundary.duration_s == pytest.approx(0.08)
        assert boundary.start_s == pytest.approx(0.2)
