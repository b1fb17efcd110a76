"""
Tests for folding raw player events into session metrics.
"""

import pytest

from playback.exceptions import InvalidTelemetryError
from playback.services import aggregate_events
from playback.tests.factories import SESSION_START, SESSION_START_MS
from playback.types import SessionMetrics


def at(offset_ms):
    return SESSION_START_MS + offset_ms


def fold(*events):
    return aggregate_events(list(events), SESSION_START)


class TestWatchTime:
    def test_empty_batch(self):
        assert fold() == SessionMetrics(
            total_watch_ms=0,
            total_buffer_ms=0,
            buffer_events=0,
            fatal_errors=0,
            startup_latency_ms=None,
            stream_down_ms=0,
        )

    def test_play_then_pause(self):
        metrics = fold(
            {"type": "play", "timestamp": at(2000)},
            {"type": "pause", "timestamp": at(62000)},
        )

        assert metrics.total_watch_ms == 60000
        assert metrics.startup_latency_ms == 2000

    def test_repeated_play_keeps_interval(self):
        metrics = fold(
            {"type": "play", "timestamp": at(0)},
            {"type": "play", "timestamp": at(10000)},
            {"type": "pause", "timestamp": at(30000)},
        )

        assert metrics.total_watch_ms == 30000

    def test_several_intervals(self):
        metrics = fold(
            {"type": "play", "timestamp": at(1000)},
            {"type": "pause", "timestamp": at(11000)},
            {"type": "play", "timestamp": at(20000)},
            {"type": "pause", "timestamp": at(25000)},
        )

        assert metrics.total_watch_ms == 15000
        assert metrics.startup_latency_ms == 1000

    def test_open_interval_closed_at_last_event(self):
        metrics = fold(
            {"type": "play", "timestamp": at(0)},
            {"type": "seek", "timestamp": at(45000)},
        )

        assert metrics.total_watch_ms == 45000
        assert metrics.startup_latency_ms == 0

    def test_events_are_sorted(self):
        metrics = fold(
            {"type": "pause", "timestamp": at(9000)},
            {"type": "play", "timestamp": at(4000)},
        )

        assert metrics.total_watch_ms == 5000
        assert metrics.startup_latency_ms == 4000

    def test_play_before_session_start_has_zero_latency(self):
        metrics = fold({"type": "play", "timestamp": at(-500)})

        assert metrics.startup_latency_ms == 0

    def test_seek_and_quality_change_ignored(self):
        metrics = fold(
            {"type": "play", "timestamp": at(0)},
            {"type": "seek", "timestamp": at(1000)},
            {"type": "quality_change", "timestamp": at(2000)},
            {"type": "pause", "timestamp": at(3000)},
        )

        assert metrics.total_watch_ms == 3000
        assert metrics.buffer_events == 0


class TestBuffering:
    def test_buffer_with_duration(self):
        metrics = fold(
            {"type": "play", "timestamp": at(2000)},
            {"type": "buffer", "timestamp": at(10000), "duration": 5000},
            {"type": "play", "timestamp": at(15000)},
            {"type": "pause", "timestamp": at(60000)},
            {"type": "error", "timestamp": at(61000), "error_code": "fatal_stream_error"},
        )

        assert metrics == SessionMetrics(
            total_watch_ms=58000,
            total_buffer_ms=5000,
            buffer_events=1,
            fatal_errors=1,
            startup_latency_ms=2000,
            stream_down_ms=0,
        )

    def test_buffer_until_next_play(self):
        metrics = fold(
            {"type": "play", "timestamp": at(1000)},
            {"type": "buffer", "timestamp": at(5000)},
            {"type": "play", "timestamp": at(8000)},
            {"type": "pause", "timestamp": at(20000)},
        )

        assert metrics.total_watch_ms == 19000
        assert metrics.total_buffer_ms == 3000
        assert metrics.buffer_events == 1

    def test_pause_closes_stall(self):
        metrics = fold(
            {"type": "play", "timestamp": at(0)},
            {"type": "buffer", "timestamp": at(4000)},
            {"type": "pause", "timestamp": at(7000)},
            {"type": "play", "timestamp": at(30000)},
            {"type": "pause", "timestamp": at(31000)},
        )

        assert metrics.total_buffer_ms == 3000
        assert metrics.buffer_events == 1

    def test_open_stall_closed_at_last_event(self):
        metrics = fold(
            {"type": "play", "timestamp": at(0)},
            {"type": "buffer", "timestamp": at(4000)},
            {"type": "seek", "timestamp": at(10000)},
        )

        assert metrics.total_watch_ms == 10000
        assert metrics.total_buffer_ms == 6000
        assert metrics.buffer_events == 1

    def test_repeated_buffer_counts_once(self):
        metrics = fold(
            {"type": "play", "timestamp": at(0)},
            {"type": "buffer", "timestamp": at(1000)},
            {"type": "buffer", "timestamp": at(2000)},
            {"type": "play", "timestamp": at(3000)},
        )

        assert metrics.buffer_events == 1
        assert metrics.total_buffer_ms == 2000

    def test_many_short_stalls(self):
        events = [{"type": "play", "timestamp": at(0)}]
        for i in range(12):
            events.append({"type": "buffer", "timestamp": at(1000 * (i + 1)), "duration": 100})
        events.append({"type": "pause", "timestamp": at(60000)})

        metrics = fold(*events)

        assert metrics.buffer_events == 12
        assert metrics.total_buffer_ms == 1200


class TestErrors:
    @pytest.mark.parametrize(
        "error_code,fatal",
        [
            ("fatal", 1),
            ("fatal_decode", 1),
            ("network_retry", 0),
            ("fatalistic", 0),
            (None, 0),
        ],
    )
    def test_fatal_error_codes(self, error_code, fatal):
        metrics = fold({"type": "error", "timestamp": at(0), "error_code": error_code})

        assert metrics.fatal_errors == fatal

    @pytest.mark.parametrize("error_code", ["stream_down", "stream_unavailable"])
    def test_stream_down_duration(self, error_code):
        metrics = fold(
            {"type": "error", "timestamp": at(0), "error_code": error_code, "duration": 5000},
            {"type": "error", "timestamp": at(9000), "error_code": error_code, "duration": 2500},
        )

        assert metrics.stream_down_ms == 7500
        assert metrics.fatal_errors == 0

    def test_stream_down_without_duration(self):
        metrics = fold({"type": "error", "timestamp": at(0), "error_code": "stream_down"})

        assert metrics.stream_down_ms == 0


class TestMalformedEvents:
    @pytest.mark.parametrize(
        "event",
        [
            {"timestamp": 1},
            {"type": "", "timestamp": 1},
            {"type": "play"},
            {"type": "play", "timestamp": None},
        ],
    )
    def test_rejected(self, event):
        with pytest.raises(InvalidTelemetryError, match="missing type or timestamp"):
            fold({"type": "play", "timestamp": at(0)}, event)
