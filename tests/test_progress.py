"""
Tests for FFmpeg progress parsing.
"""

import pytest

from hwconvert.transcoding.progress import (
    calculate_percent,
    format_time,
    parse_progress_line,
    parse_timestamp,
)


STATS_LINE = (
    "frame= 2170 fps= 72 q=28.0 size=   10240kB time=00:01:30.50 "
    "bitrate= 926.8kbits/s speed=3.01x"
)


class TestStatsLine:
    """Tests for the stderr stats line."""

    def test_full_line(self):
        progress = parse_progress_line(STATS_LINE, 180)

        assert progress is not None
        assert progress.percent == pytest.approx(50.27, abs=0.01)
        assert progress.frame == 2170
        assert progress.fps == 72.0
        assert progress.time == "00:01:30.50"
        assert progress.bitrate == "926.8kbits/s"
        assert progress.speed == "3.01x"

    def test_time_only(self):
        progress = parse_progress_line("time=00:00:30.00", 120)

        assert progress.percent == pytest.approx(25.0)
        assert progress.frame == 0
        assert progress.fps == 0.0
        assert progress.bitrate == "N/A"
        assert progress.speed == "N/A"

    def test_line_without_time_is_ignored(self):
        assert parse_progress_line("frame=  100 fps= 25 q=28.0", 120) is None
        assert parse_progress_line("Stream mapping:", 120) is None
        assert parse_progress_line("", 120) is None

    def test_bitrate_na(self):
        progress = parse_progress_line("frame=0 fps=0.0 time=00:00:00.00 bitrate=N/A speed=N/A", 60)
        assert progress.bitrate == "N/A"
        assert progress.speed == "N/A"

    def test_percent_clamped_to_100(self):
        progress = parse_progress_line("time=00:02:10.00", 120)
        assert progress.percent == 100.0

    def test_unknown_duration_reports_zero(self):
        progress = parse_progress_line("time=00:00:30.00", 0)
        assert progress is not None
        assert progress.percent == 0.0

    def test_malformed_fps(self):
        progress = parse_progress_line("frame=1 fps=. time=00:00:01.00", 10)
        assert progress.fps == 0.0


class TestProgressPipe:
    """Tests for the -progress pipe:1 key=value stream."""

    def test_out_time_ms_is_microseconds(self):
        progress = parse_progress_line("out_time_ms=60000000", 120)

        assert progress.percent == pytest.approx(50.0)
        assert progress.time == "00:01:00"
        assert progress.frame == 0
        assert progress.bitrate == "N/A"

    def test_out_time_key_does_not_count_as_time(self):
        assert parse_progress_line("out_time=00:00:30.000000", 120) is None

    def test_other_keys_ignored(self):
        assert parse_progress_line("progress=continue", 120) is None
        assert parse_progress_line("total_size=1048576", 120) is None

    def test_negative_out_time_clamped(self):
        progress = parse_progress_line("out_time_ms=-9223372036854775807", 120)
        assert progress.percent == 0.0
        assert progress.time == "00:00:00"


class TestHelpers:
    """Tests for timestamp helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("00:01:30.50", 90.5),
        ("01:00:00.00", 3600.0),
        ("02:03.5", 123.5),
        ("42", 42.0),
    ])
    def test_parse_timestamp(self, value, expected):
        assert parse_timestamp(value) == pytest.approx(expected)

    def test_parse_timestamp_invalid(self):
        assert parse_timestamp("1:2:3:4") is None
        assert parse_timestamp("ab:cd") is None

    def test_format_time(self):
        assert format_time(0) == "00:00:00"
        assert format_time(3725.9) == "01:02:05"
        assert format_time(-5) == "00:00:00"

    def test_calculate_percent(self):
        assert calculate_percent(30, 120) == 25.0
        assert calculate_percent(30, -1) == 0.0
