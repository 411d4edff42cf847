from core.utils import format_clock, format_seconds_to_human_readable, progress_label


def test_human_readable_durations():
    assert format_seconds_to_human_readable(3725) == "1h 2m 5s"
    assert format_seconds_to_human_readable(120) == "2m"
    assert format_seconds_to_human_readable(0) == "0s"
    assert format_seconds_to_human_readable(None) == "N/A"


def test_clock_format():
    assert format_clock(65) == "1:05"
    assert format_clock(3661) == "1:01:01"
    assert format_clock(None) == "0:00"


def test_progress_label():
    assert progress_label(0.426, False) == "43%"
    assert progress_label(0.95, True) == "Completed"
