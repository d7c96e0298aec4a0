import pytest

from schedule_engine.errors import ParseError, ValidationError
from schedule_engine.utils.time_grid import TimeGrid, end_clock, format_clock, parse_clock


@pytest.mark.parametrize("clock, expected", [
    ("08:00", 0),
    ("08:30", 30),
    ("09:30", 90),
    ("22:30", 870),
])
def test_to_minutes_counts_from_day_start(grid, clock, expected):
    assert grid.to_minutes(clock) == expected


def test_to_minutes_follows_configured_day_start():
    grid = TimeGrid(day_start="07:30")
    assert grid.to_minutes("08:00") == 30
    assert grid.to_clock(30) == "08:00"


@pytest.mark.parametrize("bad", ["", "9", "9h30", "ab:cd", "24:00", "10:61", "10:00:00", None])
def test_parse_clock_rejects_malformed(bad):
    with pytest.raises(ParseError):
        parse_clock(bad)


def test_format_clock_wraps_past_midnight():
    assert format_clock(23 * 60 + 30 + 60) == "00:30"
    assert end_clock("22:30", 120) == "00:30"
    assert end_clock("09:00", 45) == "09:45"


def test_slots_cover_the_day_at_grid_interval(grid):
    slots = grid.slots()
    assert slots[0] == "08:00"
    assert slots[1] == "08:30"
    assert slots[-1] == "22:30"
    assert len(slots) == (23 - 8) * 2


def test_contains_is_half_open(grid):
    assert grid.contains("08:00")
    assert grid.contains("22:30")
    assert not grid.contains("23:00")
    assert not grid.contains("07:30")


def test_validate_duration_only_accepts_enumerated_values(grid):
    grid.validate_duration(45)
    grid.validate_duration(240)
    with pytest.raises(ValidationError):
        grid.validate_duration(50)
    with pytest.raises(ValidationError):
        grid.validate_duration(300)


def test_from_config_reads_schedule_settings():
    grid = TimeGrid.from_config({
        "day_start": "07:00",
        "day_end": "19:00",
        "interval": 15,
        "durations": [15, 30],
        "slot_height_px": 20,
    })
    assert grid.slots()[:2] == ["07:00", "07:15"]
    assert grid.durations == (15, 30)
    assert grid.px_per_minute == 20 / 15


def test_day_index_orders_week_from_saturday(grid):
    assert grid.day_index("saturday") == 0
    assert grid.day_index("friday") == 6
    assert grid.day_index("someday") == 7


def test_validate_time_slot_requires_grid_alignment(grid):
    grid.validate_time_slot("08:30")
    with pytest.raises(ValidationError):
        grid.validate_time_slot("08:07")
    with pytest.raises(ValidationError):
        grid.validate_time_slot("10:15")

    TimeGrid(interval=15).validate_time_slot("10:15")


def test_normalize_pads_the_hour(grid):
    assert grid.normalize("9:00") == "09:00"
    assert grid.normalize(" 09:30") == "09:30"


def test_validate_span_keeps_sessions_inside_the_day(grid):
    grid.validate_span("22:00", 60)
    with pytest.raises(ValidationError):
        grid.validate_span("22:30", 240)
