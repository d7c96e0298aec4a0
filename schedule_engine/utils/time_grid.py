from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from schedule_engine.errors import ParseError, ValidationError

DAYS_OF_WEEK = ['saturday', 'sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday']
DURATION_OPTIONS = (30, 45, 60, 90, 120, 150, 180, 210, 240)

MINUTES_PER_DAY = 24 * 60


def parse_clock(time_str: str) -> int:
    """
    Parses a wall-clock "HH:MM" string into minutes since midnight.

    Raises:
        ParseError: if the string is not two colon-separated integers
                    forming a valid time of day
    """
    if not isinstance(time_str, str) or time_str.count(':') != 1:
        raise ParseError(f"Invalid time '{time_str}', expected HH:MM")
    hour_part, minute_part = time_str.strip().split(':')
    if not (hour_part.isdigit() and minute_part.isdigit()):
        raise ParseError(f"Invalid time '{time_str}', expected HH:MM")
    hour, minute = int(hour_part), int(minute_part)
    if hour > 23 or minute > 59:
        raise ParseError(f"Invalid time '{time_str}', out of range")
    return hour * 60 + minute


def format_clock(minutes: int) -> str:
    """Formats minutes since midnight as "HH:MM", wrapping past midnight"""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def end_clock(time_slot: str, duration: int) -> str:
    """Wall-clock end of a session starting at time_slot"""
    return format_clock(parse_clock(time_slot) + duration)


@dataclass(frozen=True)
class TimeGrid:
    """
    Discretizes one school day into fixed-size slots.

    Offsets are minutes elapsed since day_start, so with the default
    08:00 start "08:00" is 0 and "09:30" is 90.

    Attributes:
        day_start: First bookable clock time ("HH:MM")
        day_end: Clock time at which the last slot ends ("HH:MM")
        interval: Slot granularity in minutes
        durations: Allowed session durations in minutes
        slot_height_px: Rendered height of one slot
    """
    day_start: str = "08:00"
    day_end: str = "23:00"
    interval: int = 30
    durations: Tuple[int, ...] = DURATION_OPTIONS
    slot_height_px: int = 40
    days: Tuple[str, ...] = tuple(DAYS_OF_WEEK)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "TimeGrid":
        return cls(
            day_start=config.get("day_start", "08:00"),
            day_end=config.get("day_end", "23:00"),
            interval=int(config.get("interval", 30)),
            durations=tuple(config.get("durations") or DURATION_OPTIONS),
            slot_height_px=int(config.get("slot_height_px", 40)),
        )

    @property
    def px_per_minute(self) -> float:
        return self.slot_height_px / self.interval

    @property
    def length(self) -> int:
        """Minutes between day_start and day_end"""
        return parse_clock(self.day_end) - parse_clock(self.day_start)

    def to_minutes(self, time_str: str) -> int:
        """Minutes since day_start for an "HH:MM" string"""
        return parse_clock(time_str) - parse_clock(self.day_start)

    def to_clock(self, offset: int) -> str:
        """Inverse of to_minutes"""
        return format_clock(parse_clock(self.day_start) + offset)

    def slots(self) -> List[str]:
        """All grid slot labels from day_start up to (not including) day_end"""
        return [self.to_clock(offset) for offset in range(0, self.length, self.interval)]

    def contains(self, time_str: str) -> bool:
        return 0 <= self.to_minutes(time_str) < self.length

    def normalize(self, time_str: str) -> str:
        """Canonical zero-padded form, so "9:00" and "09:00" compare equal"""
        return format_clock(parse_clock(time_str))

    def validate_time_slot(self, time_str: str):
        if not self.contains(time_str):
            raise ValidationError(
                f"Time {time_str} is outside the day ({self.day_start}-{self.day_end})"
            )
        if self.to_minutes(time_str) % self.interval:
            raise ValidationError(
                f"Time {time_str} is not on the {self.interval}-minute grid"
            )

    def validate_span(self, time_str: str, duration: int):
        if self.to_minutes(time_str) + duration > self.length:
            raise ValidationError(
                f"A {duration}-minute session at {time_str} runs past {self.day_end}"
            )

    def validate_duration(self, duration: int):
        if duration not in self.durations:
            allowed = ', '.join(str(d) for d in self.durations)
            raise ValidationError(f"Duration {duration} is not one of: {allowed}")

    def validate_day(self, day: str):
        if day not in self.days:
            raise ValidationError(f"Unknown day '{day}'")

    def day_index(self, day: str) -> int:
        """Display position of a weekday; unknown tags sort last"""
        return self.days.index(day) if day in self.days else len(self.days)
