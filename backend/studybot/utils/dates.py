"""Date helpers for class schedules and deadlines.

Day-of-week numbers follow the 0 = Sunday … 6 = Saturday convention used by
the class timetable.
"""

from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

DAY_NAMES = ["Chủ Nhật", "Thứ Hai", "Thứ Ba", "Thứ Tư", "Thứ Năm", "Thứ Sáu", "Thứ Bảy"]

DEADLINE_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d")


def day_of_week_text(day_of_week: int) -> str:
    """Vietnamese name of a weekday number."""
    return DAY_NAMES[day_of_week % 7]


def day_of_week(moment: datetime) -> int:
    """Weekday number of a datetime, Sunday = 0."""
    return moment.isoweekday() % 7


def parse_hhmm(value: str) -> time:
    """Parse an "HH:MM" string. Raises ValueError on bad input."""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def next_class_datetime(day: int, start_time: str, now: datetime) -> datetime:
    """
    Next concrete start of a weekly class, in `now`'s timezone.

    A class later today is today; a class that already started today (or
    starts this exact minute) rolls over to next week.
    """
    start = parse_hhmm(start_time)
    days_until = (day - day_of_week(now) + 7) % 7
    if days_until == 0 and (now.hour, now.minute) >= (start.hour, start.minute):
        days_until = 7

    class_day = (now + timedelta(days=days_until)).date()
    return datetime.combine(class_day, start, tzinfo=now.tzinfo)


def is_same_day(first: datetime, second: datetime, tz: ZoneInfo) -> bool:
    """Whether two instants fall on the same calendar day in `tz`."""
    return first.astimezone(tz).date() == second.astimezone(tz).date()


def format_date(moment: datetime, tz: ZoneInfo) -> str:
    """dd/mm/yyyy in the given timezone."""
    return moment.astimezone(tz).strftime("%d/%m/%Y")


def format_datetime(moment: datetime, tz: ZoneInfo) -> str:
    """dd/mm/yyyy HH:MM in the given timezone."""
    return moment.astimezone(tz).strftime("%d/%m/%Y %H:%M")


def parse_deadline(value: str, tz: ZoneInfo) -> datetime | None:
    """
    Parse a user-supplied deadline.

    Accepts "YYYY-MM-DD HH:MM", "YYYY-MM-DD" and ISO-8601. Values without an
    offset are interpreted in `tz`. Returns None when nothing matches.
    """
    value = value.strip()
    if not value:
        return None

    for fmt in DEADLINE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=tz)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed
