"""
Canonical-day utilities.

Every "what day is it" question (prompt of the day, streaks, holiday badges,
cron) is answered in US/Eastern so all users share one calendar, whatever
their local clock says. pytz handles the DST transitions.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

import pytz

from dailydoodle.core.config import settings

DateLike = Union[date, str]

MIDNIGHT_BUFFER_SECONDS = 5


def get_canonical_timezone():
    return pytz.timezone(settings.CANONICAL_TIMEZONE)


CANONICAL_TZ = get_canonical_timezone()


def now_est(now: Optional[datetime] = None) -> datetime:
    """Current instant (or the given one) as an aware US/Eastern datetime."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(CANONICAL_TZ)


def today_est(now: Optional[datetime] = None) -> date:
    """The canonical calendar date."""
    return now_est(now).date()


def format_date_est(moment: datetime) -> str:
    """Canonical YYYY-MM-DD for an instant; naive datetimes are UTC."""
    return now_est(moment).date().isoformat()


def parse_date(value: DateLike) -> date:
    """YYYY-MM-DD (or a date) to date; ValueError otherwise."""
    if isinstance(value, datetime):
        return now_est(value).date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def is_valid_date_string(value: str) -> bool:
    try:
        parse_date(value)
    except (ValueError, AttributeError):
        return False
    return len(value.strip()) == 10


def date_offset_from(base: DateLike, days: int) -> date:
    return parse_date(base) + timedelta(days=days)


def date_offset_est(days: int, now: Optional[datetime] = None) -> date:
    """Canonical date `days` away from today (negative = past)."""
    return date_offset_from(today_est(now), days)


def days_between(earlier: DateLike, later: DateLike) -> int:
    """Signed calendar-day difference later - earlier."""
    return (parse_date(later) - parse_date(earlier)).days


def are_consecutive_days(earlier: DateLike, later: DateLike) -> bool:
    return days_between(earlier, later) == 1


def should_reset_streak(last_viewed: Optional[DateLike], today: DateLike, grace_days: Optional[int] = None) -> bool:
    """True when the gap since the last view exceeds the grace window."""
    if last_viewed is None:
        return False
    grace = settings.STREAK_GRACE_DAYS if grace_days is None else grace_days
    return days_between(last_viewed, today) > grace


def current_hour_est(now: Optional[datetime] = None) -> int:
    return now_est(now).hour


def seconds_until_midnight_est(now: Optional[datetime] = None) -> int:
    """Seconds until the next canonical midnight, plus a small buffer."""
    current = now_est(now)
    tomorrow = current.date() + timedelta(days=1)
    midnight = CANONICAL_TZ.localize(datetime.combine(tomorrow, datetime.min.time()))
    return int((midnight - current).total_seconds()) + MIDNIGHT_BUFFER_SECONDS


def date_cache_key(now: Optional[datetime] = None) -> str:
    """Cache key that changes when the canonical day changes."""
    return f"est-date-{today_est(now).isoformat()}"


def month_key(day: DateLike) -> str:
    return parse_date(day).strftime("%Y-%m")


def normalize_date_string(value: str) -> str:
    """YYYY-MM-DD passes through; other parseable forms are converted.

    Unparseable input is returned unchanged.
    """
    text = (value or "").strip()
    if is_valid_date_string(text):
        return text
    for fmt in ("%m/%d/%Y", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y"):
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    try:
        return format_date_est(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return value


def format_long_date(day: DateLike) -> str:
    """e.g. Wednesday, March 11, 2026"""
    d = parse_date(day)
    return f"{d.strftime('%A')}, {d.strftime('%B')} {d.day}, {d.year}"
