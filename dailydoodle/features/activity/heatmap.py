"""Year-to-date doodle activity grid (weeks as columns, Sunday first)."""
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List

PADDING = -1


def level_for(count: int) -> int:
    if count < 0:
        return PADDING
    return min(count, 3)


def build_heatmap(doodle_dates: Iterable[date], today: date) -> Dict[str, object]:
    """Count doodles per canonical day from Jan 1 of `today`'s year to `today`.

    The first week is padded with count=-1 cells so every column starts on a
    Sunday. Month labels sit on the first week that contains the 1st.
    """
    start = date(today.year, 1, 1)
    counts = Counter(d for d in doodle_dates if start <= d <= today)

    weeks: List[List[dict]] = []
    week: List[dict] = []
    # date.weekday(): Monday=0 .. Sunday=6; shift so Sunday=0
    for _ in range((start.weekday() + 1) % 7):
        week.append({"date": None, "count": PADDING, "level": PADDING})

    month_labels: List[dict] = []
    day = start
    while day <= today:
        if day.day == 1:
            month_labels.append({"month": day.strftime("%b"), "week": len(weeks)})
        count = counts.get(day, 0)
        week.append({"date": day.isoformat(), "count": count, "level": level_for(count)})
        if len(week) == 7:
            weeks.append(week)
            week = []
        day += timedelta(days=1)
    if week:
        weeks.append(week)

    return {
        "year": today.year,
        "weeks": weeks,
        "month_labels": month_labels,
        "total": sum(counts.values()),
        "active_days": len(counts),
    }
