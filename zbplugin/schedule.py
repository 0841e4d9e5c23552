"""Working out when a calendar timer should wake next and whether it fires."""

from __future__ import annotations

from datetime import datetime, timedelta

from .timer import Timer


def _weekday(moment: datetime) -> int:
    """Weekday counted from Sunday as 0."""
    return (moment.weekday() + 1) % 7


def _at(year, month, day, hour, minute, second, microsecond, tzinfo) -> datetime:
    """Build a datetime, carrying out-of-range fields into the next unit."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=tzinfo) + timedelta(
        days=day - 1, hours=hour, minutes=minute, seconds=second, microseconds=microsecond
    )


def _add_date(moment: datetime, years: int = 0, months: int = 0, days: int = 0) -> datetime:
    return _at(
        moment.year + years, moment.month + months, moment.day + days,
        moment.hour, moment.minute, moment.second, moment.microsecond, moment.tzinfo,
    )


def first_week(date: datetime, weekday: int) -> datetime:
    """The first day of ``date``'s month falling on ``weekday`` (Sunday is 0)."""
    if not 0 <= weekday <= 6:
        raise ValueError(f"invalid weekday {weekday}")
    day = _add_date(date, days=1 - date.day)
    while _weekday(day) != weekday:
        day = _add_date(day, days=1)
    return day


def next_wake_time(timer: Timer, now: datetime | None = None) -> datetime:
    """The next moment the timer should wake to check whether it fires."""
    if now is None:
        now = datetime.now()
    date = now
    month, day, hour, minute, week = timer.month, timer.day, timer.hour, timer.minute, timer.week

    unit = timedelta(0)
    if minute >= 0:
        if hour < 0:
            unit = timedelta(hours=1)
        elif day < 0 or week < 0:
            unit = timedelta(days=1)
        elif day == 0 and week >= 0:
            delta = timedelta(days=week - _weekday(date))
            if delta < timedelta(0):
                delta = timedelta(days=7)
            unit += delta
        elif month < 0:
            unit = timedelta(microseconds=-1)
    else:
        unit = timedelta(minutes=1)

    stable = 0
    if minute < 0:
        minute = date.minute
    if hour < 0:
        hour = date.hour
    else:
        stable |= 0x8
    if day < 0:
        day = date.day
    elif day > 0:
        stable |= 0x4
    else:
        day = date.day
        if week >= 0:
            stable |= 0x2
    if month < 0:
        month = date.month
    else:
        stable |= 0x1

    if stable == 0b0101:
        if timer.day != now.day or timer.month != now.month:
            hour = 0
    elif stable == 0b1001:
        if timer.month != now.month:
            day = 0
    elif stable == 0b0001:
        if timer.month != now.month:
            day = 0
            hour = 0

    date = _at(date.year, month, day, hour, minute, date.second, date.microsecond, date.tzinfo)
    if unit > timedelta(0):
        date += unit

    if date <= now:
        if timer.month < 0:
            if timer.day > 0 or (timer.day == 0 and timer.week >= 0):
                date = _add_date(date, months=1)
            elif timer.day < 0 or timer.week < 0:
                if timer.hour > 0:
                    date = _add_date(date, days=1)
                elif timer.minute > 0:
                    date += timedelta(hours=1)
        else:
            date = _add_date(date, years=1)

    if stable & 0x8 and date.hour != hour:
        if not stable & 0x4:
            date = _add_date(date, days=1) - timedelta(hours=1)
        elif not stable & 0x2:
            date = _add_date(date, days=7) - timedelta(hours=1)
        else:
            date = _add_date(date, years=1) - timedelta(hours=1)

    if stable & 0x4 and date.day != day:
        date = _add_date(date, years=1, days=-1)

    if stable & 0x2 and _weekday(date) != week:
        date = first_week(_add_date(date, years=1), week)

    if date <= now:
        date = now + timedelta(minutes=1)
    return date


def should_fire(timer: Timer, now: datetime) -> bool:
    """Whether a calendar timer that has just woken should send its message."""
    if timer.month >= 0 and timer.month != now.month:
        return False
    if timer.day < 0 or timer.day == now.day:
        pass
    elif timer.day == 0:
        if timer.week >= 0 and timer.week != _weekday(now):
            return False
    else:
        return False
    if timer.hour >= 0 and timer.hour != now.hour:
        return False
    return timer.minute < 0 or timer.minute == now.minute