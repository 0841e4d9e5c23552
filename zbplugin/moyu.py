"""Slacking-off reminders: days left until the weekend and the public holidays."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

HOLIDAYS = ("元旦", "春节", "清明节", "劳动节", "端午节", "中秋节", "国庆节")
GREETING = (
    "上午好，摸鱼人！\n工作再累，一定不要忘记摸鱼哦！有事没事起身去茶水间，去厕所，"
    "去廊道走走别老在工位上坐着，钱是老板的,但命是自己的。\n"
)
CLOSING = "上班是帮老板赚钱，摸鱼是赚老板的钱！最后，祝愿天下所有摸鱼人，都能愉快的渡过每一天…"

_INT = re.compile(r"[+-]?[0-9]+")


def _date(year: int, month: int, day: int) -> datetime:
    """A date with out-of-range months and days carried over; unreachable dates are the earliest."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    try:
        return datetime(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        return datetime.min


def _scan_record(record: str) -> list[int]:
    """Read up to four underscore-separated integers; missing ones are zero."""
    text = record.lstrip()
    values: list[int] = []
    pos = 0
    for index in range(4):
        if index:
            if not text.startswith("_", pos):
                break
            pos += 1
        match = _INT.match(text, pos)
        if match is None:
            break
        values.append(int(match.group()))
        pos = match.end()
    return values + [0] * (4 - len(values))


@dataclass
class Holiday:
    """A public holiday starting on ``date`` and lasting ``duration``."""

    name: str
    date: datetime
    duration: timedelta = field(default=timedelta(0))

    def describe(self, now: Optional[datetime] = None) -> str:
        """How far away the holiday is, or whether it is on or over."""
        if now is None:
            now = datetime.now()
        left = self.date - now
        if left >= timedelta(0):
            days = left.total_seconds() / 86400.0
            return f"距离{self.name}还有: {days:.2f}天！"
        if left + self.duration >= timedelta(0):
            return f"好好享受 {self.name} 假期吧!"
        return f"今年 {self.name} 假期已过"

    def __str__(self) -> str:
        return self.describe()

    @staticmethod
    def from_record(name: str, record: str) -> "Holiday":
        """Build a holiday from a "days_year_month_day" record."""
        days, year, month, day = _scan_record(record)
        return Holiday(name, _date(year, month, day), timedelta(days=days))


def holiday_record(duration: int, year: int, month: int, day: int) -> str:
    """The "days_year_month_day" record stored for a holiday."""
    return f"{duration}_{year}_{month}_{day}"


def weekend(now: Optional[datetime] = None) -> str:
    """Days left until the weekend, or a cheer if it is the weekend."""
    if now is None:
        now = datetime.now()
    weekday = (now.weekday() + 1) % 7  # Sunday is 0
    if weekday in (0, 6):
        return "好好享受周末吧！"
    return f"距离周末还有:{5 - weekday}天！"


def _holiday(name: str, fetch: Callable[[str], str]) -> Holiday:
    try:
        record = fetch("holiday/" + name)
    except Exception as exc:  # the failure is shown in place of the holiday
        return Holiday(name + str(exc), datetime.min)
    return Holiday.from_record(name, record)


def build_message(now: datetime, fetch: Callable[[str], str]) -> str:
    """The daily reminder; ``fetch`` maps a "holiday/<name>" key to its record."""
    parts = [now.strftime("%Y-%m-%d"), GREETING, weekend(now), "\n"]
    for name in HOLIDAYS:
        parts.append(_holiday(name, fetch).describe(now))
        parts.append("\n")
    parts.append(CLOSING)
    return "".join(parts)