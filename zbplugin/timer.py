"""Group reminder timers whose schedule is packed into one integer field."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)

_EN_BIT = 0x800000
_FIELD_BITS = 0xFFFFFF
_CHINESE_DIGITS = "零一二三四五六七八九十"


def _packed(mask: int, shift: int, all_ones: int, doc: str) -> property:
    """A property over a bit field of ``emdwhm``; all ones reads as -1."""

    def getter(self: "Timer") -> int:
        value = (self.emdwhm & mask) >> shift
        return -1 if value == all_ones else value

    def setter(self: "Timer", value: int) -> None:
        self.emdwhm = ((value << shift) & mask) | (self.emdwhm & (_FIELD_BITS ^ mask))

    return property(getter, setter, doc=doc)


@dataclass
class Timer:
    """A reminder for one group, either calendar based or driven by a cron line.

    ``emdwhm`` packs enable (1 bit), month (4), day (5), weekday (3),
    hour (5) and minute (6).  A field holding all ones means "every".
    Weekdays count from Sunday as 0.
    """

    id: int = 0
    emdwhm: int = 0
    self_id: int = 0
    group_id: int = 0
    alert: str = ""
    cron: str = ""
    url: str = ""

    month = _packed(0x780000, 19, 0b1111, "Month 1-12, 0 for none, -1 for every month.")
    day = _packed(0x07C000, 14, 0b11111, "Day of month, 0 for none, -1 for every day.")
    week = _packed(0x003800, 11, 0b111, "Weekday with Sunday as 0, -1 for every day.")
    hour = _packed(0x0007C0, 6, 0b11111, "Hour 0-23, -1 for every hour.")
    minute = _packed(0x00003F, 0, 0b111111, "Minute 0-59, -1 for every minute.")

    @property
    def en(self) -> bool:
        """Whether the timer is enabled."""
        return bool(self.emdwhm & _EN_BIT)

    @en.setter
    def en(self, value: bool) -> None:
        if value:
            self.emdwhm |= _EN_BIT
        else:
            self.emdwhm &= 0x7FFFFF

    def timer_info(self) -> str:
        """The canonical text that identifies this timer."""
        if self.cron:
            return f"[{self.group_id}]{self.cron}"
        return (
            f"[{self.group_id}]{self.month}月{self.day}日{self.week}周"
            f"{self.hour}:{self.minute}"
        )

    def timer_id(self) -> int:
        """A 32-bit id derived from :meth:`timer_info`."""
        digest = hashlib.md5(self.timer_info().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little")

    def message(self) -> list[dict]:
        """The message segments sent when the timer goes off."""
        segments = [
            {"type": "at", "data": {"qq": "all"}},
            {"type": "text", "data": {"text": self.alert}},
        ]
        if self.url:
            segments.append({"type": "image", "data": {"file": self.url, "cache": "0"}})
        return segments


def filled_cron_timer(cron: str, alert: str, url: str, bot_id: int, group_id: int) -> Timer:
    """Build a cron-driven timer."""
    return Timer(self_id=bot_id, group_id=group_id, alert=alert, cron=cron, url=url)


def _invalid_day(value: int) -> bool:
    return (value != -1 and value <= 0) or value > 31


def filled_timer(date_strs, bot_id: int, group_id: int, match_date_only: bool) -> Timer:
    """Build a calendar timer from the groups of a reminder command.

    ``date_strs`` holds the whole match followed by month, day or weekday,
    hour, minute and, unless ``match_date_only``, the "用<url>" part and the
    alert text.  On an invalid field the returned timer is disabled and its
    ``alert`` names the problem.
    """
    month_str, day_week, hour_str, minute_str = date_strs[1:5]
    timer = Timer()

    month = chinese_num_to_int(month_str)
    if (month != -1 and month <= 0) or month > 12:
        timer.alert = "月份非法！"
        return timer
    timer.month = month

    if len(day_week) == 4:
        day = chinese_num_to_int(day_week[0] + day_week[2])
        if _invalid_day(day):
            timer.alert = "日期非法1！"
            return timer
        timer.day = day
    elif day_week.endswith("日"):
        day = chinese_num_to_int(day_week[:-1])
        if _invalid_day(day):
            timer.alert = "日期非法2！"
            return timer
        timer.day = day
    elif day_week.startswith("每"):
        timer.week = -1
    else:
        weekday = chinese_num_to_int(day_week[1:])
        if weekday == 7:
            weekday = 0
        if weekday < 0 or weekday > 6:
            timer.alert = "星期非法！"
            return timer
        timer.week = weekday

    if len(hour_str) == 3:
        hour_str = hour_str[0] + hour_str[2]
    hour = chinese_num_to_int(hour_str)
    if hour < -1 or hour > 23:
        timer.alert = "小时非法！"
        return timer
    timer.hour = hour

    if len(minute_str) == 3:
        minute_str = minute_str[0] + minute_str[2]
    minute = chinese_num_to_int(minute_str)
    if minute < -1 or minute > 59:
        timer.alert = "分钟非法！"
        return timer
    timer.minute = minute

    if not match_date_only:
        raw_url = date_strs[5] or ""
        if raw_url:
            # drop the leading "用", three bytes in UTF-8
            timer.url = raw_url.encode("utf-8")[3:].decode("utf-8", errors="replace")
            log.debug("[群管]%s", timer.url)
            if not timer.url.startswith("http"):
                timer.url = "illegal"
                log.debug("[群管]url非法！")
                return timer
        timer.alert = date_strs[6]
        timer.en = True
    timer.self_id = bot_id
    timer.group_id = group_id
    return timer


def chinese_num_to_int(text: str) -> int:
    """Convert a one or two character Chinese or ASCII number.

    Handles -10 to 99; "每" alone is -1 and "每二" is -2 and so on.
    """
    if not text:
        raise ValueError("empty number")
    first = text[0]
    if first.isdecimal():
        return int(text) if text.isascii() and text.isdigit() else 0
    if first == "每":
        return -chinese_char_to_int(text[1]) if len(text) == 2 else -1
    if len(text) == 1:
        return chinese_char_to_int(first)
    ten = chinese_char_to_int(first)
    if ten != 10:
        ten *= 10
    units = chinese_char_to_int(text[1])
    if units == 10:
        units = 0
    return ten + units


def chinese_char_to_int(ch: str) -> int:
    """Map one Chinese numeral (零 to 十) to its value; 日 and 天 are 7, others 0."""
    if ch in ("日", "天"):
        return 7
    index = _CHINESE_DIGITS.find(ch) if len(ch) == 1 else -1
    return index if index >= 0 else 0