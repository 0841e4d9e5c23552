"""A clock that stores group reminders in SQLite and sends them on time."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from .schedule import next_wake_time, should_fire
from .timer import Timer

log = logging.getLogger(__name__)

Sender = Callable[[int, int, list], None]

_MONTH_NAMES = {name: i for i, name in enumerate(
    ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"], start=1)}
_DAY_NAMES = {name: i for i, name in enumerate(["sun", "mon", "tue", "wed", "thu", "fri", "sat"])}
_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}


def _weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True)
class CronSchedule:
    """A parsed five-field cron line."""

    minutes: frozenset
    hours: frozenset
    days: frozenset
    months: frozenset
    weekdays: frozenset
    dom_star: bool = False
    dow_star: bool = False

    def _day_matches(self, moment: datetime) -> bool:
        dom = moment.day in self.days
        dow = _weekday(moment) in self.weekdays
        if self.dom_star or self.dow_star:
            return dom and dow
        return dom or dow

    def matches(self, moment: datetime) -> bool:
        """Whether the schedule fires in the minute of ``moment``."""
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime) -> Optional[datetime]:
        """The first matching minute after ``moment``, or None within five years."""
        current = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        last_year = current.year + 5
        while current.year <= last_year:
            if current.month not in self.months:
                year = current.year + current.month // 12
                current = current.replace(year=year, month=current.month % 12 + 1, day=1,
                                          hour=0, minute=0)
            elif not self._day_matches(current):
                current = (current + timedelta(days=1)).replace(hour=0, minute=0)
            elif current.hour not in self.hours:
                current = current.replace(minute=0) + timedelta(hours=1)
            elif current.minute not in self.minutes:
                current += timedelta(minutes=1)
            else:
                return current
        return None


def _parse_value(text: str, names: dict) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    if not text.isascii() or not text.isdigit():
        raise ValueError(f"failed to parse int from {text}")
    return int(text)


def _parse_field(text: str, low: int, high: int, names: dict) -> tuple[frozenset, bool]:
    values: set[int] = set()
    star = False
    for part in text.split(","):
        if not part:
            raise ValueError(f"empty field in {text!r}")
        range_text, slash, step_text = part.partition("/")
        part_star = False
        if range_text in ("*", "?"):
            start, end = low, high
            part_star = True
        else:
            bounds = range_text.split("-")
            if len(bounds) > 2:
                raise ValueError(f"too many hyphens: {range_text}")
            start = _parse_value(bounds[0], names)
            end = _parse_value(bounds[1], names) if len(bounds) == 2 else start
        step = 1
        if slash:
            step = _parse_value(step_text, {})
            if "-" not in range_text and not part_star:
                end = high
            if step > 1:
                part_star = False
        if start < low:
            raise ValueError(f"beginning of range ({start}) below minimum ({low}): {part}")
        if end > high:
            raise ValueError(f"end of range ({end}) above maximum ({high}): {part}")
        if start > end:
            raise ValueError(f"beginning of range ({start}) beyond end of range ({end}): {part}")
        if step == 0:
            raise ValueError(f"step of range should be a positive number: {part}")
        values.update(range(start, end + 1, step))
        star = star or part_star
    return frozenset(values), star


def parse_cron(expr: str) -> CronSchedule:
    """Parse a standard cron line (minute hour day month weekday) or a descriptor."""
    text = expr.strip()
    if text.startswith("@"):
        if text not in _DESCRIPTORS:
            raise ValueError(f"unrecognized descriptor: {text}")
        text = _DESCRIPTORS[text]
    fields = text.split()
    if len(fields) != 5:
        raise ValueError(f"expected exactly 5 fields, found {len(fields)}: {expr}")
    minutes, _ = _parse_field(fields[0], 0, 59, {})
    hours, _ = _parse_field(fields[1], 0, 23, {})
    days, dom_star = _parse_field(fields[2], 1, 31, {})
    months, _ = _parse_field(fields[3], 1, 12, _MONTH_NAMES)
    weekdays, dow_star = _parse_field(fields[4], 0, 6, _DAY_NAMES)
    return CronSchedule(minutes, hours, days, months, weekdays, dom_star, dow_star)


_COLUMNS = "id, emdwhm, sid, gid, alert, cron, url"


class Clock:
    """Keeps reminders in memory and in SQLite, and fires them from a worker thread.

    ``sender(self_id, group_id, segments)`` is called whenever a timer goes off.
    """

    def __init__(self, db_path, sender: Sender):
        self._sender = sender
        self._timers: dict[int, Timer] = {}
        self._due: dict[int, tuple[datetime, Timer, Optional[CronSchedule]]] = {}
        self._lock = threading.RLock()
        self._wake = threading.Condition(self._lock)
        self._closed = False
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.execute(
            "CREATE TABLE IF NOT EXISTS timer ("
            "id INTEGER PRIMARY KEY, emdwhm INTEGER, sid INTEGER, gid INTEGER, "
            "alert TEXT, cron TEXT, url TEXT)"
        )
        self._db.commit()
        self._thread = threading.Thread(target=self._run, name="clock", daemon=True)
        self._thread.start()
        self._load()

    def __enter__(self) -> "Clock":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _load(self) -> None:
        with self._lock:
            rows = self._db.execute(f"SELECT {_COLUMNS} FROM timer").fetchall()
        for row in rows:
            self.register_timer(Timer(*row), False, True)

    def register_timer(self, timer: Timer, save: bool, isinit: bool) -> bool:
        """Register a timer; with ``save`` its id is derived and it is stored.

        An earlier timer under the same id is disabled.  Returns False when a
        cron line cannot be parsed (the error goes to ``timer.alert``) or the
        timer cannot be stored.
        """
        if save:
            key = timer.timer_id()
            timer.id = key
        else:
            key = timer.id
        previous = self.get_timer(key)
        if previous is not None and previous is not timer:
            previous.en = False
        log.info("[群管]注册计时器 %d%s", key, " (loaded)" if isinit else "")

        schedule = None
        if timer.cron:
            try:
                schedule = parse_cron(timer.cron)
            except ValueError as exc:
                timer.alert = str(exc)
                return False
        if save:
            try:
                self.add_timer_into_db(timer)
            except sqlite3.Error as exc:
                log.error("[群管]保存计时器失败: %s", exc)
                if schedule is not None:
                    return False
        self.add_timer_into_map(timer)
        if schedule is not None or timer.en:
            self._schedule(key, timer, schedule, datetime.now())
        return True

    def _schedule(self, key: int, timer: Timer, schedule: Optional[CronSchedule],
                  now: datetime) -> None:
        due = schedule.next_after(now) if schedule else next_wake_time(timer, now)
        with self._wake:
            if due is None:
                self._due.pop(key, None)
            else:
                self._due[key] = (due, timer, schedule)
            self._wake.notify()

    def cancel_timer(self, key: int) -> bool:
        """Stop and forget a timer; False if there is no such timer."""
        with self._wake:
            timer = self._timers.pop(key, None)
            if timer is None:
                return False
            if not timer.cron:
                timer.en = False
            self._due.pop(key, None)
            self._wake.notify()
            try:
                self._db.execute("DELETE FROM timer WHERE id = ?", (key,))
                self._db.commit()
            except sqlite3.Error as exc:
                log.error("[群管]删除计时器失败: %s", exc)
                return False
            return True

    def list_timers(self, group_id: int) -> list[str]:
        """Human-readable descriptions of the group's timers."""
        with self._lock:
            timers = list(self._timers.values())
        lines = []
        for timer in timers:
            if timer.group_id != group_id:
                continue
            info = timer.timer_info()
            text = (info[info.index("]") + 1:] + "\n").replace("-1", "每")
            text = text.replace("月0日0周", "月周天")
            text = text.replace("月0日", "月")
            text = text.replace("日0周", "日")
            lines.append(text)
        return lines

    def get_timer(self, key: int) -> Optional[Timer]:
        """The registered timer with this id, or None."""
        with self._lock:
            return self._timers.get(key)

    def add_timer_into_db(self, timer: Timer) -> None:
        """Store a timer, replacing one with the same id."""
        with self._lock:
            self._db.execute(
                f"INSERT OR REPLACE INTO timer ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (timer.id, timer.emdwhm, timer.self_id, timer.group_id,
                 timer.alert, timer.cron, timer.url),
            )
            self._db.commit()

    def add_timer_into_map(self, timer: Timer) -> None:
        """Keep a timer in memory under its id."""
        with self._lock:
            self._timers[timer.id] = timer

    def close(self) -> None:
        """Stop the worker thread and close the database."""
        with self._wake:
            if self._closed:
                return
            self._closed = True
            self._wake.notify_all()
        self._thread.join()
        with self._lock:
            self._db.close()

    def _collect(self, now: datetime) -> list[Timer]:
        fired = []
        for key in [k for k, (due, _, _) in self._due.items() if due <= now]:
            _, timer, schedule = self._due.pop(key)
            if schedule is not None:
                fired.append(timer)
                nxt = schedule.next_after(now)
                if nxt is not None:
                    self._due[key] = (nxt, timer, schedule)
            elif timer.en:
                if should_fire(timer, now):
                    fired.append(timer)
                self._due[key] = (next_wake_time(timer, now), timer, None)
        return fired

    def _timeout(self, now: datetime) -> Optional[float]:
        if not self._due:
            return None
        soonest = min(due for due, _, _ in self._due.values())
        return max(0.0, (soonest - now).total_seconds())

    def _run(self) -> None:
        while True:
            with self._wake:
                if self._closed:
                    return
                now = datetime.now()
                fired = self._collect(now)
                if not fired:
                    self._wake.wait(self._timeout(now))
                    continue
            for timer in fired:
                try:
                    self._sender(timer.self_id, timer.group_id, timer.message())
                except Exception:
                    log.exception("[群管]发送提醒失败")