from datetime import datetime, timedelta

import pytest

from zbplugin.schedule import first_week, next_wake_time, should_fire
from zbplugin.timer import Timer


def _timer(month=-1, day=-1, week=-1, hour=-1, minute=-1):
    timer = Timer()
    timer.month = month
    timer.day = day
    timer.week = week
    timer.hour = hour
    timer.minute = minute
    return timer


def test_next_wake_time_source_case():
    ts = Timer()
    ts.month = -1
    ts.week = 6
    ts.hour = 16
    ts.minute = 30
    now = datetime.now()
    assert next_wake_time(ts, now) - now > timedelta(0)


def test_weekly_timer_lands_on_saturday():
    ts = Timer()
    ts.month = -1
    ts.week = 6
    ts.hour = 16
    ts.minute = 30
    now = datetime(2022, 6, 13, 10, 0)
    assert now.weekday() == 0
    wake = next_wake_time(ts, now)
    assert wake > now
    assert wake - now <= timedelta(days=7)
    assert wake.weekday() == 5
    assert (wake.hour, wake.minute) == (16, 30)


def test_every_minute_timer():
    now = datetime(2022, 6, 13, 10, 0, 15)
    assert next_wake_time(_timer(), now) == now + timedelta(minutes=1)


def test_hourly_timer():
    now = datetime(2022, 6, 13, 10, 45)
    wake = next_wake_time(_timer(minute=30), now)
    assert wake.minute == 30
    assert now < wake <= now + timedelta(hours=2)


def test_daily_timer():
    now = datetime(2022, 6, 13, 7, 0)
    wake = next_wake_time(_timer(hour=8, minute=0), now)
    assert (wake.hour, wake.minute) == (8, 0)
    assert wake > now


def test_result_always_in_future():
    now = datetime(2022, 12, 31, 23, 59)
    for timer in (_timer(month=12, day=31, hour=23, minute=59), _timer(month=1, day=1, hour=0, minute=0)):
        assert next_wake_time(timer, now) > now


def test_first_week():
    day = first_week(datetime(2022, 6, 20, 9, 30), 6)
    assert day.month == 6
    assert day.day <= 7
    assert day.weekday() == 5
    assert (day.hour, day.minute) == (9, 30)


def test_first_week_rejects_bad_weekday():
    with pytest.raises(ValueError):
        first_week(datetime(2022, 6, 20), -1)


def test_should_fire_every_minute():
    assert should_fire(_timer(), datetime(2022, 6, 13, 10, 0))


def test_should_fire_hour_minute():
    now = datetime(2022, 6, 13, 10, 5)
    assert should_fire(_timer(hour=10, minute=5), now)
    assert not should_fire(_timer(hour=10, minute=6), now)
    assert not should_fire(_timer(hour=11, minute=5), now)


def test_should_fire_weekday():
    saturday = datetime(2022, 6, 18, 16, 30)
    assert saturday.weekday() == 5
    assert should_fire(_timer(day=0, week=6, hour=16, minute=30), saturday)
    assert not should_fire(_timer(day=0, week=5, hour=16, minute=30), saturday)


def test_should_fire_month_and_day():
    now = datetime(2022, 6, 18, 16, 30)
    assert should_fire(_timer(month=6, day=18, hour=16, minute=30), now)
    assert not should_fire(_timer(month=7, day=18, hour=16, minute=30), now)
    assert not should_fire(_timer(month=6, day=17, hour=16, minute=30), now)