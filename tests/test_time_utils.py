from datetime import UTC, date

from casebook.app.core.time import utc_now, utc_today


def test_utc_now_is_timezone_aware_utc():
    value = utc_now()
    assert value.tzinfo is UTC


def test_utc_today_is_a_date():
    assert isinstance(utc_today(), date)
