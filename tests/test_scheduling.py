from datetime import date, datetime, timedelta

from app.utils.scheduling import can_refund, parse_time_slot, scheduled_start

NOW = datetime(2026, 3, 10, 9, 0)


def test_exactly_24_hours_ahead_is_refundable():
    assert can_refund(date(2026, 3, 11), "09:00", now=NOW) is True


def test_one_minute_inside_cutoff_is_not_refundable():
    assert can_refund(date(2026, 3, 11), "08:59", now=NOW) is False


def test_ten_hours_ahead_is_not_refundable():
    assert can_refund(date(2026, 3, 10), "19:00", now=NOW) is False


def test_past_booking_is_not_refundable():
    assert can_refund(date(2026, 3, 9), "09:00", now=NOW) is False


def test_far_future_booking_is_refundable():
    assert can_refund("2026-04-01", "18:30", now=NOW) is True


def test_unparsable_inputs_are_not_refundable():
    assert can_refund(None, "09:00", now=NOW) is False
    assert can_refund(date(2026, 4, 1), None, now=NOW) is False
    assert can_refund("not-a-date", "09:00", now=NOW) is False
    assert can_refund(date(2026, 4, 1), "evening", now=NOW) is False
    assert can_refund(date(2026, 4, 1), "25:00", now=NOW) is False


def test_slot_ranges_use_their_start_time():
    assert parse_time_slot("14:00 - 15:00").hour == 14
    assert scheduled_start(date(2026, 4, 1), "7:05") == datetime(2026, 4, 1, 7, 5)


def test_custom_cutoff():
    booking_day = (NOW + timedelta(hours=30)).date()
    assert can_refund(booking_day, "15:00", now=NOW, cutoff_hours=48) is False
    assert can_refund(booking_day, "15:00", now=NOW, cutoff_hours=24) is True
