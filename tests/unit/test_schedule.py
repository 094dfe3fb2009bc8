from datetime import datetime, timezone

from helpdesk_chatbot.execution.schedule import is_open, parse_schedule, to_minutes

# 2024-05-15 is a Wednesday (day 3, Sunday = 0)
WEDNESDAY_NOON_UTC = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def schedule(windows, **extra):
    return parse_schedule({"windows": windows, **extra})


class TestParseSchedule:
    def test_not_an_object(self):
        assert parse_schedule(None) is None
        assert parse_schedule("always") is None

    def test_defaults(self):
        parsed = parse_schedule({"windows": [{"days": [1], "start": "08:00", "end": "18:00"}]})
        assert parsed.timezone == "UTC"
        assert parsed.enabled is True
        assert len(parsed.windows) == 1

    def test_enabled_defaults_to_false_without_windows(self):
        assert parse_schedule({}).enabled is False

    def test_incomplete_windows_are_dropped(self):
        parsed = parse_schedule(
            {
                "windows": [
                    {"days": [], "start": "08:00", "end": "18:00"},
                    {"days": [1], "start": "08:00"},
                    {"days": [True, 2], "start": "08:00", "end": "12:00"},
                ]
            }
        )
        assert len(parsed.windows) == 1
        assert parsed.windows[0].days == (2,)

    def test_fallback_message(self):
        parsed = parse_schedule({"fallbackMessage": "Closed"})
        assert parsed.fallback_message == "Closed"


class TestToMinutes:
    def test_parse(self):
        assert to_minutes("08:30") == 510
        assert to_minutes("00:00") == 0

    def test_garbage_counts_as_zero(self):
        assert to_minutes("xx:15") == 15
        assert to_minutes("9") == 540


class TestIsOpen:
    def test_missing_schedule_is_open(self):
        assert is_open(None, WEDNESDAY_NOON_UTC)

    def test_disabled_schedule_is_open(self):
        closed_days = schedule([{"days": [0], "start": "08:00", "end": "09:00"}], enabled=False)
        assert is_open(closed_days, WEDNESDAY_NOON_UTC)

    def test_inside_window(self):
        assert is_open(schedule([{"days": [3], "start": "08:00", "end": "18:00"}]), WEDNESDAY_NOON_UTC)

    def test_window_bounds_are_inclusive(self):
        window = schedule([{"days": [3], "start": "12:00", "end": "12:00"}])
        assert is_open(window, WEDNESDAY_NOON_UTC)

    def test_wrong_day(self):
        assert not is_open(schedule([{"days": [1, 2], "start": "08:00", "end": "18:00"}]), WEDNESDAY_NOON_UTC)

    def test_outside_hours(self):
        assert not is_open(schedule([{"days": [3], "start": "13:00", "end": "18:00"}]), WEDNESDAY_NOON_UTC)

    def test_timezone_is_applied(self):
        # 12:00 UTC is 09:00 in Sao Paulo
        sao_paulo = schedule(
            [{"days": [3], "start": "08:00", "end": "10:00"}], timezone="America/Sao_Paulo"
        )
        assert is_open(sao_paulo, WEDNESDAY_NOON_UTC)
        tokyo = schedule([{"days": [3], "start": "08:00", "end": "10:00"}], timezone="Asia/Tokyo")
        assert not is_open(tokyo, WEDNESDAY_NOON_UTC)

    def test_unknown_timezone_falls_back_to_utc(self):
        window = schedule([{"days": [3], "start": "11:00", "end": "13:00"}], timezone="Mars/Olympus")
        assert is_open(window, WEDNESDAY_NOON_UTC)

    def test_naive_datetime_is_utc(self):
        window = schedule([{"days": [3], "start": "11:00", "end": "13:00"}])
        assert is_open(window, datetime(2024, 5, 15, 12, 0))

    def test_window_crossing_midnight(self):
        night_shift = schedule([{"days": [2], "start": "22:00", "end": "06:00"}])
        # Tuesday 23:00 and Wednesday 05:00 are both covered
        assert is_open(night_shift, datetime(2024, 5, 14, 23, 0, tzinfo=timezone.utc))
        assert is_open(night_shift, datetime(2024, 5, 15, 5, 0, tzinfo=timezone.utc))
        assert not is_open(night_shift, datetime(2024, 5, 15, 7, 0, tzinfo=timezone.utc))
        assert not is_open(night_shift, datetime(2024, 5, 15, 23, 0, tzinfo=timezone.utc))
