"""Unit tests for core services."""
from datetime import date
from unittest import mock

import redis
from django.test import TestCase

from core.services import ProgramCalendarService
from core.utils.redis_lock import RedisLock


class ProgramCalendarServiceTests(TestCase):
    """Tests for ProgramCalendarService."""

    def test_days_per_week(self):
        self.assertEqual(ProgramCalendarService.days_per_week(True), 7)
        self.assertEqual(ProgramCalendarService.days_per_week(False), 5)

    def test_week_day_range_with_weekends(self):
        """Test week positions map onto consecutive 7-day blocks."""
        self.assertEqual(ProgramCalendarService.week_day_range(0, True), (1, 7))
        self.assertEqual(ProgramCalendarService.week_day_range(2, True), (15, 21))

    def test_week_day_range_weekdays_only(self):
        self.assertEqual(ProgramCalendarService.week_day_range(1, False), (6, 10))

    def test_week_day_range_truncated_to_program_length(self):
        """Test the last week stops at the program's final day."""
        self.assertEqual(ProgramCalendarService.week_day_range(1, True, length_days=10), (8, 10))

    def test_week_day_range_past_program_end(self):
        self.assertIsNone(ProgramCalendarService.week_day_range(2, True, length_days=14))

    def test_day_index_to_date_with_weekends(self):
        start = date(2026, 3, 6)  # Friday
        self.assertEqual(ProgramCalendarService.day_index_to_date(start, 1, True), start)
        self.assertEqual(ProgramCalendarService.day_index_to_date(start, 3, True), date(2026, 3, 8))

    def test_day_index_to_date_skips_weekends(self):
        """Test weekday programs jump from Friday to Monday."""
        start = date(2026, 3, 6)  # Friday
        self.assertEqual(ProgramCalendarService.day_index_to_date(start, 2, False), date(2026, 3, 9))
        self.assertEqual(ProgramCalendarService.day_index_to_date(start, 6, False), date(2026, 3, 13))

    def test_weekend_start_rolls_to_monday(self):
        start = date(2026, 3, 7)  # Saturday
        self.assertEqual(ProgramCalendarService.day_index_to_date(start, 1, False), date(2026, 3, 9))
        self.assertEqual(ProgramCalendarService.day_index_to_date(start, 6, False), date(2026, 3, 16))

    def test_day_index_to_date_accepts_iso_string(self):
        self.assertEqual(ProgramCalendarService.day_index_to_date('2026-03-06', 1, True), date(2026, 3, 6))

    def test_parse_date(self):
        self.assertEqual(ProgramCalendarService.parse_date('2026-03-06T10:00:00Z'), date(2026, 3, 6))
        self.assertIsNone(ProgramCalendarService.parse_date(''))
        self.assertIsNone(ProgramCalendarService.parse_date(None))

    def test_format_date(self):
        self.assertEqual(ProgramCalendarService.format_date(date(2026, 3, 6)), '2026-03-06')
        self.assertIsNone(ProgramCalendarService.format_date(None))


class RedisLockTests(TestCase):
    """Tests for RedisLock using a mocked client."""

    @mock.patch('core.utils.redis_lock.get_redis_client')
    def test_acquire_and_release(self, get_client):
        client = get_client.return_value
        client.set.return_value = True

        with RedisLock('cohort-sync:1', ttl=30) as acquired:
            self.assertTrue(acquired)

        client.set.assert_called_once_with('lock:cohort-sync:1', '1', nx=True, ex=30)
        client.delete.assert_called_once_with('lock:cohort-sync:1')

    @mock.patch('core.utils.redis_lock.get_redis_client')
    def test_held_lock_is_not_released(self, get_client):
        client = get_client.return_value
        client.set.return_value = None

        with RedisLock('cohort-sync:1') as acquired:
            self.assertFalse(acquired)

        client.delete.assert_not_called()

    @mock.patch('core.utils.redis_lock.get_redis_client')
    def test_fail_open_when_redis_down(self, get_client):
        get_client.return_value.set.side_effect = redis.ConnectionError('down')

        with RedisLock('cohort-sync:1', fail_open=True) as acquired:
            self.assertTrue(acquired)
        with RedisLock('cohort-sync:1') as acquired:
            self.assertFalse(acquired)
