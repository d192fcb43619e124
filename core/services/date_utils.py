"""Program calendar and day-index calculation utilities."""
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union


class ProgramCalendarService:
    """Service for mapping program day indices onto calendar dates."""

    WEEKDAYS_PER_WEEK = 5
    FULL_WEEK = 7

    @staticmethod
    def days_per_week(include_weekends: bool) -> int:
        """Number of program days that make up one program week."""
        return ProgramCalendarService.FULL_WEEK if include_weekends else ProgramCalendarService.WEEKDAYS_PER_WEEK

    @staticmethod
    def week_day_range(position: int, include_weekends: bool, length_days: Optional[int] = None) -> Optional[Tuple[int, int]]:
        """Get the contiguous 1-based day range covered by a program week.

        Args:
            position: 0-based ordinal position of the week within the program
            include_weekends: Whether the program runs 7 days a week
            length_days: Total program length; the last week is truncated to it

        Returns:
            (start_day_index, end_day_index) inclusive, or None if the week
            starts after the program has ended

        Example:
            >>> ProgramCalendarService.week_day_range(1, include_weekends=False)
            (6, 10)
        """
        per_week = ProgramCalendarService.days_per_week(include_weekends)
        start = position * per_week + 1
        end = start + per_week - 1
        if length_days:
            if start > length_days:
                return None
            end = min(end, length_days)
        return start, end

    @staticmethod
    def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
        """Accept an ISO string (date or datetime) or a date and return a date."""
        if value is None or value == '':
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value).split('T')[0])

    @staticmethod
    def format_date(d: Optional[date]) -> Optional[str]:
        return d.isoformat() if d else None

    @staticmethod
    def day_index_to_date(start_date: Union[str, date], day_index: int, include_weekends: bool = True) -> date:
        """Map a 1-based program day index onto a calendar date.

        Weekday-only programs skip Saturdays and Sundays; a start date that
        falls on a weekend rolls forward to the following Monday.

        Example:
            >>> ProgramCalendarService.day_index_to_date('2026-03-06', 2, include_weekends=False)  # Friday start
            date(2026, 3, 9)  # Monday
        """
        current = ProgramCalendarService.parse_date(start_date)

        if not include_weekends and current.weekday() >= 5:
            current += timedelta(days=7 - current.weekday())

        if include_weekends:
            return current + timedelta(days=day_index - 1)

        remaining = day_index - 1
        while remaining > 0:
            current += timedelta(days=1)
            if current.weekday() < 5:
                remaining -= 1
        return current
