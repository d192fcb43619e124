from .date_utils import ProgramCalendarService

__all__ = ['ProgramCalendarService']
