"""Domain errors raised by the program services and mapped to HTTP by the API."""


class ProgramError(Exception):
    status_code = 400
    default_message = "Invalid program request"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ProgramNotFound(ProgramError):
    status_code = 404
    default_message = "Program not found"


class CohortNotFound(ProgramError):
    status_code = 404
    default_message = "Cohort not found"


class EnrollmentNotFound(ProgramError):
    status_code = 404
    default_message = "Enrollment not found or does not belong to this program"


class InstanceNotFound(ProgramError):
    status_code = 404
    default_message = "Instance not found"


class WeekNotFound(ProgramError):
    status_code = 404
    default_message = "Week not found"


class DayNotFound(ProgramError):
    status_code = 404
    default_message = "Day not found"


class TemplateSyncNotAllowed(ProgramError):
    default_message = "Template sync is only available for individual programs"
