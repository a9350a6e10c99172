"""Report pipeline exceptions."""

from typing import Optional


class ReportError(Exception):
    """Base class for all report pipeline errors."""


class DateRangeValidationError(ReportError):
    """The requested reporting window is malformed or out of bounds."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ReportFetchError(ReportError):
    """The activity batch could not be loaded."""


class PartialFetchError(ReportError):
    """Attendance data of a single activity could not be loaded."""

    def __init__(self, activity_id: str, reason: str):
        super().__init__(f"Attendance for activity {activity_id} unavailable: {reason}")
        self.activity_id = activity_id


class AggregationInputError(ReportError):
    """An activity record lacks the fields needed to derive its statistics."""

    def __init__(self, activity_id: str, missing: list[str]):
        super().__init__(
            f"Activity {activity_id} is missing {', '.join(missing)}"
        )
        self.activity_id = activity_id
        self.missing = missing


class SheetNameError(ReportError):
    """A sheet name could not be reserved."""


class ExportError(ReportError):
    """The workbook could not be assembled or serialized."""


class ActivityNotFoundError(ReportError):
    """Requested activity does not exist."""
