"""Exceptions raised by busschedule."""


class BusScheduleError(Exception):
    """Base class for busschedule errors."""


class DataFormatError(BusScheduleError):
    """A data file is not in the expected format."""

    def __init__(self, filename: str, message: str):
        self.filename = filename
        super().__init__(f"{filename}: {message}")


class MigrationError(BusScheduleError):
    """Legacy input cannot be migrated."""
