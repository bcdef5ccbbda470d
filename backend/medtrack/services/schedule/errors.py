"""Errors raised by schedule generation."""


class ScheduleConfigurationError(ValueError):
    """Regimen data that cannot be expanded into dose instances."""


class InvalidTimezoneError(ScheduleConfigurationError):
    def __init__(self, time_zone: str | None):
        self.time_zone = time_zone
        label = repr(time_zone) if time_zone else "blank timezone"
        super().__init__(f"Invalid regimen timezone: {label}")
