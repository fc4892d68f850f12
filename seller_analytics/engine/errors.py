"""
Analytics Engine Errors

Raised only for structurally invalid input. Plausible-but-incomplete data
degrades to zero values instead.
"""

from datetime import date


class AnalyticsError(ValueError):
    """Base class for analytics engine errors"""
    pass


class InvalidPeriodError(AnalyticsError):
    """Period start falls after period end"""

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(f"Period start {start} is after period end {end}")


class UnknownSortKeyError(AnalyticsError):
    """Product sort key is not supported"""

    def __init__(self, key: str, allowed: tuple):
        self.key = key
        self.allowed = allowed
        super().__init__(f"Unknown product sort key '{key}', expected one of: {list(allowed)}")
