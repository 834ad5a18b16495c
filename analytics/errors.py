# outbreak_sentinel/analytics/errors.py
#
# Exceptions raised by the analytics core. Short series and zero variance are
# not errors: they degrade to sentinel values inside each stage.


class AnalyticsError(Exception):
    """Base class for analytics core errors."""


class SourceUnavailableError(AnalyticsError):
    """The raw record collections could not be loaded for a recompute."""

    def __init__(self, source: str, reason: str = "source data unavailable"):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")
