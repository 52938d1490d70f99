"""Custom exceptions for reportanalysis.

The normalizer itself never raises; these error types belong to the outer
surfaces (text decoding on request, configuration, export, batch tool).
"""


class ReportAnalysisError(Exception):
    """Base exception for all reportanalysis errors."""

    pass


class ConfigurationError(ReportAnalysisError):
    """Raised when configuration is invalid or missing."""

    pass


class AnalysisParseError(ReportAnalysisError):
    """Raised when analysis job output cannot be decoded as JSON."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class ExportError(ReportAnalysisError):
    """Raised when a report table cannot be exported."""

    def __init__(self, message: str, table: str | None = None):
        super().__init__(message)
        self.table = table
