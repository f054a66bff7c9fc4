from __future__ import annotations


class PipelineError(Exception):
    pass


class LoadError(PipelineError):
    def __init__(self, message: str, column: str | None = None, missing_fields: list[str] | None = None):
        super().__init__(message)
        self.column = column
        self.missing_fields = missing_fields or []

    def __str__(self) -> str:
        msg = super().__str__()
        if self.column:
            msg = f"{msg} (column `{self.column}`)"
        if self.missing_fields:
            msg = f"{msg}: {', '.join(self.missing_fields)}"
        return msg


class DecompositionError(PipelineError):
    pass


class FitError(PipelineError):
    def __init__(self, message: str, series_name: str | None = None):
        super().__init__(message)
        self.series_name = series_name

    def __str__(self) -> str:
        msg = super().__str__()
        if self.series_name:
            return f"{self.series_name}: {msg}"
        return msg


class CandidateRejectedError(FitError):
    """A single order tried during the search could not be accepted."""


class ForecastError(PipelineError):
    pass


class RenderError(PipelineError):
    def __init__(self, message: str, section: str | None = None):
        super().__init__(message)
        self.section = section
