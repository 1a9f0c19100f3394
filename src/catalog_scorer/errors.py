from __future__ import annotations


class CatalogError(Exception):
    """Base class for run-level failures of the scoring engine."""


class ConfigError(CatalogError, ValueError):
    pass


class SchemaMismatch(CatalogError):
    def __init__(self, missing: list[str], header: list[str] | None = None) -> None:
        self.missing = list(missing)
        self.header = list(header or [])
        missing_list = ", ".join(self.missing)
        super().__init__(f"Catalog source is missing required columns: {missing_list}")


class RowMalformed(CatalogError, ValueError):
    """A single catalog row could not be interpreted; recovered by skipping it."""

    def __init__(self, message: str, column: str | None = None) -> None:
        self.column = column
        super().__init__(message)


class InvalidScore(CatalogError, ValueError):
    pass


class DownloadFailure(CatalogError):
    pass


class DecompressionFailure(CatalogError):
    pass


def error_summary(error: BaseException) -> str:
    message = str(error).strip()
    if message:
        return f"{error.__class__.__name__}: {message}"
    return error.__class__.__name__
