"""Exception hierarchy for umber-cli.

Not-found conditions (missing category, missing topic) are never raised;
they are expressed as ``None`` return values and drive the create branch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .importer.models import ImportReport


class UmberError(Exception):
    """Base class for all errors raised by umber-cli."""


class ConfigurationError(UmberError, ValueError):
    """Missing or invalid settings, reported before any remote call."""


class SourceError(UmberError):
    """The file source could not be read (bad URL, failed download)."""


class NodeBBError(UmberError):
    """A forum API call failed at the transport level or returned non-2xx.

    Attributes:
        status_code: HTTP status, or ``None`` for connection failures.
        body: Decoded response body when one was received.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ImportAbortedError(UmberError):
    """A pass stopped on its first remote failure.

    Files processed before the failure keep their new remote state; the
    partial report lists them.
    """

    def __init__(self, report: ImportReport, cause: Exception) -> None:
        super().__init__(f"Import aborted: {cause}")
        self.report = report
        self.cause = cause
