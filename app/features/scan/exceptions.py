"""
Scan Errors

Typed failures raised by the scan pipeline. Each carries the URL and the
pipeline stage it came from so the API layer and the logs can say where
a scan stopped.
"""
from typing import Optional


class ScanError(Exception):
    """Base class for every scan pipeline failure."""

    stage: str = "scan"

    def __init__(self, message: str, url: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url
        if stage is not None:
            self.stage = stage

    def to_dict(self) -> dict:
        return {"url": self.url, "stage": self.stage}


class InvalidInputError(ScanError):
    """Malformed start URL or page budget."""

    stage = "validation"


class PageAuditFailure(ScanError):
    """A single page could not be audited (error or timeout)."""

    stage = "page_audit"


class ScanExecutionError(ScanError):
    """Every planned page failed, so no scan can be recorded."""

    stage = "aggregation"


class PersistenceError(ScanError):
    """The store rejected a write after aggregation succeeded."""

    stage = "persistence"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        stage: Optional[str] = None,
        scan_id: Optional[str] = None,
    ):
        super().__init__(message, url=url, stage=stage)
        self.scan_id = scan_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["scan_id"] = self.scan_id
        return data


class ScanConsistencyError(PersistenceError):
    """The scan header was written but its violation rows were not."""

    stage = "violations"
