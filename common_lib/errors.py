"""공통 에러 클래스 정의(Common error classes).

Exceptions used by the ingestion pipeline. Document-scoped failures derive
from IngestionError and are recovered by quarantining the offending file;
ConfigurationError is fatal and aborts the run before any document is read.
"""
from __future__ import annotations

from typing import Optional


class IngestionError(Exception):
    """Base exception for failures scoped to a single CVE document."""

    stage = "ingest"


class ParseError(IngestionError):
    """
    Raised when a document is not valid JSON or does not match the CVE 5.x shape.

    The batch skips the document and moves it to the quarantine directory.
    """

    stage = "map"

    def __init__(self, source: str, reason: str):
        """
        Initialize ParseError.

        Args:
            source: Path (or label) of the document being mapped
            reason: Why the document could not be decoded
        """
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to parse {source}: {reason}")


class MissingMetadata(IngestionError):
    """
    Raised when a document parses but lacks the mandatory cveMetadata block or CVE id.
    """

    stage = "map"

    def __init__(self, source: str, field: str):
        """
        Initialize MissingMetadata.

        Args:
            source: Path (or label) of the document being mapped
            field: JSON field that is absent (e.g., 'cveMetadata', 'cveMetadata.cveId')
        """
        self.source = source
        self.field = field
        super().__init__(f"Missing critical CVE metadata in {source}: '{field}' is absent")


class WriteError(IngestionError):
    """
    Raised when persisting a record fails.

    The per-record transaction has already been rolled back when this is raised;
    the underlying database exception is chained as ``__cause__``.
    """

    stage = "write"

    def __init__(self, cve_id: Optional[str], reason: str):
        """
        Initialize WriteError.

        Args:
            cve_id: Business key of the record being written (if known)
            reason: Description of the underlying failure
        """
        self.cve_id = cve_id
        self.reason = reason
        super().__init__(f"Failed to write {cve_id or '<unknown CVE>'}: {reason}")


class ConfigurationError(Exception):
    """Raised when required configuration is absent or inconsistent. Fatal to the run."""

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Configuration error: {setting}. Reason: {reason}")
