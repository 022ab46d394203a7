"""CVE 문서 매퍼(CVE JSON document mapper).

Turns one CVE JSON 5.x file into a CveRecord. The mapper never touches the
database or moves files; failures are raised for the batch driver to route.
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from common_lib.errors import MissingMetadata, ParseError
from common_lib.logger import get_logger

from .models import CveRecord

logger = get_logger(__name__)

# CVE ID format: CVE-YYYY-NNNN (4-digit year, 4+ digit number)
CVE_ID_PATTERN = re.compile(r"^CVE-\d{4}-\d{4,}$")


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    suffix = f" (+{exc.error_count() - 1} more)" if exc.error_count() > 1 else ""
    return f"{location}: {first['msg']}{suffix}"


class CveMapper:
    """CVE JSON 매핑 서비스(Maps CVE JSON 5.x documents onto the record model)."""

    def map(self, document_path: Union[str, Path]) -> CveRecord:
        """
        파일을 레코드로 매핑(Map a JSON file to a CveRecord).

        Args:
            document_path: Path to a single CVE JSON document

        Returns:
            The mapped record

        Raises:
            ParseError: file unreadable, not JSON, or not CVE-shaped
            MissingMetadata: cveMetadata or its cveId is absent
        """

        path = Path(document_path)
        try:
            # utf-8-sig tolerates a leading byte-order mark
            raw = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(str(path), f"unreadable file: {exc}") from exc

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise ParseError(str(path), f"malformed JSON: {exc}") from exc

        return self.map_document(data, source=str(path))

    def map_document(self, data: Any, source: str = "<memory>") -> CveRecord:
        """
        이미 로드된 JSON을 매핑(Map an already-decoded JSON payload).

        Args:
            data: Decoded JSON value (expected to be an object)
            source: Label used in error messages and logs
        """

        if not isinstance(data, dict):
            raise ParseError(source, f"expected a JSON object, got {type(data).__name__}")

        try:
            record = CveRecord.model_validate(data)
        except ValidationError as exc:
            raise ParseError(source, _describe_validation_error(exc)) from exc
        except RecursionError as exc:
            raise ParseError(source, "document nested too deeply") from exc

        self._check_metadata(record, source)
        logger.debug("Mapped %s from %s", record.cve_id, source)
        return record

    @staticmethod
    def _check_metadata(record: CveRecord, source: str) -> None:
        if record.cve_metadata is None:
            raise MissingMetadata(source, "cveMetadata")

        cve_id = record.cve_metadata.cve_id
        if cve_id is None or not cve_id.strip():
            raise MissingMetadata(source, "cveMetadata.cveId")

        if not CVE_ID_PATTERN.match(cve_id):
            logger.warning("Unexpected CVE ID format %r in %s", cve_id, source)
