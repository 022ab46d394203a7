"""구조화 로깅(Structured logging for ingestion runs)."""
from __future__ import annotations

import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

# Document currently being ingested; lets every log line be tied back to a file
document_ctx: ContextVar[str] = ContextVar("document", default="-")


def get_current_document() -> str:
    """현재 문서 조회(Retrieve the document currently being processed).

    Returns:
        Path of the current document, or "-" outside of a document scope.
    """
    return document_ctx.get()


class CustomJsonFormatter(JsonFormatter):
    """사용자 정의 JSON 포매터(Custom JSON formatter with document injection)."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """
        필드 추가 및 문서 경로 삽입(Add fields and inject the current document).

        Args:
            log_record: The log record dictionary
            record: The LogRecord object
            message_dict: The message dictionary
        """
        super().add_fields(log_record, record, message_dict)

        if "timestamp" not in log_record:
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record.pop("asctime", None)

        log_record["document"] = get_current_document()
        log_record.setdefault("level", record.levelname)
        log_record.setdefault("name", record.name)
