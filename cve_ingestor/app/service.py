"""CVE 일괄 수집 서비스(CVE batch ingestion service)."""
from __future__ import annotations

import shutil
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union

from pydantic import BaseModel, Field

from common_lib.errors import ConfigurationError, IngestionError
from common_lib.logger import get_logger
from common_lib.observability import document_ctx

from .mapper import CveMapper
from .repository import CveRecordRepository

logger = get_logger(__name__)

FAILURE_LOG_NAME = "failures.log"


class BatchSummary(BaseModel):
    """일괄 처리 집계(Running totals of one batch run)."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    quarantined: List[str] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed


ProgressCallback = Callable[[Path, bool, BatchSummary], None]


def _default_progress(path: Path, succeeded: bool, summary: BatchSummary) -> None:
    """기본 진행 상황 콜백(Default progress callback)."""

    logger.info(
        "%s %s | Processed %d/%d | Success: %d | Failed: %d",
        "OK  " if succeeded else "FAIL",
        path.name,
        summary.processed,
        summary.total,
        summary.succeeded,
        summary.failed,
    )


class IngestionService:
    """문서 매핑 후 저장, 실패 시 격리(Map then write each document; quarantine failures)."""

    def __init__(
        self,
        mapper: CveMapper,
        repository: CveRecordRepository,
        quarantine_dir: Union[str, Path],
    ) -> None:
        self._mapper = mapper
        self._repository = repository
        self._quarantine_dir = Path(quarantine_dir)

    @property
    def quarantine_dir(self) -> Path:
        return self._quarantine_dir

    @property
    def failure_log(self) -> Path:
        return self._quarantine_dir / FAILURE_LOG_NAME

    def discover(self, input_dir: Union[str, Path]) -> List[Path]:
        """입력 디렉터리의 JSON 파일 열거(Enumerate *.json recursively, skipping the quarantine area)."""

        root = Path(input_dir)
        if not root.is_dir():
            raise ConfigurationError("input_dir", f"CVE directory not found: {root}")

        quarantine = self._quarantine_dir.resolve()
        documents = []
        for path in sorted(root.rglob("*.json")):
            if not path.is_file():
                continue
            resolved = path.resolve()
            if resolved == quarantine or quarantine in resolved.parents:
                continue
            documents.append(path)
        return documents

    def run(
        self,
        input_dir: Union[str, Path],
        progress_cb: ProgressCallback = _default_progress,
    ) -> BatchSummary:
        """전체 일괄 처리 실행(Run the batch over every document in input_dir)."""

        documents = self.discover(input_dir)
        summary = BatchSummary(total=len(documents))
        logger.info("Found %d JSON files to process in %s", summary.total, input_dir)

        for path in documents:
            succeeded = self.process_document(path, summary)
            progress_cb(path, succeeded, summary)

        logger.info(
            "Processing completed. Total: %d, Success: %d, Failed: %d",
            summary.total,
            summary.succeeded,
            summary.failed,
        )
        return summary

    def process_document(self, path: Path, summary: Optional[BatchSummary] = None) -> bool:
        """
        단일 문서 처리(Process one document end to end).

        Mapping completes before any transaction opens. Document-scoped
        failures are quarantined and reported as False; anything else propagates.
        """

        summary = summary if summary is not None else BatchSummary(total=1)
        token = document_ctx.set(str(path))
        try:
            try:
                record = self._mapper.map(path)
                self._repository.write(record)
            except IngestionError as exc:
                logger.warning("Failed %s during %s: %s", path, exc.stage, exc)
                summary.failed += 1
                destination = self.quarantine(path, exc)
                if destination is not None:
                    summary.quarantined.append(str(destination))
                return False

            summary.succeeded += 1
            return True
        finally:
            document_ctx.reset(token)

    def quarantine(self, path: Path, error: BaseException) -> Optional[Path]:
        """
        실패 파일 격리(Move a failed document aside and append to the failure log).

        Returns:
            The quarantined file path, or None if the move itself failed
        """

        self._quarantine_dir.mkdir(parents=True, exist_ok=True)
        destination: Optional[Path] = None
        move_error: Optional[OSError] = None
        try:
            destination = self._unique_destination(path.name)
            shutil.move(str(path), str(destination))
        except OSError as exc:
            move_error = exc
            destination = None
            logger.error("Failed to move file %s to quarantine: %s", path, exc)

        self._append_failure_log(path, error, move_error)
        return destination

    def _unique_destination(self, name: str) -> Path:
        candidate = self._quarantine_dir / name
        stem, suffix = Path(name).stem, Path(name).suffix
        counter = 1
        while candidate.exists():
            candidate = self._quarantine_dir / f"{stem}.{counter}{suffix}"
            counter += 1
        return candidate

    def _append_failure_log(self, path: Path, error: BaseException, move_error: Optional[OSError]) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        stage = getattr(error, "stage", "ingest")
        lines = [
            f"[{stamp}] stage={stage} file={path}",
            f"error: {type(error).__name__}: {error}",
        ]
        if move_error is not None:
            lines.append(f"quarantine move failed: {move_error}")
        lines.append("".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip())
        lines.append("-" * 72)

        try:
            with open(self.failure_log, "a", encoding="utf-8") as handle:
                handle.write("\n".join(lines) + "\n")
        except OSError as exc:
            logger.error("Failed to append to %s: %s", self.failure_log, exc)
