"""CVE 수집 애플리케이션(CVE ingestion application)."""
from .mapper import CveMapper
from .models import CveRecord
from .repository import CveRecordRepository
from .service import BatchSummary, IngestionService

__all__ = [
    "BatchSummary",
    "CveMapper",
    "CveRecord",
    "CveRecordRepository",
    "IngestionService",
]
