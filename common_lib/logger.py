import logging
import sys

_logging_configured = False

TEXT_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'


def setup_logging(level: str = "INFO", fmt: str = "text", force: bool = False):
    global _logging_configured
    if _logging_configured and not force:
        return

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        from .observability import CustomJsonFormatter

        handler.setFormatter(CustomJsonFormatter("%(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True  # 기존 설정 강제 덮어쓰기
    )

    # 라이브러리 로그 레벨 조정
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str):
    """명명된 로거 가져오기(Get a named logger).

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    setup_logging()
    return logging.getLogger(name)
