import logging
import logging.config
import json
from datetime import datetime
from typing import Dict, Any
from pathlib import Path

from cbt.core.config import settings


# Structured attributes copied from LogRecord extras into the JSON payload
STRUCTURED_FIELDS = (
    "service",
    "endpoint",
    "method",
    "status_code",
    "response_time_ms",
    "request_id",
    "exam_code",
    "subject",
    "action",
    "error_code",
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that renders each record as one JSON line so that log
    shippers can index exam events without parsing free text.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
            "thread": record.thread,
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def _file_handler(filename: str, level: str, backup_count: int = 10) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "structured",
        "filename": filename,
        "maxBytes": 10485760,  # 10MB
        "backupCount": backup_count,
        "level": level,
    }


def setup_logging() -> None:
    """
    Configures console logging and, unless LOG_TO_FILE is off, rotating
    JSON log files under LOG_DIR.
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
            "level": "INFO",
            "stream": "ext://sys.stdout"
        }
    }
    app_handlers = ["console"]
    exam_handlers = ["console"]
    api_handlers = ["console"]

    log_dir = Path(settings.LOG_DIR)
    if settings.LOG_TO_FILE:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file_all"] = _file_handler(str(log_dir / "app.log"), "INFO")
        handlers["file_errors"] = _file_handler(str(log_dir / "errors.log"), "ERROR")
        handlers["file_exam"] = _file_handler(str(log_dir / "exam.log"), "INFO")
        handlers["file_api"] = _file_handler(str(log_dir / "api.log"), "INFO")
        app_handlers += ["file_all", "file_errors"]
        exam_handlers += ["file_exam", "file_errors"]
        api_handlers += ["file_api"]

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
            },
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": handlers,
        "loggers": {
            "cbt": {
                "level": "INFO",
                "handlers": app_handlers,
                "propagate": False
            },
            "cbt.services.exam_session": {
                "level": "INFO",
                "handlers": exam_handlers,
                "propagate": False
            },
            "cbt.audit": {
                "level": "INFO",
                "handlers": exam_handlers,
                "propagate": False
            },
            "cbt.api": {
                "level": "INFO",
                "handlers": api_handlers,
                "propagate": False
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": api_handlers,
                "propagate": False
            },
            "fastapi": {
                "level": "INFO",
                "handlers": api_handlers,
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"]
        }
    }

    logging.config.dictConfig(logging_config)

    logger = logging.getLogger("cbt")
    logger.info("Logging system initialized")
    if settings.LOG_TO_FILE:
        logger.info(f"Log files will be stored in: {log_dir.absolute()}")


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that merges fixed context into every record's extras.
    """

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if self.extra:
            kwargs.setdefault('extra', {}).update(self.extra)
        return msg, kwargs


def get_exam_logger() -> LoggerAdapter:
    """
    Logger for the exam session state machine.
    """
    base_logger = logging.getLogger("cbt.services.exam_session")
    return LoggerAdapter(base_logger, {"service": "exam_session"})


def get_api_logger() -> LoggerAdapter:
    base_logger = logging.getLogger("cbt.api")
    return LoggerAdapter(base_logger, {"service": "api"})


def log_api_request(logger: logging.Logger, method: str, endpoint: str,
                    status_code: int = None, response_time_ms: int = None,
                    **kwargs):
    """
    Records one handled API request with structured context.

    Args:
        logger: Logger to write to
        method: HTTP method
        endpoint: Request path
        status_code: Response status
        response_time_ms: Latency in milliseconds
        **kwargs: Extra structured fields (request_id, exam_code, ...)
    """
    extra = {
        "method": method,
        "endpoint": endpoint,
    }

    if status_code:
        extra["status_code"] = status_code
    if response_time_ms is not None:
        extra["response_time_ms"] = response_time_ms

    extra.update(kwargs)

    if status_code and status_code >= 400:
        logger.error(f"API request failed: {method} {endpoint}", extra=extra)
    else:
        logger.info(f"API request: {method} {endpoint}", extra=extra)
