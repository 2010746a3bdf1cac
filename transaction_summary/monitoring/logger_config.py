"""
Structured logging for the summary pipeline.

Events logged while a file is being summarized carry its ``file_identifier``
and the current ``stage``, whether they come from structlog or from a stdlib
``logging`` logger in the ingestion and reporting modules.
"""

import os
import time
import logging
import logging.handlers

import structlog

logger = structlog.get_logger(__name__)

# Applied to structlog events and to records from stdlib loggers alike
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def setup_logging(log_level: str = None, log_format: str = None, log_file: str = None) -> None:
    """Route structlog and stdlib logging through one renderer.

    Defaults come from LOG_LEVEL, LOG_FORMAT (``json`` or ``console``) and LOG_FILE.
    """
    log_level = (log_level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_format = log_format or os.getenv('LOG_FORMAT', 'json')
    log_file = log_file or os.getenv('LOG_FILE')

    if log_format.lower() == 'json':
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level] + SHARED_PROCESSORS + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    logger.info("logging_initialized", log_level=log_level, log_format=log_format, log_file=log_file or "console")


class PipelineStage:
    """Context manager timing one stage of summarizing a file.

    The file identifier and stage name are bound for every event logged
    inside the block. Exceptions are logged and re-raised.
    """

    def __init__(self, stage: str, file_identifier: str = None, **context):
        self.stage = stage
        self.file_identifier = file_identifier
        self.context = context
        self._bound = None
        self._started = None

    def __enter__(self):
        bindings = {'stage': self.stage}
        if self.file_identifier:
            bindings['file_identifier'] = self.file_identifier

        self._bound = structlog.contextvars.bound_contextvars(**bindings)
        self._bound.__enter__()
        self._started = time.monotonic()

        logger.info("stage_started", **self.context)
        return logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = int((time.monotonic() - self._started) * 1000)

        try:
            if exc_type is None:
                logger.info("stage_completed", duration_ms=duration_ms, **self.context)
            else:
                logger.error(
                    "stage_failed",
                    duration_ms=duration_ms,
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                    **self.context
                )
        finally:
            self._bound.__exit__(None, None, None)

        return False
