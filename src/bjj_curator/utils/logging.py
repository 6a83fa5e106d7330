"""Structured logging for the API host and curation worker processes.

Both sides configure structlog over stdlib logging with ``setup_logging``.
Run correlation uses structlog's contextvars: ``bind_run_context`` tags every
event in the current context (a worker process, or the host task that
supervises it) with the run id, the process role and its pid, so one run's
log lines can be followed across the process boundary.
"""

import logging
import os
import sys

import structlog

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "google_genai",
    "google_genai.models",
    "googleapiclient.discovery",
    "googleapiclient.discovery_cache",
    "urllib3.connectionpool",
    "aiosqlite",
)


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Render JSON lines instead of the colored console format
    """
    shared = _shared_processors()
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper()))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_run_context(run_id: str, role: str = "worker") -> None:
    """Tag subsequent events in this context with the run they belong to.

    Args:
        run_id: Curation run id
        role: "worker" inside the child process, "host" in the supervising task
    """
    structlog.contextvars.bind_contextvars(run_id=run_id, role=role, pid=os.getpid())
