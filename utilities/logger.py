"""
Structured logging setup using structlog.
Provides JSON or console output and a cycle-scoped logger for monitor runs.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site parameters to every event
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


class CycleLogger:
    """
    Logger for monitor cycles with bound context.
    """

    def __init__(self, name: str = "monitor"):
        self.logger = structlog.get_logger(name)
        self.context = {}

    def bind_context(self, **kwargs) -> 'CycleLogger':
        """
        Bind context variables to the logger.

        Args:
            **kwargs: Context variables to bind

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def log_cycle_start(self, collections: int) -> None:
        """Log cycle start."""
        self.logger.info("Monitor cycle started", collections=collections, **self.context)

    def log_collection_read(
        self,
        collection: str,
        total_items: int,
        scraped: int,
        added: int,
        removed: int,
        new_items: int
    ) -> None:
        """Log one collection's observation and delta."""
        self.logger.info(
            "Collection observed",
            collection=collection,
            total_items=total_items,
            scraped=scraped,
            added=added,
            removed=removed,
            new_items=new_items,
            **self.context
        )

    def log_cycle_complete(self, duration_seconds: float, new_items: int, failures: int = 0) -> None:
        """Log cycle completion."""
        self.logger.info(
            "Monitor cycle completed",
            duration_seconds=round(duration_seconds, 2),
            new_items=new_items,
            failures=failures,
            **self.context
        )

    def log_error(self, error: str, url: Optional[str] = None, collection: Optional[str] = None) -> None:
        """Log error with context."""
        self.logger.error(
            "Monitor error occurred",
            error=error,
            url=url,
            collection=collection,
            **self.context
        )

    def log_retry(self, url: str, attempt: int, max_attempts: int, delay: float) -> None:
        """Log retry attempt."""
        self.logger.warning(
            "Retrying request",
            url=url,
            attempt=attempt,
            max_attempts=max_attempts,
            delay_seconds=delay,
            **self.context
        )
