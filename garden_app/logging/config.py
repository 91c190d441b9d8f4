"""
Centralized logging configuration for the garden registry.

This module provides standardized logging configuration using structlog
for all components. Ownership changes and access-control decisions go
through the helpers below so the audit output has a consistent shape.
"""
import logging
import sys
from typing import Any, Optional, TextIO

import structlog
from structlog.types import FilteringBoundLogger


def _build_processors(
    format_json: bool,
    include_timestamp: bool,
    include_caller: bool,
    extra_processors: Optional[list]
) -> list:
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.MODULE,
                        structlog.processors.CallsiteParameter.FUNC_NAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))
    processors.extend(extra_processors or [])

    # Renderer must come last
    processors.append(
        structlog.processors.JSONRenderer() if format_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    return processors


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None,
    stream: Optional[TextIO] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON lines; otherwise human-readable
        include_timestamp: Include an ISO UTC timestamp in log output
        include_caller: Include module, function and line number
        extra_processors: Additional structlog processors, run before rendering
        stream: Where log lines go; defaults to stdout
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=stream or sys.stdout,
        format="%(message)s",
        force=True
    )

    structlog.configure(
        processors=_build_processors(format_json, include_timestamp,
                                     include_caller, extra_processors),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(logging_config: dict[str, Any]) -> None:
    """Apply the "logging" section of a merged garden configuration."""
    configure_logging(
        level=logging_config.get("level", "INFO"),
        format_json=logging_config.get("format_json", False),
        include_caller=logging_config.get("include_caller", False),
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_registry_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for plot ownership changes.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the registry subsystem
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="registry",
        audit_trail=True
    )


def get_access_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for manager and owner authorization decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the access control subsystem
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="access_control",
        audit_trail=True
    )


def log_access_decision(
    logger: FilteringBoundLogger,
    action: str,
    caller: str,
    granted: bool,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log an authorization decision with standardized format.

    Args:
        logger: Structlog logger instance
        action: Operation being authorized (e.g. "reset_plot")
        caller: Identity requesting the operation
        granted: Whether the caller was allowed through
        reason: Detailed reason for the decision
        context: Additional context data
    """
    bound_logger = logger.bind(
        action=action,
        caller=caller,
        access_result="GRANTED" if granted else "DENIED",
        reason=reason,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if granted:
        bound_logger.info("Access granted")
    else:
        bound_logger.warning("Access denied")


def log_plot_transition(
    logger: FilteringBoundLogger,
    plot: int,
    from_owner: str,
    to_owner: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a plot ownership transition with standardized format.

    Args:
        logger: Structlog logger instance
        plot: Plot identifier
        from_owner: Owner before the change (null address if unclaimed)
        to_owner: Owner after the change (null address if unclaimed)
        trigger: Operation that caused the change
        context: Additional context data
    """
    bound_logger = logger.bind(
        plot=plot,
        from_owner=from_owner,
        to_owner=to_owner,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Plot transition")
