"""
Structured logging for the orders service
"""
import logging
import sys
import structlog


# Third-party loggers that are only interesting when something breaks
_QUIET_LOGGERS = ("grpc", "sqlalchemy", "werkzeug")


def configure_logging(service_name: str, log_level: str = "INFO", log_format: str = "json") -> structlog.BoundLogger:
    """
    Route structlog through stdlib logging on stdout
    
    Args:
        service_name: Bound on every record as `service`
        log_level: DEBUG, INFO, WARNING or ERROR
        log_format: "json" for machine-readable lines, "console" for local runs
    
    Returns:
        Service logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()
    
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    
    return structlog.get_logger().bind(service=service_name)


def bind_request_context(logger: structlog.BoundLogger, **context) -> structlog.BoundLogger:
    """Attach per-request identifiers (order id, method) to a logger"""
    return logger.bind(**context)
