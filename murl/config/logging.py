"""
Logging configuration for the redirect service.

This module provides centralized logging configuration with support for
structured logging, different log levels, and text or JSON output.
"""

import logging
import logging.config
import sys
from typing import Dict, Any, Optional


def get_logging_config(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    enable_access_log: bool = True
) -> Dict[str, Any]:
    """
    Get logging configuration dictionary.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'text')
        log_file: Optional log file path
        enable_access_log: Whether to enable HTTP access logging

    Returns:
        Logging configuration dictionary
    """
    log_level = log_level.upper()

    formatters = {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S"
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S"
        },
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(module)s %(lineno)d %(message)s"
        }
    }

    formatter_name = "json" if log_format == "json" else "detailed"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter_name,
            "stream": sys.stdout
        }
    }

    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": formatter_name,
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf8"
        }

    handler_names = list(handlers.keys())
    loggers = {
        "": {  # Root logger
            "level": log_level,
            "handlers": handler_names,
            "propagate": False
        },
        "uvicorn": {
            "level": log_level,
            "handlers": handler_names,
            "propagate": False
        },
        "uvicorn.error": {
            "level": log_level,
            "handlers": handler_names,
            "propagate": False
        },
        "murl": {
            "level": log_level,
            "handlers": handler_names,
            "propagate": False
        },
        "murl.access": {
            "level": "INFO" if enable_access_log else "WARNING",
            "handlers": handler_names,
            "propagate": False
        }
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": loggers
    }


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    enable_access_log: bool = True
) -> None:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'text')
        log_file: Optional log file path
        enable_access_log: Whether to log every HTTP request
    """
    config = get_logging_config(
        log_level=log_level,
        log_format=log_format,
        log_file=log_file,
        enable_access_log=enable_access_log
    )

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class StructuredLogger:
    """
    Structured logger for consistent log message formatting.

    Field names passed through ``extra`` are shared by the text and JSON
    formatters, so they must not collide with ``LogRecord`` attributes.
    """

    def __init__(self, name: str):
        self.logger = get_logger(name)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        response_time: float,
        client_ip: Optional[str] = None,
        **kwargs
    ):
        """Log HTTP request information.

        Args:
            method: HTTP method
            path: Request path
            status_code: Response status code
            response_time: Response time in milliseconds
            client_ip: Client IP address
            **kwargs: Additional fields to log
        """
        log_data = {
            "event": "http_request",
            "method": method,
            "path": path,
            "status_code": status_code,
            "response_time_ms": response_time,
        }

        if client_ip:
            log_data["client_ip"] = client_ip

        log_data.update(kwargs)

        if status_code >= 500:
            self.logger.error("HTTP request", extra=log_data)
        elif status_code >= 400:
            self.logger.warning("HTTP request", extra=log_data)
        else:
            self.logger.info("HTTP request", extra=log_data)

    def log_route_compiled(self, route_index: int, paths: list, checks: int, tests: int):
        """Log a successfully compiled route."""
        self.logger.debug(
            "Route compiled",
            extra={
                "event": "route_compiled",
                "route_index": route_index,
                "route_paths": paths,
                "checks_count": checks,
                "tests_count": tests
            }
        )

    def log_evaluation(
        self,
        route_path: str,
        status_code: int,
        category: Optional[str] = None,
        error: Optional[str] = None
    ):
        """Log the outcome of evaluating a route for one request.

        Args:
            route_path: Path pattern of the matched route
            status_code: Response status code
            category: Failure category for 400 responses
            error: Failure message for 400 responses
        """
        log_data = {
            "event": "route_evaluation",
            "route_path": route_path,
            "status_code": status_code,
        }

        if category:
            log_data["failure_category"] = category
        if error:
            log_data["error"] = error

        if status_code >= 400:
            self.logger.warning("Route evaluation failed", extra=log_data)
        else:
            self.logger.debug("Route evaluation succeeded", extra=log_data)

    def log_self_test(
        self,
        route_index: int,
        test_index: int,
        passed: bool,
        error: Optional[str] = None
    ):
        """Log the result of a single route self-test."""
        log_data = {
            "event": "route_self_test",
            "route_index": route_index,
            "test_index": test_index,
            "passed": passed,
        }

        if error:
            log_data["error"] = error

        if passed:
            self.logger.debug("Route self-test passed", extra=log_data)
        else:
            self.logger.error("Route self-test failed", extra=log_data)

    def info(self, message: str, **kwargs):
        """Log info message with structured data."""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with structured data."""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with structured data."""
        self.logger.error(message, extra=kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message with structured data."""
        self.logger.debug(message, extra=kwargs)


# Global structured logger instance for the application
app_logger = StructuredLogger("murl")
