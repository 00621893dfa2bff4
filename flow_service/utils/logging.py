"""
Structured logging for the flow compiler.

Features:
- JSON formatted log entries routed through loguru sinks
- Correlation ID tracking per HTTP request or editor session
- Flow ID tagging for compile/validate operations
- Duration logging for traced operations
"""
import json
import os
import socket
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

from loguru import logger as loguru_logger
from flow_service.config import settings

# Context variables for correlation tracking
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
flow_id_var: ContextVar[Optional[str]] = ContextVar('flow_id', default=None)


class StructuredLogger:
    """
    Structured logger with correlation tracking.

    Every entry is a JSON object with:
    - Timestamp (ISO 8601)
    - Correlation, session and flow IDs
    - Service metadata
    - Event name (dot notation) and optional data payload
    """

    def __init__(self, name: str):
        self.name = name
        self.hostname = socket.gethostname()
        self.service_name = settings.app_name
        self.service_version = settings.app_version
        self.environment = settings.environment
        self.instance_id = os.getenv("INSTANCE_ID", self.hostname)

    def _get_base_context(self) -> Dict[str, Any]:
        """Get base logging context"""
        return {
            "@timestamp": datetime.now(timezone.utc).isoformat(),
            "service": {
                "name": self.service_name,
                "version": self.service_version,
                "environment": self.environment,
                "instance_id": self.instance_id,
            },
            "logger": {
                "name": self.name
            },
            "correlation": {
                "correlation_id": correlation_id_var.get(),
                "session_id": session_id_var.get(),
                "flow_id": flow_id_var.get(),
            }
        }

    def _format_log(
        self,
        level: str,
        event: str,
        message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> Dict[str, Any]:
        """Format log entry as a JSON-ready dict"""

        log_entry = self._get_base_context()

        log_entry.update({
            "level": level.upper(),
            "event": event,
            "message": message or event
        })

        if extra:
            log_entry["data"] = extra

        if exc_info:
            log_entry["error"] = {
                "type": type(exc_info).__name__,
                "message": str(exc_info),
                "stacktrace": "".join(
                    traceback.format_exception(type(exc_info), exc_info, exc_info.__traceback__)
                ),
            }

        return log_entry

    def _emit(
        self,
        level: str,
        event: str,
        message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        log_entry = self._format_log(level, event, message, extra, exc_info)
        loguru_logger.bind(event=event).opt(depth=2).log(
            level.upper(), json.dumps(log_entry, default=str)
        )

    def debug(self, event: str, message: str = None, extra: Dict = None, **kwargs):
        """Log debug message"""
        self._emit("DEBUG", event, message, extra)

    def info(self, event: str, message: str = None, extra: Dict = None, **kwargs):
        """Log info message"""
        self._emit("INFO", event, message, extra)

    def warning(self, event: str, message: str = None, extra: Dict = None, **kwargs):
        """Log warning message"""
        self._emit("WARNING", event, message, extra)

    def error(
        self,
        event: str,
        message: str = None,
        extra: Dict = None,
        exc_info: BaseException = None,
        **kwargs
    ):
        """Log error message"""
        self._emit("ERROR", event, message, extra, exc_info)

    def performance(
        self,
        event: str,
        duration_ms: float,
        extra: Dict = None
    ):
        """Log performance metric"""
        perf_data = {
            "performance": {
                "duration_ms": duration_ms,
                "duration_seconds": duration_ms / 1000
            }
        }

        if extra:
            perf_data.update(extra)

        self._emit("INFO", event, f"Performance: {duration_ms}ms", perf_data)


def get_logger(name: str) -> StructuredLogger:
    """
    Get structured logger for module.

    Usage:
        logger = get_logger(__name__)
        logger.info("flow.serialize.completed", extra={"screens": 3})
    """
    return StructuredLogger(name)


class log_context:
    """
    Context manager for correlation tracking.

    Usage:
        with log_context(correlation_id="abc", flow_id="lead_form"):
            logger.info("flow.validate.started")
    """

    def __init__(
        self,
        correlation_id: str = None,
        session_id: str = None,
        flow_id: str = None,
        **kwargs
    ):
        self.correlation_id = correlation_id
        self.session_id = session_id
        self.flow_id = flow_id
        self.extra_context = kwargs

        self.prev_correlation = None
        self.prev_session = None
        self.prev_flow = None

    def __enter__(self):
        """Set context variables"""
        self.prev_correlation = correlation_id_var.get()
        self.prev_session = session_id_var.get()
        self.prev_flow = flow_id_var.get()

        if self.correlation_id:
            correlation_id_var.set(self.correlation_id)
        if self.session_id:
            session_id_var.set(self.session_id)
        if self.flow_id:
            flow_id_var.set(self.flow_id)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Restore previous context"""
        correlation_id_var.set(self.prev_correlation)
        session_id_var.set(self.prev_session)
        flow_id_var.set(self.prev_flow)


def trace_sync(event_prefix: str):
    """
    Decorator for tracing sync functions.

    Usage:
        @trace_sync("flow.serialize")
        def serialize(self, flow):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)

            start_time = datetime.now(timezone.utc)

            logger.debug(
                f"{event_prefix}.started",
                extra={"function": func.__name__}
            )

            try:
                result = func(*args, **kwargs)

                duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

                logger.performance(
                    f"{event_prefix}.completed",
                    duration_ms=duration_ms,
                    extra={
                        "function": func.__name__,
                        "success": True
                    }
                )

                return result

            except Exception as e:
                duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

                logger.error(
                    f"{event_prefix}.failed",
                    extra={
                        "function": func.__name__,
                        "duration_ms": duration_ms,
                        "error_type": type(e).__name__
                    },
                    exc_info=e
                )
                raise

        return wrapper
    return decorator


"""
LOG EVENT NAMING CONVENTIONS:

Use dot notation: <domain>.<action>.<result>

Examples:
- http.request.received
- http.request.completed
- flow.serialize.completed
- flow.deserialize.failed
- flow.deserialize.unknown_properties
- flow.validate.completed
- flow.screen.removed
- factory.component.created
- request.update.rejected
"""
