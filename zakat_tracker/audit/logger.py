"""
Audit Logger

DESIGN DECISION: Every significant action on the user's data is logged.
This provides:
1. Traceability of saves, backups, imports and restores
2. Debugging capability when storage misbehaves
3. Visibility into which fallback tier produced the live data

The audit logger:
- Is async so it fits the store's async operations
- Gracefully handles failures (never breaks the store if logging fails)
- Logs locally only; the user's data never leaves the machine
"""

from typing import Optional

import structlog

from zakat_tracker.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Emits every AuditEvent as a structured log line at the
    event's severity.
    """

    def __init__(self, logger_name: str = "zakat_tracker.audit"):
        self._logger = structlog.get_logger(logger_name)
        self._event_count = 0

    @property
    def event_count(self) -> int:
        """Number of events logged so far."""
        return self._event_count

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written. Never raises.
        """
        log_dict = event.to_log_dict()
        severity = event.severity.value

        try:
            if severity in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        self._event_count += 1
        return True

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        )
        await self.log(event)
