"""
Access Portal - Logging Infrastructure

This module provides structured logging with support for:
- JSON formatted logs for production
- Text formatted logs for development
- Context binding for request tracing
- Dedicated security and audit event loggers
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from portal.core.config import get_settings

# Context variables for request tracing
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_context: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def add_context_variables(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Add request_id and user_id from context variables to every log entry.
    """
    request_id = request_id_context.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)

    user_id = user_id_context.get()
    if user_id:
        event_dict.setdefault("user_id", user_id)

    return event_dict


def get_log_level(settings: Any) -> int:
    """Convert string log level to logging constant."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(settings.LOG_LEVEL.upper(), logging.INFO)


def get_processors(settings: Any) -> list[Processor]:
    """Get structlog processors based on settings."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_variables,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    This should be called once at application startup.
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=get_log_level(settings),
    )

    structlog.configure(
        processors=get_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("role_created", role="viewer")
    """
    return structlog.get_logger(name)


class SecurityLogger:
    """
    Logger for security-relevant events.

    Every authentication failure and authorization denial goes through here
    so the reason can be recorded exactly.
    """

    def __init__(self) -> None:
        self.log = get_logger("portal.security")

    def log_login_success(self, user_id: str, ip_address: str, user_agent: str = "unknown") -> None:
        self.log.info(
            "login_success",
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def log_login_failure(self, email: str, ip_address: str, reason: str) -> None:
        self.log.warning(
            "login_failure",
            email=email,
            ip_address=ip_address,
            reason=reason,
        )

    def log_account_locked(self, user_id: str, ip_address: str) -> None:
        self.log.warning("account_locked", user_id=user_id, ip_address=ip_address)

    def log_token_invalid(self, reason: str, ip_address: str = "unknown") -> None:
        self.log.warning("token_invalid", reason=reason, ip_address=ip_address)

    def log_token_refresh(self, user_id: str) -> None:
        self.log.info("token_refresh", user_id=user_id)

    def log_logout(self, user_id: str) -> None:
        self.log.info("logout", user_id=user_id)

    def log_session_expired(self, user_id: str) -> None:
        self.log.info("session_expired", user_id=user_id)

    def log_authorization_denied(
        self,
        user_id: Optional[str],
        action: str,
        reason: str,
        target: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.log.warning(
            "authorization_denied",
            user_id=user_id,
            action=action,
            reason=reason,
            target=target,
            **extra,
        )

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str) -> None:
        self.log.warning("rate_limit_exceeded", ip_address=ip_address, endpoint=endpoint)


class AuditLogger:
    """Logger for state-changing administrative actions."""

    def __init__(self) -> None:
        self.log = get_logger("portal.audit")

    def log_action(
        self,
        actor_id: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        **changes: Any,
    ) -> None:
        self.log.info(
            "audit_event",
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            **changes,
        )


security_logger = SecurityLogger()
audit_logger = AuditLogger()
