"""
Centralized timeout configuration for all external operations.

This module provides consistent timeout values for template downloads,
registration callbacks and ARM deployments, which could otherwise hang
indefinitely.

Usage:
    from azure_onboarding.timeout_config import Timeouts

    requests.get(url, timeout=Timeouts.http())
    poller.result(timeout=Timeouts.DEPLOY)

Environment Variables:
    All timeout values can be overridden via environment variables:
    - AZO_TIMEOUT_HTTP_CONNECT: HTTP connection setup (default: 10s)
    - AZO_TIMEOUT_HTTP_READ: HTTP response read (default: 30s)
    - AZO_TIMEOUT_TEMPLATE_DOWNLOAD: Template fetch read timeout (default: 60s)
    - AZO_TIMEOUT_NOTIFICATION: Registration POST read timeout (default: 30s)
    - AZO_TIMEOUT_DEPLOY: Long-running ARM deployments (default: 1800s)
"""

import logging
import os
from typing import Final, Tuple

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Centralized timeout constants for all external operations.

    All values are in seconds and configurable via environment variables.
    """

    HTTP_CONNECT: Final[int] = _get_timeout("AZO_TIMEOUT_HTTP_CONNECT", 10)
    HTTP_READ: Final[int] = _get_timeout("AZO_TIMEOUT_HTTP_READ", 30)

    TEMPLATE_DOWNLOAD: Final[int] = _get_timeout("AZO_TIMEOUT_TEMPLATE_DOWNLOAD", 60)
    NOTIFICATION: Final[int] = _get_timeout("AZO_TIMEOUT_NOTIFICATION", HTTP_READ)

    # Automation accounts and DCRs routinely take several minutes
    DEPLOY: Final[int] = _get_timeout("AZO_TIMEOUT_DEPLOY", 1800)

    @classmethod
    def http(cls, read: int | None = None) -> Tuple[int, int]:
        """Return a ``(connect, read)`` tuple suitable for ``requests``."""
        return (cls.HTTP_CONNECT, read if read is not None else cls.HTTP_READ)


def log_timeout_event(
    operation: str,
    timeout_value: int,
    target: str | None = None,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        target: Optional URL or deployment name the operation was acting on
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    target_str = ""
    if target:
        if len(target) > 100:
            target = target[:97] + "..."
        target_str = f" - target: '{target}'"

    log_func(
        f"Operation '{operation}' timed out after {timeout_value} seconds{target_str}"
    )
