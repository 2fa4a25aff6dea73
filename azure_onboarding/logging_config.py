import logging
import sys

import structlog

_NOISY_LOGGERS = [
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.core.pipeline",
    "azure.identity",
    "azure.mgmt",
    "msgraph",
    "kiota_http",
    "httpx",
    "httpcore",
    "urllib3",
    "urllib3.connectionpool",
]


def _set_azure_http_log_level(log_level: str) -> None:
    """HTTP chatter from the SDKs only appears at DEBUG."""
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(target_level)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    level = level.upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
        force=True,
    )
    _set_azure_http_log_level(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
