"""Registration callback sent after the workspace has been provisioned.

The callback is fire-and-forget: a failure is logged and reported through
the return value, never raised, and it is not retried.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import requests
import structlog

from azure_onboarding.config.models import NotificationTarget
from azure_onboarding.timeout_config import Timeouts, log_timeout_event

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegistrationPayload:
    tenant_id: str
    subscription_id: str
    resource_group_name: str
    workspace_name: str
    workspace_id: str
    customer_id: str
    table_name: str
    dcr_immutable_id: str
    logs_ingestion_endpoint: str

    def to_json(self) -> Dict[str, Any]:
        """camelCase body expected by the registration API."""
        return {_camel(key): value for key, value in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def send_registration(
    target: NotificationTarget,
    payload: RegistrationPayload,
    session: Optional[requests.Session] = None,
) -> bool:
    """POST ``payload`` to the registration API.

    Returns:
        True on a 2xx response, False on any HTTP or network failure
    """
    http = session or requests
    headers = {
        "Authorization": f"Bearer {target.token.get_secret_value()}",
        "Content-Type": "application/json",
    }

    logger.info("Sending registration", url=target.url, workspace=payload.workspace_name)
    try:
        response = http.post(
            target.url,
            json=payload.to_json(),
            headers=headers,
            timeout=Timeouts.http(Timeouts.NOTIFICATION),
        )
    except requests.Timeout:
        log_timeout_event("registration_post", Timeouts.NOTIFICATION, target.url)
        return False
    except requests.RequestException as e:
        logger.warning("Registration request failed", url=target.url, error=str(e))
        return False

    if not response.ok:
        logger.warning(
            "Registration API rejected the request",
            url=target.url,
            status=response.status_code,
            body=response.text[:500],
        )
        return False

    logger.info("Registration accepted", status=response.status_code)
    return True
