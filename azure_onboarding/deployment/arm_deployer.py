"""ARM template deployment operations.

This module submits one ARM template to a resource group and returns its
outputs. Reconciliation is left to Azure Resource Manager: templates use
derived names and incremental mode, so a re-run updates in place.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional

import structlog
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.resource.resources.models import (
    Deployment,
    DeploymentMode,
    DeploymentProperties,
)

from azure_onboarding.exceptions import (
    AuthenticationError,
    DeploymentError,
    MissingOutputError,
    wrap_azure_exception,
)
from azure_onboarding.timeout_config import Timeouts, log_timeout_event

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeploymentOutputs(Mapping[str, Any]):
    """Flattened outputs of one deployment (``name -> value``)."""

    deployment_name: str
    values: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def require(self, name: str) -> Any:
        """Return output ``name``; raise if the template did not produce it."""
        value = self.values.get(name)
        if value is None or value == "":
            raise MissingOutputError(
                f"Deployment '{self.deployment_name}' has no output '{name}'",
                output_name=name,
                deployment_name=self.deployment_name,
            )
        return value


def to_arm_parameters(values: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Wrap plain values as ARM ``{"name": {"value": ...}}`` parameters.

    ``None`` values are dropped so the template's own default applies.
    """
    return {name: {"value": value} for name, value in values.items() if value is not None}


def flatten_outputs(raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Turn ARM ``{"x": {"type": "String", "value": v}}`` outputs into ``{"x": v}``."""
    if not raw:
        return {}
    flattened: Dict[str, Any] = {}
    for name, entry in raw.items():
        if isinstance(entry, Mapping) and "value" in entry:
            flattened[name] = entry["value"]
        else:
            flattened[name] = entry
    return flattened


def deploy_template(
    client: ResourceManagementClient,
    resource_group: str,
    deployment_name: str,
    template: Dict[str, Any],
    parameters: Optional[Mapping[str, Any]] = None,
    timeout: Optional[int] = None,
) -> DeploymentOutputs:
    """Deploy an ARM template to a resource group and wait for completion.

    Args:
        client: Resource management client bound to the target subscription
        resource_group: Target resource group name
        deployment_name: Deterministic deployment name
        template: Parsed ARM template
        parameters: Plain parameter values; ``None`` entries are omitted
        timeout: Seconds to wait for the long-running operation

    Returns:
        DeploymentOutputs with the template's outputs

    Raises:
        DeploymentError: If ARM rejects the deployment, it fails, or it does not
            finish within ``timeout``
        AuthenticationError: If the credential cannot obtain a token
    """
    timeout = timeout or Timeouts.DEPLOY
    arm_parameters = to_arm_parameters(parameters or {})

    logger.info(
        "Starting deployment",
        deployment=deployment_name,
        resource_group=resource_group,
        parameters=sorted(arm_parameters),
    )

    deployment = Deployment(
        properties=DeploymentProperties(
            template=template,
            parameters=arm_parameters,
            mode=DeploymentMode.INCREMENTAL,
        ),
    )

    try:
        poller = client.deployments.begin_create_or_update(
            resource_group, deployment_name, deployment
        )
        result = poller.result(timeout=timeout)
        if not poller.done():
            log_timeout_event("arm_deploy", timeout, deployment_name)
            raise DeploymentError(
                f"Deployment '{deployment_name}' did not finish within {timeout} seconds",
                deployment_name=deployment_name,
                resource_group=resource_group,
                error_code="DEPLOYMENT_TIMEOUT",
            )
    except ClientAuthenticationError as e:
        raise AuthenticationError(f"Azure authentication failed: {e}", cause=e) from e
    except AzureError as e:
        raise wrap_azure_exception(e, deployment_name, resource_group) from e

    properties = result.properties if result is not None else None
    state = getattr(properties, "provisioning_state", None)
    if state is not None and state != "Succeeded":
        raise DeploymentError(
            f"Deployment '{deployment_name}' ended in state {state}",
            deployment_name=deployment_name,
            resource_group=resource_group,
        )

    outputs = flatten_outputs(getattr(properties, "outputs", None))
    logger.info(
        "Deployment succeeded",
        deployment=deployment_name,
        outputs=sorted(outputs),
    )
    return DeploymentOutputs(deployment_name=deployment_name, values=outputs)


__all__ = ["DeploymentOutputs", "deploy_template", "flatten_outputs", "to_arm_parameters"]
