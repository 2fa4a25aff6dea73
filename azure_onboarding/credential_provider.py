"""
Credential Provider Module

Selects how the run authenticates to Azure and resolves the tenant and
subscription it operates in. Interactive device-code login and an ambient
Azure CLI / Cloud Shell session are both supported behind one strategy
switch, so there is a single orchestrator regardless of where it runs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import click
import structlog
from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity import AzureCliCredential, DefaultAzureCredential, DeviceCodeCredential
from azure.mgmt.subscription import SubscriptionClient

from azure_onboarding.exceptions import AuthenticationError

logger = structlog.get_logger(__name__)


class AuthStrategy(str, Enum):
    """
    How the run obtains Azure tokens.

    DEVICE_CODE: Interactive device-code login (works from any terminal)
    CLOUD_SHELL: Reuse the signed-in Azure CLI / Cloud Shell session
    DEFAULT: DefaultAzureCredential chain (environment, managed identity, CLI, ...)
    """

    DEVICE_CODE = "device-code"
    CLOUD_SHELL = "cloud-shell"
    DEFAULT = "default"


@dataclass(frozen=True)
class AccountContext:
    tenant_id: str
    subscription_id: str
    subscription_name: Optional[str] = None


def _echo_device_code(verification_uri: str, user_code: str, expires_on: Any) -> None:
    click.echo(
        f"To sign in, open {verification_uri} and enter the code {user_code}",
        err=True,
    )


def build_credential(
    strategy: AuthStrategy,
    tenant_id: Optional[str] = None,
    prompt_callback: Optional[Callable[[str, str, Any], None]] = None,
) -> TokenCredential:
    """
    Create the credential for ``strategy``.

    Args:
        strategy: Authentication strategy
        tenant_id: Optional tenant to sign in to
        prompt_callback: Device-code prompt handler; prints to stderr by default

    Returns:
        An azure-identity credential
    """
    logger.info("Using authentication strategy", strategy=strategy.value)

    if strategy == AuthStrategy.DEVICE_CODE:
        kwargs: dict[str, Any] = {"prompt_callback": prompt_callback or _echo_device_code}
        if tenant_id:
            kwargs["tenant_id"] = tenant_id
        return DeviceCodeCredential(**kwargs)

    if strategy == AuthStrategy.CLOUD_SHELL:
        return AzureCliCredential(tenant_id=tenant_id) if tenant_id else AzureCliCredential()

    if strategy == AuthStrategy.DEFAULT:
        return DefaultAzureCredential()

    raise ValueError(f"Unknown authentication strategy: {strategy}")


def _sole_tenant(client: SubscriptionClient) -> str:
    try:
        tenants = [t.tenant_id for t in client.tenants.list() if t.tenant_id]
    except AzureError as e:
        raise AuthenticationError(f"Could not list tenants: {e}", cause=e) from e

    if len(tenants) != 1:
        raise AuthenticationError(
            f"Signed-in identity can see {len(tenants)} tenants; cannot pick one",
            recovery_suggestion="Pass --tenant-id or set AZURE_TENANT_ID",
        )
    return tenants[0]


def resolve_account_context(
    credential: TokenCredential,
    subscription_id: Optional[str] = None,
    client: Optional[SubscriptionClient] = None,
    tenant_id: Optional[str] = None,
) -> AccountContext:
    """
    Resolve the subscription and tenant the run deploys into.

    An explicit ``subscription_id`` is looked up directly; otherwise the first
    enabled subscription visible to the credential is used. The tenant is
    ``tenant_id`` when given, otherwise the only tenant the credential can see.

    Raises:
        AuthenticationError: If the credential fails or no subscription is usable
    """
    client = client or SubscriptionClient(credential)

    try:
        if subscription_id:
            subscription = client.subscriptions.get(subscription_id)
        else:
            subscription = next(
                (
                    s
                    for s in client.subscriptions.list()
                    if getattr(s, "state", None) == "Enabled"
                ),
                None,
            )
    except ClientAuthenticationError as e:
        raise AuthenticationError(f"Azure sign-in failed: {e}", cause=e) from e
    except AzureError as e:
        raise AuthenticationError(
            f"Could not read subscription details: {e}",
            context={"subscription_id": subscription_id} if subscription_id else None,
            cause=e,
        ) from e

    if subscription is None:
        raise AuthenticationError(
            "No enabled subscription is visible to the signed-in identity",
            recovery_suggestion="Pass --subscription-id or set AZURE_SUBSCRIPTION_ID",
        )

    # azure-mgmt-subscription's Subscription model carries no tenant ID
    tenant_id = tenant_id or getattr(subscription, "tenant_id", None) or _sole_tenant(client)

    context = AccountContext(
        tenant_id=tenant_id,
        subscription_id=subscription.subscription_id,
        subscription_name=getattr(subscription, "display_name", None),
    )
    logger.info(
        "Resolved Azure account",
        tenant_id=context.tenant_id,
        subscription_id=context.subscription_id,
        subscription_name=context.subscription_name,
    )
    return context
