"""Deployment orchestration for the onboarding pipelines.

Each pipeline is a straight sequence: download templates, deploy the service
principal, wait for it to replicate, deploy the next template with the
previous outputs, and so on. Any failing step aborts the run; nothing is
rolled back because every template is idempotent on re-run. Only the final
registration callback is allowed to fail without failing the run.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog
from azure.core.credentials import TokenCredential
from azure.mgmt.resource import ResourceManagementClient

from azure_onboarding.config.models import (
    NotificationTarget,
    OnboardingSettings,
    TemplateKey,
)
from azure_onboarding.credential_provider import AccountContext
from azure_onboarding.deployment.arm_deployer import DeploymentOutputs, deploy_template
from azure_onboarding.deployment.replication import (
    PrincipalLookupFn,
    ReplicationResult,
    wait_for_principal_replication,
)
from azure_onboarding.exceptions import ConfigurationError
from azure_onboarding.notification import RegistrationPayload, send_registration
from azure_onboarding.permissions import PermissionManifest, load_manifest
from azure_onboarding.templates import ScratchDirectory, TemplateFetcher, load_template

logger = structlog.get_logger(__name__)

MANIFEST_LOCAL_NAME = "permissions-manifest.json"


@dataclass
class OnboardingResult:
    """What a pipeline run produced, for the summary and for callers."""

    pipeline: str
    resource_group: str
    account: AccountContext
    steps: List[str] = field(default_factory=list)
    outputs: Dict[TemplateKey, DeploymentOutputs] = field(default_factory=dict)
    replication: List[ReplicationResult] = field(default_factory=list)
    # None means no notification was configured
    notification_sent: Optional[bool] = None

    def output(self, key: TemplateKey, name: str) -> Any:
        deployment = self.outputs.get(key)
        return deployment.get(name) if deployment is not None else None

    @property
    def service_principal_id(self) -> Optional[str]:
        return self.output(TemplateKey.SERVICE_PRINCIPAL, "principalId")

    def summary_rows(self) -> List[tuple[str, str]]:
        rows = [
            ("Tenant", self.account.tenant_id),
            ("Subscription", self.account.subscription_id),
            ("Resource group", self.resource_group),
            ("Service principal", self.service_principal_id or "-"),
        ]
        if self.pipeline == "automation":
            rows += [
                ("Automation account", self.output(TemplateKey.AUTOMATION, "automationAccountId") or "-"),
                ("Managed identity", self.output(TemplateKey.AUTOMATION, "principalId") or "-"),
                ("Webhook endpoint", self.output(TemplateKey.AUTOMATION, "webhookUri") or "-"),
                ("Role assignments", str(self.output(TemplateKey.PERMISSIONS, "roleAssignmentCount") or 0)),
                ("Graph app roles", str(self.output(TemplateKey.PERMISSIONS, "appRoleAssignmentCount") or 0)),
            ]
        else:
            rows += [
                ("Workspace", self.output(TemplateKey.WORKSPACE, "workspaceName") or "-"),
                ("Customer ID", self.output(TemplateKey.WORKSPACE, "customerId") or "-"),
                ("Table", self.output(TemplateKey.WORKSPACE, "tableName") or "-"),
                ("DCR immutable ID", self.output(TemplateKey.WORKSPACE, "dcrImmutableId") or "-"),
                ("Ingestion endpoint", self.output(TemplateKey.WORKSPACE, "logsIngestionEndpoint") or "-"),
            ]
            notified = {None: "skipped", True: "sent", False: "failed"}[self.notification_sent]
            rows.append(("Registration", notified))

        pending = [r.principal_id for r in self.replication if not r.replicated]
        if pending:
            rows.append(("Unconfirmed principals", ", ".join(pending)))
        return rows


Deployer = Callable[..., DeploymentOutputs]
Notifier = Callable[[NotificationTarget, RegistrationPayload], bool]


class OnboardingOrchestrator:
    """
    Runs the onboarding pipelines against one subscription.

    Every pipeline method takes the resource group and names it needs as
    arguments; the orchestrator itself only holds collaborators.
    """

    def __init__(
        self,
        settings: OnboardingSettings,
        account: AccountContext,
        resource_client: ResourceManagementClient,
        fetcher: TemplateFetcher,
        lookup: PrincipalLookupFn,
        deployer: Deployer = deploy_template,
        notifier: Notifier = send_registration,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.account = account
        self.resource_client = resource_client
        self.fetcher = fetcher
        self.lookup = lookup
        self.deployer = deployer
        self.notifier = notifier
        self.sleep = sleep

    @classmethod
    def from_credential(
        cls,
        settings: OnboardingSettings,
        credential: TokenCredential,
        account: AccountContext,
    ) -> "OnboardingOrchestrator":
        """Wire the Azure SDK clients for a signed-in credential."""
        # Graph SDK import is deferred so tests and --help do not pay for it
        from azure_onboarding.directory import GraphDirectory

        if not settings.template_base_url:
            raise ConfigurationError(
                "No template base URL configured",
                setting="template_base_url",
                recovery_suggestion="Pass --template-base-url or set AZO_TEMPLATE_BASE_URL",
            )
        return cls(
            settings=settings,
            account=account,
            resource_client=ResourceManagementClient(credential, account.subscription_id),
            fetcher=TemplateFetcher(settings.template_base_url),
            lookup=GraphDirectory(credential).find_service_principal,
        )

    def run_automation_onboarding(
        self,
        resource_group: str,
        automation_account_name: Optional[str] = None,
        service_principal_name: Optional[str] = None,
    ) -> OnboardingResult:
        """
        Service principal -> automation account with managed identity -> permissions.

        Raises:
            OnboardingError: On any failed download or deployment
        """
        result = OnboardingResult(
            pipeline="automation", resource_group=resource_group, account=self.account
        )
        keys = [TemplateKey.SERVICE_PRINCIPAL, TemplateKey.AUTOMATION, TemplateKey.PERMISSIONS]

        with ScratchDirectory() as scratch:
            paths = self._download(keys, scratch)
            manifest = self._download_manifest(scratch)
            result.steps.append("download")

            sp_id = self._deploy_service_principal(
                result, paths, resource_group, service_principal_name
            )

            automation = self._deploy(
                TemplateKey.AUTOMATION,
                paths,
                resource_group,
                {
                    "automationAccountName": automation_account_name,
                    "servicePrincipalId": sp_id,
                    "location": self.settings.location,
                },
            )
            result.outputs[TemplateKey.AUTOMATION] = automation
            result.steps.append(TemplateKey.AUTOMATION.value)
            automation.require("automationAccountId")
            identity_id = automation.require("principalId")

            result.replication.append(self._wait(identity_id))

            permissions = self._deploy(
                TemplateKey.PERMISSIONS,
                paths,
                resource_group,
                {
                    "principalId": identity_id,
                    "servicePrincipalId": sp_id,
                    **manifest.to_template_parameters(),
                },
            )
            result.outputs[TemplateKey.PERMISSIONS] = permissions
            result.steps.append(TemplateKey.PERMISSIONS.value)

        logger.info(
            "Automation onboarding complete",
            resource_group=resource_group,
            role_assignments=permissions.get("roleAssignmentCount"),
            app_role_assignments=permissions.get("appRoleAssignmentCount"),
        )
        return result

    def run_workspace_onboarding(
        self,
        resource_group: str,
        workspace_name: Optional[str] = None,
        service_principal_name: Optional[str] = None,
        notification: Optional[NotificationTarget] = None,
    ) -> OnboardingResult:
        """
        Service principal -> workspace, table and DCR -> optional registration.

        Raises:
            OnboardingError: On any failed download or deployment. A failed
                registration is only logged.
        """
        result = OnboardingResult(
            pipeline="workspace", resource_group=resource_group, account=self.account
        )
        keys = [TemplateKey.SERVICE_PRINCIPAL, TemplateKey.WORKSPACE]

        with ScratchDirectory() as scratch:
            paths = self._download(keys, scratch)
            result.steps.append("download")

            sp_id = self._deploy_service_principal(
                result, paths, resource_group, service_principal_name
            )

            workspace = self._deploy(
                TemplateKey.WORKSPACE,
                paths,
                resource_group,
                {
                    "workspaceName": workspace_name,
                    "servicePrincipalId": sp_id,
                    "location": self.settings.location,
                },
            )
            result.outputs[TemplateKey.WORKSPACE] = workspace
            result.steps.append(TemplateKey.WORKSPACE.value)

        if notification is not None:
            result.notification_sent = self._notify(notification, resource_group, workspace)
            result.steps.append("notification")
        else:
            logger.info("No registration API configured, skipping notification")

        logger.info(
            "Workspace onboarding complete",
            resource_group=resource_group,
            workspace=workspace.get("workspaceName"),
        )
        return result

    def _download(self, keys: Iterable[TemplateKey], scratch: Path) -> Dict[TemplateKey, Path]:
        return {key: self.fetcher.fetch(self.settings.template(key), scratch) for key in keys}

    def _download_manifest(self, scratch: Path) -> PermissionManifest:
        path = self.fetcher.download(
            self.settings.permission_manifest_path, scratch / MANIFEST_LOCAL_NAME
        )
        return load_manifest(path)

    def _deploy(
        self,
        key: TemplateKey,
        paths: Dict[TemplateKey, Path],
        resource_group: str,
        values: Dict[str, Any],
    ) -> DeploymentOutputs:
        spec = self.settings.template(key)
        try:
            parameters = spec.build_parameters(values)
        except ValueError as e:
            raise ConfigurationError(str(e), setting=f"templates.{key.value}") from e

        return self.deployer(
            self.resource_client,
            resource_group,
            self.settings.deployment_name(key),
            load_template(paths[key]),
            parameters,
        )

    def _deploy_service_principal(
        self,
        result: OnboardingResult,
        paths: Dict[TemplateKey, Path],
        resource_group: str,
        service_principal_name: Optional[str],
    ) -> str:
        outputs = self._deploy(
            TemplateKey.SERVICE_PRINCIPAL,
            paths,
            resource_group,
            {"servicePrincipalName": service_principal_name},
        )
        result.outputs[TemplateKey.SERVICE_PRINCIPAL] = outputs
        result.steps.append(TemplateKey.SERVICE_PRINCIPAL.value)
        sp_id = outputs.require("principalId")
        result.replication.append(self._wait(sp_id))
        return sp_id

    def _wait(self, principal_id: str) -> ReplicationResult:
        return wait_for_principal_replication(
            principal_id, self.lookup, policy=self.settings.retry, sleep=self.sleep
        )

    def _notify(
        self,
        target: NotificationTarget,
        resource_group: str,
        workspace: DeploymentOutputs,
    ) -> bool:
        try:
            payload = RegistrationPayload(
                tenant_id=self.account.tenant_id,
                subscription_id=self.account.subscription_id,
                resource_group_name=resource_group,
                workspace_name=workspace.require("workspaceName"),
                workspace_id=workspace.require("workspaceId"),
                customer_id=workspace.require("customerId"),
                table_name=workspace.require("tableName"),
                dcr_immutable_id=workspace.require("dcrImmutableId"),
                logs_ingestion_endpoint=workspace.require("logsIngestionEndpoint"),
            )
            sent = self.notifier(target, payload)
        except Exception as e:
            logger.warning("Registration step failed", error=str(e), exc_info=True)
            return False

        if not sent:
            logger.warning("Registration was not accepted; onboarding result is unaffected")
        return sent
