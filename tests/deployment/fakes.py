"""Test doubles for template fetching and deployment."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from azure_onboarding.config.models import TemplateSpec
from azure_onboarding.deployment.arm_deployer import DeploymentOutputs
from azure_onboarding.exceptions import TemplateDownloadError

SP_PRINCIPAL_ID = "33333333-3333-3333-3333-333333333333"
IDENTITY_PRINCIPAL_ID = "44444444-4444-4444-4444-444444444444"

WORKSPACE_OUTPUTS = {
    "workspaceName": "law-rg-test",
    "workspaceId": "/subscriptions/sub/resourceGroups/rg-test/providers/Microsoft.OperationalInsights/workspaces/law-rg-test",
    "customerId": "55555555-5555-5555-5555-555555555555",
    "tableName": "OnboardingEvents_CL",
    "dcrImmutableId": "dcr-0123456789abcdef0123456789abcdef",
    "logsIngestionEndpoint": "https://dce-rg-test.eastus-1.ingest.monitor.azure.com",
}


class FakeFetcher:
    """Writes canned files instead of downloading them."""

    def __init__(self, template: Dict[str, Any], manifest: Dict[str, Any]):
        self.template = template
        self.manifest = manifest
        self.fetched: List[str] = []
        self.scratch_dirs: List[Path] = []
        self.fail_on: Optional[str] = None

    def fetch(self, spec: TemplateSpec, scratch: Path) -> Path:
        self.scratch_dirs.append(scratch)
        if self.fail_on == spec.key.value:
            raise TemplateDownloadError(f"HTTP 404 for {spec.remote_path}")
        self.fetched.append(spec.key.value)
        path = scratch / spec.local_name
        path.write_text(json.dumps(self.template))
        return path

    def download(self, remote_path: str, destination: Path) -> Path:
        self.scratch_dirs.append(destination.parent)
        self.fetched.append(remote_path)
        destination.write_text(json.dumps(self.manifest))
        return destination


class FakeDeployer:
    """Records deployments and returns canned outputs per deployment name."""

    def __init__(self, outputs: Dict[str, Dict[str, Any]]):
        self.outputs = outputs
        self.calls: List[Dict[str, Any]] = []
        self.fail_on: Optional[str] = None
        self.error: Exception = RuntimeError("deployment failed")

    def __call__(self, client, resource_group, deployment_name, template, parameters):
        self.calls.append(
            {
                "resource_group": resource_group,
                "deployment_name": deployment_name,
                "parameters": dict(parameters),
            }
        )
        if self.fail_on == deployment_name:
            raise self.error
        return DeploymentOutputs(
            deployment_name=deployment_name,
            values=dict(self.outputs.get(deployment_name, {})),
        )

    @property
    def deployment_names(self) -> List[str]:
        return [call["deployment_name"] for call in self.calls]

