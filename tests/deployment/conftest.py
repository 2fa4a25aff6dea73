"""Shared fixtures for pipeline and deployer tests."""

from unittest.mock import MagicMock

import pytest

from azure_onboarding.deployment.replication import PrincipalLookup
from tests.deployment.fakes import (
    IDENTITY_PRINCIPAL_ID,
    SP_PRINCIPAL_ID,
    WORKSPACE_OUTPUTS,
    FakeDeployer,
    FakeFetcher,
)


@pytest.fixture
def fake_fetcher(sample_arm_template, sample_manifest):
    return FakeFetcher(sample_arm_template, sample_manifest)


@pytest.fixture
def fake_deployer():
    return FakeDeployer(
        {
            "azo-service-principal": {"principalId": SP_PRINCIPAL_ID, "appId": "app-id"},
            "azo-automation": {
                "automationAccountId": "/subscriptions/sub/resourceGroups/rg-test/providers/Microsoft.Automation/automationAccounts/aa-rg-test",
                "principalId": IDENTITY_PRINCIPAL_ID,
                "webhookUri": "https://example.webhook.azure-automation.net/webhooks?token=redacted",
            },
            "azo-permissions": {"roleAssignmentCount": 1, "appRoleAssignmentCount": 1},
            "azo-workspace": dict(WORKSPACE_OUTPUTS),
        }
    )


@pytest.fixture
def always_found():
    """Directory lookup that sees every principal immediately."""
    return MagicMock(side_effect=lambda pid: PrincipalLookup.present(pid, "principal"))


@pytest.fixture
def no_sleep():
    return MagicMock()
