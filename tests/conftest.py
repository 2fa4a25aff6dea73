from typing import Any, Dict

import pytest

from azure_onboarding.config.models import OnboardingSettings
from azure_onboarding.credential_provider import AccountContext

TEMPLATE_BASE_URL = "https://templates.example.com/onboarding"


@pytest.fixture
def settings() -> OnboardingSettings:
    """Settings pointing at a fake template host."""
    return OnboardingSettings(template_base_url=TEMPLATE_BASE_URL)


@pytest.fixture
def account() -> AccountContext:
    return AccountContext(
        tenant_id="11111111-1111-1111-1111-111111111111",
        subscription_id="22222222-2222-2222-2222-222222222222",
        subscription_name="Test Subscription",
    )


@pytest.fixture
def sample_arm_template() -> Dict[str, Any]:
    """Minimal ARM template."""
    return {
        "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#",
        "contentVersion": "1.0.0.0",
        "parameters": {},
        "resources": [],
        "outputs": {},
    }


@pytest.fixture
def sample_manifest() -> Dict[str, Any]:
    """Permission manifest granting Contributor and Directory.Read.All."""
    return {
        "roleAssignments": [
            {
                "roleDefinitionId": "b24988ac-6180-42a0-ab88-20f7382dd24c",
                "scope": "resourceGroup",
                "description": "Contributor",
            }
        ],
        "graphAppRoles": [
            {
                "resourceAppId": "00000003-0000-0000-c000-000000000000",
                "appRoleId": "7ab1d382-f21e-4acd-a863-ba3e13f7da61",
                "description": "Directory.Read.All",
            }
        ],
    }
