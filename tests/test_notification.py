"""Tests for the registration callback."""

from unittest.mock import MagicMock

import pytest
import requests

from azure_onboarding.config.models import NotificationTarget
from azure_onboarding.notification import RegistrationPayload, send_registration

URL = "https://registration.example.com/api/tenants"


@pytest.fixture
def target():
    return NotificationTarget(url=URL, token="secret-token")


@pytest.fixture
def payload():
    return RegistrationPayload(
        tenant_id="11111111-1111-1111-1111-111111111111",
        subscription_id="22222222-2222-2222-2222-222222222222",
        resource_group_name="rg-test",
        workspace_name="law-rg-test",
        workspace_id="/subscriptions/sub/resourceGroups/rg-test/providers/Microsoft.OperationalInsights/workspaces/law-rg-test",
        customer_id="55555555-5555-5555-5555-555555555555",
        table_name="OnboardingEvents_CL",
        dcr_immutable_id="dcr-0123456789abcdef",
        logs_ingestion_endpoint="https://dce-test.westeurope-1.ingest.monitor.azure.com",
    )


def _session(status=200, ok=True):
    session = MagicMock()
    session.post.return_value.status_code = status
    session.post.return_value.ok = ok
    session.post.return_value.text = ""
    return session


class TestRegistrationPayload:
    def test_camel_case_keys(self, payload):
        body = payload.to_json()

        assert set(body) == {
            "tenantId",
            "subscriptionId",
            "resourceGroupName",
            "workspaceName",
            "workspaceId",
            "customerId",
            "tableName",
            "dcrImmutableId",
            "logsIngestionEndpoint",
        }
        assert body["tableName"] == "OnboardingEvents_CL"


class TestSendRegistration:
    def test_posts_json_with_bearer_token(self, target, payload):
        session = _session()

        assert send_registration(target, payload, session=session) is True

        args, kwargs = session.post.call_args
        assert args == (URL,)
        assert kwargs["json"] == payload.to_json()
        assert kwargs["headers"]["Authorization"] == "Bearer secret-token"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert isinstance(kwargs["timeout"], tuple)

    def test_non_2xx_returns_false(self, target, payload):
        session = _session(status=401, ok=False)

        assert send_registration(target, payload, session=session) is False

    def test_network_error_returns_false(self, target, payload):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")

        assert send_registration(target, payload, session=session) is False

    def test_timeout_returns_false(self, target, payload):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("read timed out")

        assert send_registration(target, payload, session=session) is False

    def test_token_not_in_repr(self, target):
        assert "secret-token" not in repr(target)
