"""Tests for ARM template deployment."""

from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import ClientAuthenticationError, HttpResponseError
from azure.mgmt.resource.resources.models import DeploymentMode

from azure_onboarding.deployment.arm_deployer import (
    DeploymentOutputs,
    deploy_template,
    flatten_outputs,
    to_arm_parameters,
)
from azure_onboarding.exceptions import (
    AuthenticationError,
    DeploymentError,
    MissingOutputError,
)


def _client(state="Succeeded", outputs=None, done=True):
    """Resource client whose deployment poller finishes with ``state``."""
    client = MagicMock()
    poller = MagicMock()
    poller.done.return_value = done
    poller.result.return_value.properties.provisioning_state = state
    poller.result.return_value.properties.outputs = outputs
    client.deployments.begin_create_or_update.return_value = poller
    return client


class TestToArmParameters:
    def test_wraps_values_and_drops_none(self):
        params = to_arm_parameters({"workspaceName": "law-a", "location": None, "count": 0})

        assert params == {"workspaceName": {"value": "law-a"}, "count": {"value": 0}}


class TestFlattenOutputs:
    def test_unwraps_value_entries(self):
        raw = {
            "principalId": {"type": "String", "value": "abc"},
            "count": {"type": "Int", "value": 2},
        }

        assert flatten_outputs(raw) == {"principalId": "abc", "count": 2}

    def test_empty(self):
        assert flatten_outputs(None) == {}
        assert flatten_outputs({}) == {}


class TestDeploymentOutputs:
    def test_mapping_behaviour(self):
        outputs = DeploymentOutputs("azo-workspace", {"workspaceId": "/ws"})

        assert outputs["workspaceId"] == "/ws"
        assert dict(outputs) == {"workspaceId": "/ws"}
        assert len(outputs) == 1

    @pytest.mark.parametrize("values", [{}, {"principalId": None}, {"principalId": ""}])
    def test_require_missing(self, values):
        outputs = DeploymentOutputs("azo-service-principal", values)

        with pytest.raises(MissingOutputError) as exc_info:
            outputs.require("principalId")

        assert exc_info.value.context["output_name"] == "principalId"
        assert exc_info.value.context["deployment_name"] == "azo-service-principal"


class TestDeployTemplate:
    def test_success_returns_flattened_outputs(self, sample_arm_template):
        client = _client(outputs={"principalId": {"type": "String", "value": "sp-1"}})

        outputs = deploy_template(
            client,
            "rg-test",
            "azo-service-principal",
            sample_arm_template,
            {"servicePrincipalName": "sp-rg-test", "unused": None},
            timeout=5,
        )

        assert outputs.deployment_name == "azo-service-principal"
        assert outputs.require("principalId") == "sp-1"
        args = client.deployments.begin_create_or_update.call_args.args
        assert args[0] == "rg-test"
        assert args[1] == "azo-service-principal"
        properties = args[2].properties
        assert properties.template == sample_arm_template
        assert properties.parameters == {"servicePrincipalName": {"value": "sp-rg-test"}}
        assert properties.mode == DeploymentMode.INCREMENTAL
        client.deployments.begin_create_or_update.return_value.result.assert_called_once_with(
            timeout=5
        )

    def test_failed_state_raises(self, sample_arm_template):
        client = _client(state="Failed")

        with pytest.raises(DeploymentError, match="ended in state Failed"):
            deploy_template(client, "rg-test", "azo-workspace", sample_arm_template)

    def test_unfinished_poller_is_a_timeout(self, sample_arm_template):
        client = _client(done=False)

        with pytest.raises(DeploymentError) as exc_info:
            deploy_template(client, "rg-test", "azo-workspace", sample_arm_template, timeout=1)

        assert exc_info.value.error_code == "DEPLOYMENT_TIMEOUT"

    def test_http_error_is_wrapped(self, sample_arm_template):
        client = MagicMock()
        client.deployments.begin_create_or_update.side_effect = HttpResponseError(
            message="InvalidTemplate: parameter 'workspaceName' is not defined"
        )

        with pytest.raises(DeploymentError) as exc_info:
            deploy_template(client, "rg-test", "azo-workspace", sample_arm_template)

        assert exc_info.value.context == {
            "deployment_name": "azo-workspace",
            "resource_group": "rg-test",
        }
        assert isinstance(exc_info.value.cause, HttpResponseError)

    def test_authentication_failure(self, sample_arm_template):
        client = MagicMock()
        client.deployments.begin_create_or_update.side_effect = ClientAuthenticationError(
            message="token expired"
        )

        with pytest.raises(AuthenticationError):
            deploy_template(client, "rg-test", "azo-workspace", sample_arm_template)
