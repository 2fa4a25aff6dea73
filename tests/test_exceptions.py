"""Tests for the onboarding exception hierarchy."""

from azure.core.exceptions import HttpResponseError

from azure_onboarding.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DeploymentError,
    MissingOutputError,
    OnboardingError,
    TemplateDownloadError,
    wrap_azure_exception,
)


class TestOnboardingError:
    def test_str_includes_code_context_and_suggestion(self):
        error = TemplateDownloadError("HTTP 404", url="https://example.com/t.json")

        text = str(error)
        assert text.startswith("[TEMPLATE_DOWNLOAD_FAILED] HTTP 404")
        assert "url=https://example.com/t.json" in text
        assert "suggestion:" in text

    def test_to_dict(self):
        cause = ValueError("bad")
        error = ConfigurationError("Invalid setting", setting="location", cause=cause)

        assert error.to_dict() == {
            "error_type": "ConfigurationError",
            "message": "Invalid setting",
            "error_code": "INVALID_CONFIG",
            "context": {"setting": "location"},
            "cause": "bad",
            "recovery_suggestion": None,
        }

    def test_explicit_none_context(self):
        error = AuthenticationError("no session", context=None, tenant_id="t-1")

        assert error.context == {"tenant_id": "t-1"}

    def test_hierarchy(self):
        assert issubclass(MissingOutputError, DeploymentError)
        for cls in (ConfigurationError, AuthenticationError, TemplateDownloadError, DeploymentError):
            assert issubclass(cls, OnboardingError)


class TestWrapAzureException:
    def test_deployment_failure(self):
        wrapped = wrap_azure_exception(
            HttpResponseError(message="QuotaExceeded"), "azo-workspace", "rg-test"
        )

        assert isinstance(wrapped, DeploymentError)
        assert "QuotaExceeded" in wrapped.message
        assert wrapped.context["resource_group"] == "rg-test"

    def test_authorization_failure(self):
        wrapped = wrap_azure_exception(
            HttpResponseError(message="AuthorizationFailed: Unauthorized"), "azo-workspace"
        )

        assert isinstance(wrapped, AuthenticationError)
        assert wrapped.context["deployment_name"] == "azo-workspace"
