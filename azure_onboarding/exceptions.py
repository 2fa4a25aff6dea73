"""
Exception hierarchy for Azure onboarding runs.

Every error raised here is fatal to a run: the orchestrator lets it propagate
after cleaning up its scratch directory. Best-effort conditions (a principal
that has not replicated yet, a failed registration callback) are reported
through return values and warnings instead.
"""

from typing import Any, Dict, Optional


class OnboardingError(Exception):
    """
    Base exception class for all onboarding errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


class ConfigurationError(OnboardingError):
    """Raised when settings or the permission manifest are invalid."""

    def __init__(
        self, message: str, setting: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if setting:
            context["setting"] = setting
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        super().__init__(message, **kwargs)


class AuthenticationError(OnboardingError):
    """Raised when no usable Azure session or subscription can be resolved."""

    def __init__(
        self, message: str, tenant_id: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_AUTH_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Run 'az login' or retry with --auth device-code",
        )
        super().__init__(message, **kwargs)


class TemplateDownloadError(OnboardingError):
    """Raised when a remote template cannot be fetched or parsed."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if url:
            context["url"] = url
        kwargs["context"] = context
        kwargs.setdefault("error_code", "TEMPLATE_DOWNLOAD_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check --template-base-url and network access to the template host",
        )
        super().__init__(message, **kwargs)


class DeploymentError(OnboardingError):
    """Raised when an ARM deployment fails or does not finish in time."""

    def __init__(
        self,
        message: str,
        deployment_name: Optional[str] = None,
        resource_group: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if deployment_name:
            context["deployment_name"] = deployment_name
        if resource_group:
            context["resource_group"] = resource_group
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DEPLOYMENT_FAILED")
        super().__init__(message, **kwargs)


class MissingOutputError(DeploymentError):
    """Raised when a deployment succeeded but lacks an output the next step needs."""

    def __init__(
        self,
        message: str,
        output_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if output_name:
            context["output_name"] = output_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DEPLOYMENT_OUTPUT_MISSING")
        kwargs.setdefault(
            "recovery_suggestion",
            "Make sure the template version at the base URL declares this output",
        )
        super().__init__(message, **kwargs)


def wrap_azure_exception(
    exc: Exception,
    deployment_name: Optional[str] = None,
    resource_group: Optional[str] = None,
) -> OnboardingError:
    """
    Wrap an Azure SDK exception raised during a deployment step.

    Args:
        exc: The original exception
        deployment_name: Deployment being created when the error occurred
        resource_group: Target resource group

    Returns:
        OnboardingError: AuthenticationError for credential failures,
        DeploymentError otherwise
    """
    error_message = str(exc)
    lowered = error_message.lower()

    if "authentication" in lowered or "unauthorized" in lowered:
        return AuthenticationError(
            f"Azure authentication failed: {error_message}",
            context={"deployment_name": deployment_name} if deployment_name else None,
            cause=exc,
        )
    return DeploymentError(
        f"Deployment '{deployment_name}' failed: {error_message}",
        deployment_name=deployment_name,
        resource_group=resource_group,
        cause=exc,
    )
