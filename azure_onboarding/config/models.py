"""
Configuration models for onboarding runs.

Provides type-safe configuration using pydantic with validation,
defaults, and schema enforcement.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)


class TemplateKey(str, Enum):
    """Templates fetched from the template host."""

    SERVICE_PRINCIPAL = "service-principal"
    AUTOMATION = "automation"
    PERMISSIONS = "permissions"
    WORKSPACE = "workspace"


class RetryPolicy(BaseModel):
    """Backoff used while waiting for a new principal to replicate."""

    max_attempts: Annotated[int, Field(ge=1, le=10)] = Field(
        default=4,
        description="Number of directory lookups before giving up",
    )
    base_delay_seconds: Annotated[float, Field(ge=0.0)] = Field(
        default=8.0,
        description="Sleep before the second lookup; doubles for each later one",
    )

    model_config = ConfigDict(extra="forbid")

    def delay_before(self, attempt: int) -> float:
        """Seconds to sleep before ``attempt`` (1-based). Attempt 1 never waits."""
        if attempt <= 1:
            return 0.0
        return self.base_delay_seconds * 2 ** (attempt - 2)

    @property
    def worst_case_wait(self) -> float:
        return sum(self.delay_before(n) for n in range(1, self.max_attempts + 1))


class TemplateSpec(BaseModel):
    """One remote ARM template and the parameters it accepts."""

    key: TemplateKey
    remote_path: str = Field(description="Path relative to the template base URL")
    local_name: str = Field(description="File name inside the scratch directory")
    parameter_names: Tuple[str, ...] = Field(
        default=(),
        description="ARM parameters this template declares",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("local_name")
    @classmethod
    def validate_local_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"local_name must be a plain file name, got {v!r}")
        return v

    def build_parameters(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``values`` without ``None`` entries.

        Raises:
            ValueError: If a key is not one of ``parameter_names``
        """
        unknown = sorted(set(values) - set(self.parameter_names))
        if unknown:
            raise ValueError(
                f"Template '{self.key.value}' does not declare parameter(s): {', '.join(unknown)}"
            )
        return {name: value for name, value in values.items() if value is not None}


DEFAULT_TEMPLATES: Dict[TemplateKey, TemplateSpec] = {
    TemplateKey.SERVICE_PRINCIPAL: TemplateSpec(
        key=TemplateKey.SERVICE_PRINCIPAL,
        remote_path="templates/serviceprincipal.json",
        local_name="serviceprincipal.json",
        parameter_names=("servicePrincipalName",),
    ),
    TemplateKey.AUTOMATION: TemplateSpec(
        key=TemplateKey.AUTOMATION,
        remote_path="templates/automationaccount.json",
        local_name="automationaccount.json",
        parameter_names=("automationAccountName", "servicePrincipalId", "location"),
    ),
    TemplateKey.PERMISSIONS: TemplateSpec(
        key=TemplateKey.PERMISSIONS,
        remote_path="templates/permissions.json",
        local_name="permissions.json",
        parameter_names=(
            "principalId",
            "servicePrincipalId",
            "roleAssignments",
            "graphAppRoles",
        ),
    ),
    TemplateKey.WORKSPACE: TemplateSpec(
        key=TemplateKey.WORKSPACE,
        remote_path="templates/workspace.json",
        local_name="workspace.json",
        parameter_names=("workspaceName", "servicePrincipalId", "location"),
    ),
}


class NotificationTarget(BaseModel):
    """Registration API that receives the workspace identifiers."""

    url: str
    token: SecretStr

    model_config = ConfigDict(extra="forbid")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("Notification URL must start with http:// or https://")
        return v


class OnboardingSettings(BaseModel):
    """
    Settings shared by every pipeline.

    Example:
        >>> settings = OnboardingSettings(template_base_url="https://example.org/onboarding")
        >>> settings.retry.max_attempts
        4
    """

    template_base_url: Optional[str] = Field(
        default=None,
        description="Base URL the templates and permission manifest are fetched from",
    )
    permission_manifest_path: str = Field(
        default="templates/permissions-manifest.json",
        description="Manifest path relative to the template base URL",
    )
    deployment_prefix: Annotated[str, Field(min_length=1, max_length=32)] = Field(
        default="azo",
        description="Prefix for deterministic ARM deployment names",
    )
    location: Optional[str] = Field(
        default=None,
        description="Azure region; templates fall back to the resource group's region",
    )
    subscription_id: Optional[str] = None
    tenant_id: Optional[str] = None
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    templates: Dict[TemplateKey, TemplateSpec] = Field(
        default_factory=lambda: dict(DEFAULT_TEMPLATES)
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("template_base_url")
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.startswith(("https://", "http://")):
            raise ValueError("Template base URL must start with http:// or https://")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_templates(self) -> "OnboardingSettings":
        missing = [key.value for key in TemplateKey if key not in self.templates]
        if missing:
            raise ValueError(f"Missing template definitions: {', '.join(missing)}")
        for key, spec in self.templates.items():
            if spec.key != key:
                raise ValueError(
                    f"Template registered under '{key.value}' declares key '{spec.key.value}'"
                )
        return self

    def template(self, key: TemplateKey) -> TemplateSpec:
        return self.templates[key]

    def deployment_name(self, key: TemplateKey) -> str:
        """Deterministic so that a re-run updates the same deployment record."""
        return f"{self.deployment_prefix}-{key.value}"
