"""
Permission manifest handling.

The manifest lists the Azure roles and Microsoft Graph app roles that the
automation account's managed identity receives. It is published next to the
templates so that the granted permissions can change without a new release.

Example manifest:

    {
      "roleAssignments": [
        {"roleDefinitionId": "b24988ac-6180-42a0-ab88-20f7382dd24c",
         "scope": "resourceGroup",
         "description": "Contributor"}
      ],
      "graphAppRoles": [
        {"resourceAppId": "00000003-0000-0000-c000-000000000000",
         "appRoleId": "7ab1d382-f21e-4acd-a863-ba3e13f7da61",
         "description": "Directory.Read.All"}
      ]
    }
"""

import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from azure_onboarding.exceptions import ConfigurationError
from azure_onboarding.templates import load_template

logger = structlog.get_logger(__name__)

_GUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def _require_guid(value: str) -> str:
    if not _GUID_RE.match(value):
        raise ValueError(f"'{value}' is not a GUID")
    return value.lower()


class AssignmentScope(str, Enum):
    RESOURCE_GROUP = "resourceGroup"
    SUBSCRIPTION = "subscription"


class RoleAssignmentEntry(BaseModel):
    role_definition_id: str = Field(alias="roleDefinitionId")
    scope: AssignmentScope = AssignmentScope.RESOURCE_GROUP
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("role_definition_id")
    @classmethod
    def validate_role_definition_id(cls, v: str) -> str:
        return _require_guid(v)


class GraphAppRoleEntry(BaseModel):
    resource_app_id: str = Field(alias="resourceAppId")
    app_role_id: str = Field(alias="appRoleId")
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("resource_app_id", "app_role_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _require_guid(v)


class PermissionManifest(BaseModel):
    role_assignments: List[RoleAssignmentEntry] = Field(
        default_factory=list, alias="roleAssignments"
    )
    graph_app_roles: List[GraphAppRoleEntry] = Field(
        default_factory=list, alias="graphAppRoles"
    )

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_template_parameters(self) -> Dict[str, Any]:
        """Shape the manifest as the permissions template's array parameters."""
        return {
            "roleAssignments": [
                {"roleDefinitionId": entry.role_definition_id, "scope": entry.scope.value}
                for entry in self.role_assignments
            ],
            "graphAppRoles": [
                {"resourceAppId": entry.resource_app_id, "appRoleId": entry.app_role_id}
                for entry in self.graph_app_roles
            ],
        }

    @property
    def total_entries(self) -> int:
        return len(self.role_assignments) + len(self.graph_app_roles)


def parse_manifest(data: Dict[str, Any]) -> PermissionManifest:
    """
    Validate raw manifest data.

    Raises:
        ConfigurationError: If the manifest does not match the schema
    """
    try:
        manifest = PermissionManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Permission manifest is invalid: {e}", setting="permission_manifest"
        ) from e

    if manifest.total_entries == 0:
        logger.warning("Permission manifest grants no roles")
    return manifest


def load_manifest(path: Path) -> PermissionManifest:
    return parse_manifest(load_template(path))
