"""
Core data models for the Authorization Model Engine.

This module defines the Pydantic models used throughout the system for
authorization rules, CAS access controls, typed REST responses and
workflow results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


SUPER_ADMIN_GROUP = "SASAdministrators"
WILDCARD_PRINCIPAL = "*"


class PrincipalKind(str, Enum):
    """Kinds of principals known to the identities service."""
    USER = "user"
    GROUP = "group"


class GrantType(str, Enum):
    """Grant types used in access pattern files."""
    OBJECT = "object"
    CONVEYED = "conveyed"
    CASLIB = "caslib"


class AuthorizationRule(BaseModel):
    """A single authorization rule on the platform's authorization service."""
    principal: str = Field(..., description="Principal ID (group, user or built-in type)")
    principal_type: str = Field("group", description="group, user, guest, authenticatedUsers, ...")
    type: str = Field("grant", description="grant or prohibit")
    permissions: List[str] = Field(default_factory=list)
    enabled: bool = True
    description: str = ""
    container_uri: Optional[str] = None
    object_uri: Optional[str] = None
    every_uri: bool = False
    rule_ids: List[str] = Field(default_factory=list, description="Server-assigned rule IDs")

    @field_validator('permissions')
    @classmethod
    def strip_permissions(cls, v: List[str]) -> List[str]:
        """Drop blanks left over from splitting comma-separated cells."""
        return [p.strip() for p in v if p and p.strip()]

    @model_validator(mode='after')
    def check_single_scope(self) -> "AuthorizationRule":
        """Exactly one of container URI, object URI or every-URI must be set."""
        scopes = [bool(self.container_uri), bool(self.object_uri), self.every_uri]
        if sum(scopes) != 1:
            raise ValueError(
                "Exactly one of container_uri, object_uri or every_uri must be set"
            )
        return self

    def to_request_body(self) -> Dict[str, Any]:
        """Body for POST /authorization/rules."""
        body: Dict[str, Any] = {
            "permissions": self.permissions,
            "principal": self.principal,
            "principalType": self.principal_type,
            "type": self.type,
            "enabled": self.enabled,
            "description": self.description,
        }
        if self.container_uri:
            body["containerUri"] = self.container_uri
        elif self.object_uri:
            body["objectUri"] = self.object_uri
        return body


class AccessControlEntry(BaseModel):
    """One wire-level CAS access control entry."""
    model_config = ConfigDict(populate_by_name=True)

    version: Optional[int] = None
    type: str = "grant"
    permission: str
    identity_type: str = Field(..., alias="identityType")
    identity: str
    table_filter: Optional[str] = Field(None, alias="tableFilter")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AccessControl(BaseModel):
    """
    A logical CAS access control declaration.

    One declaration carries several permissions for the same identity and
    expands to one AccessControlEntry per permission.
    """
    identity: str
    identity_type: str = "group"
    permissions: List[str] = Field(default_factory=list)
    type: str = "grant"
    version: Optional[int] = None
    table_filter: Optional[str] = None

    def expand(self) -> List[AccessControlEntry]:
        return [
            AccessControlEntry(
                version=self.version,
                type=self.type,
                permission=permission,
                identity_type=self.identity_type,
                identity=self.identity,
                table_filter=self.table_filter or None,
            )
            for permission in self.permissions
        ]


# Typed REST responses. Unknown fields are ignored; missing required fields
# surface as ResponseDecodeError from the connector that decodes them.

class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class IdentityItem(_Response):
    id: str
    name: Optional[str] = None
    type: str = "group"
    provider_id: Optional[str] = Field(None, alias="providerId")


class IdentityCollection(_Response):
    count: int = 0
    items: List[IdentityItem] = Field(default_factory=list)


class RuleItem(_Response):
    id: str
    principal: Optional[str] = None
    principal_type: Optional[str] = Field(None, alias="principalType")
    permissions: List[str] = Field(default_factory=list)


class RuleCollection(_Response):
    count: int = 0
    items: List[RuleItem] = Field(default_factory=list)


class FolderItem(_Response):
    id: str
    name: Optional[str] = None
    parent_folder_uri: Optional[str] = Field(None, alias="parentFolderUri")


class CASSessionItem(_Response):
    id: str


class CASLibItem(_Response):
    name: str


class CASLibCollection(_Response):
    count: int = 0
    items: List[CASLibItem] = Field(default_factory=list)


class ConfigurationItem(_Response):
    id: str


class ConfigurationCollection(_Response):
    count: int = 0
    items: List[ConfigurationItem] = Field(default_factory=list)


class WorkflowResult(BaseModel):
    """Result of a complete workflow execution."""
    workflow_id: str
    pattern: str = Field(..., description="groups, ipap, dap, matrix or harden")
    action: str = Field(..., description="apply, remove, sync, ...")
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    success: bool = True
    actions_taken: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
