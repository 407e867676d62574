"""Pydantic models for declared specs and backend wire shapes.

These models provide:
1. Type-safe parsing of raw backend payloads (camelCase aliases)
2. Validation at the boundary (fail fast, fail loudly)
3. Clean transformation of declared specs into request payloads
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

from .config import MAX_REPOSITORY_NAME_LENGTH, MIN_REPOSITORY_NAME_LENGTH

# =============================================================================
# Shared wire fragments
# =============================================================================


class WireModel(BaseModel):
    """Base for backend payloads. Unknown fields are ignored."""

    model_config = {"extra": "ignore", "populate_by_name": True}


class CommonCode(WireModel):
    """Enumerated code object (status, kind, operation)."""

    code: str | None = None
    code_name: str | None = Field(None, alias="codeName")


class Zone(WireModel):
    """Zone descriptor returned by the classic backend."""

    zone_no: str | None = Field(None, alias="zoneNo")
    zone_code: str | None = Field(None, alias="zoneCode")
    zone_name: str | None = Field(None, alias="zoneName")
    region_no: str | None = Field(None, alias="regionNo")


# =============================================================================
# Public IP
# =============================================================================


class LinkedServerInstance(WireModel):
    """Server instance associated with a classic public IP."""

    server_instance_no: str | None = Field(None, alias="serverInstanceNo")
    server_name: str | None = Field(None, alias="serverName")


class ClassicPublicIp(WireModel):
    """Public IP instance as returned by the legacy flat API."""

    public_ip_instance_no: str = Field(alias="publicIpInstanceNo")
    public_ip: str = Field(alias="publicIp")
    public_ip_description: str | None = Field(None, alias="publicIpDescription")
    public_ip_instance_status: CommonCode | None = Field(None, alias="publicIpInstanceStatus")
    public_ip_kind_type: CommonCode | None = Field(None, alias="publicIpKindType")
    zone: Zone | None = None
    server_instance_associated_with_public_ip: LinkedServerInstance | None = Field(
        None, alias="serverInstanceAssociatedWithPublicIp"
    )


class VpcPublicIp(WireModel):
    """Public IP instance as returned by the network-scoped API.

    The linked server is flattened into top-level fields on this flavor.
    """

    public_ip_instance_no: str = Field(alias="publicIpInstanceNo")
    public_ip: str = Field(alias="publicIp")
    public_ip_description: str | None = Field(None, alias="publicIpDescription")
    server_instance_no: str | None = Field(None, alias="serverInstanceNo")
    server_name: str | None = Field(None, alias="serverName")
    private_ip: str | None = Field(None, alias="privateIp")
    public_ip_instance_status: CommonCode | None = Field(None, alias="publicIpInstanceStatus")
    public_ip_instance_operation: CommonCode | None = Field(
        None, alias="publicIpInstanceOperation"
    )


class ListQuery(BaseModel):
    """Server-side narrowing applied before client-side filters.

    The VPC backend has no zone parameter; ``zone`` is ignored there.
    """

    model_config = {"extra": "forbid"}

    ids: list[str] = Field(default_factory=list)
    is_associated: bool | None = None
    zone: str | None = None


# =============================================================================
# Source repository
# =============================================================================


class RepositoryCreated(WireModel):
    user: str | None = None
    timestamp: int | None = None


class RepositoryGit(WireModel):
    https: str | None = None
    ssh: str | None = None


class RepositoryLinked(WireModel):
    file_safer: bool | None = Field(None, alias="fileSafer")


class RepositoryDetail(WireModel):
    """Repository detail payload (``result`` of a detail GET)."""

    id: int
    name: str
    description: str | None = None
    created: RepositoryCreated = Field(default_factory=RepositoryCreated)
    git: RepositoryGit = Field(default_factory=RepositoryGit)
    linked: RepositoryLinked = Field(default_factory=RepositoryLinked)


class RepositorySpec(BaseModel):
    """Declared state of a source repository.

    ``name`` is immutable remotely: changing it means a new repository.
    """

    model_config = {"extra": "forbid"}

    name: Annotated[
        str,
        Field(min_length=MIN_REPOSITORY_NAME_LENGTH, max_length=MAX_REPOSITORY_NAME_LENGTH),
    ]
    description: str | None = None
    filesafer: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if v.strip() != v or not v:
            raise ValueError("name must not have leading or trailing whitespace")
        return v

    def to_create_payload(self) -> dict[str, Any]:
        """Convert to the create request body."""
        payload: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            payload["description"] = self.description
        if self.filesafer is not None:
            payload["linked"] = {"fileSafer": self.filesafer}
        return payload


class RepositoryChanges(BaseModel):
    """Mutable repository fields sent on update."""

    model_config = {"extra": "forbid"}

    description: str | None = None
    filesafer: bool | None = None

    @property
    def is_empty(self) -> bool:
        return self.description is None and self.filesafer is None

    def to_payload(self) -> dict[str, Any]:
        """Convert to the update request body."""
        payload: dict[str, Any] = {}
        if self.description is not None:
            payload["description"] = self.description
        if self.filesafer is not None:
            payload["linked"] = {"fileSafer": self.filesafer}
        return payload
