"""
Models for Wiz SAML group mappings: GraphQL wire types, the local resource
state and the DiffSync model used by the sync
"""

from typing import Any, Dict, List, Optional

from diffsync import DiffSyncModel
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exceptions import ResourceFieldError


class Role(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    is_project_scoped: Optional[bool] = Field(default=None, alias="isProjectScoped")
    scopes: Optional[List[str]] = None


class Project(BaseModel):
    id: str


class SAMLGroupMappingNode(BaseModel):
    """A single group mapping as returned by samlIdentityProviderGroupMappings."""
    model_config = ConfigDict(populate_by_name=True)

    provider_group_id: str = Field(alias="providerGroupId")
    role: Role
    projects: Optional[List[Project]] = None

    @property
    def project_ids(self) -> List[str]:
        """Project IDs in the order the server returned them."""
        return [project.id for project in self.projects or []]


class PageInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_next_page: bool = Field(default=False, alias="hasNextPage")
    end_cursor: Optional[str] = Field(default=None, alias="endCursor")


class SAMLGroupMappingPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")
    nodes: Optional[List[SAMLGroupMappingNode]] = None


class ReadSAMLGroupMappings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    saml_group_mappings: SAMLGroupMappingPage = Field(alias="samlIdentityProviderGroupMappings")


# Fields of the saml group mapping resource and whether each one is required
MAPPING_SCHEMA: Dict[str, bool] = {
    "id": False,
    "saml_idp_id": True,
    "provider_group_id": True,
    "role": True,
    "projects": False,
}


class MappingResource(BaseModel):
    """
    Local state of one saml group mapping.
    The id only tracks the resource locally, the remote side never sees it.
    Assignments are validated, so a wrongly typed value fails at the point
    it is set.
    """
    model_config = ConfigDict(validate_assignment=True, strict=True)

    id: Optional[str] = None
    saml_idp_id: str = ""
    provider_group_id: str = ""
    role: str = ""
    projects: List[str] = Field(default_factory=list)

    def get(self, name: str) -> Any:
        if name not in MAPPING_SCHEMA:
            raise ResourceFieldError(name, "unknown field")
        return getattr(self, name)

    def set(self, name: str, value: Any) -> None:
        if name not in MAPPING_SCHEMA:
            raise ResourceFieldError(name, "unknown field")
        try:
            setattr(self, name, value)
        except ValidationError as e:
            raise ResourceFieldError(name, str(e)) from e

    def missing_required_fields(self) -> List[str]:
        return [name for name, required in MAPPING_SCHEMA.items() if required and not getattr(self, name)]

    def to_state(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "MappingResource":
        try:
            return cls.model_validate(state)
        except ValidationError as e:
            field = ".".join(str(part) for part in e.errors()[0]["loc"]) or "state"
            raise ResourceFieldError(field, str(e)) from e


class SAMLGroupMapping(DiffSyncModel):
    """
    DiffSync model representing a saml group mapping.
    A provider group ID is unique within an IdP, so (IdP, group) identifies
    the mapping and role and projects are the attributes to reconcile.
    """
    _modelname = "mapping"
    _identifiers = ("saml_idp_id", "provider_group_id")
    _attributes = ("role", "projects")

    saml_idp_id: str
    provider_group_id: str
    role: str
    projects: List[str] = []

    def pending_entry(self, operation: str) -> tuple:
        return (operation, self.saml_idp_id, self.provider_group_id, self.role, list(self.projects))

    @classmethod
    def create(cls, adapter, ids, attrs):
        """Create this mapping in the target adapter (Wiz)."""
        mapping = cls(**ids, **attrs)
        mapping.adapter = adapter

        # Queue the operation for the Wiz adapter to execute
        if hasattr(adapter, 'pending_operations'):
            adapter.pending_operations.append(mapping.pending_entry('create'))

        return mapping

    def update(self, attrs):
        """Update role or projects of this mapping in the target adapter (Wiz)."""
        super().update(attrs)

        if hasattr(self.adapter, 'pending_operations'):
            self.adapter.pending_operations.append(self.pending_entry('update'))

        return self

    def delete(self) -> Optional["SAMLGroupMapping"]:
        """Delete this mapping from the target adapter (Wiz)."""
        if hasattr(self.adapter, 'pending_operations'):
            self.adapter.pending_operations.append(self.pending_entry('delete'))

        return self
