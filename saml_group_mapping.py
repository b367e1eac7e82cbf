"""
Reconciler for Wiz SAML group role mappings

If you use SSO to authenticate to Wiz, group memberships in SAML tokens can be
bound to Wiz roles over certain scopes. The API offers no way to fetch a single
mapping, so every lookup pages through the mappings of the IdP client side.
"""

import uuid
import logging
from collections import Counter
from typing import Iterator, List, Optional

from exceptions import (
    InvalidImportIDError,
    MappingAlreadyExistsError,
    MappingNotFoundError,
    ResourceFieldError,
)
from models import MappingResource, ReadSAMLGroupMappings, SAMLGroupMappingNode, SAMLGroupMappingPage


logger = logging.getLogger(__name__)

RESOURCE_KIND = "saml_group_mapping"
PAGE_SIZE = 100
IMPORT_ID_PREFIX = "mapping"
GLOBAL_SCOPE = "global"

READ_SAML_GROUP_MAPPINGS_QUERY = """
query samlIdentityProviderGroupMappings ($id: ID!, $first: Int! $after: String){
    samlIdentityProviderGroupMappings (
        id: $id,
        first: $first
        after: $after
    ) {
        pageInfo {
            hasNextPage
            endCursor
        }
        nodes {
            providerGroupId
            role {
                description
                id
                isProjectScoped
                name
                scopes
            }
            projects {
                id
            }
        }
    }
}
"""

MODIFY_SAML_GROUP_MAPPINGS_MUTATION = """
mutation SetSAMLGroupMapping ($input: ModifySAMLGroupMappingInput!) {
    modifySAMLIdentityProviderGroupMappings(input: $input) {
        _stub
    }
}
"""


def projects_match(expected: List[str], actual: List[str], strategy: str = "ordered") -> bool:
    """
    Compare two project ID lists.
    "ordered" treats [p1, p2] and [p2, p1] as different mappings,
    "unordered" compares them as multisets.
    """
    if strategy == "ordered":
        return list(expected) == list(actual)
    if strategy == "unordered":
        return Counter(expected) == Counter(actual)
    raise ValueError(f"Unknown project match strategy: {strategy}")


def iter_saml_group_mapping_pages(client, saml_idp_id: str) -> Iterator[SAMLGroupMappingPage]:
    """Yield the mapping pages of an IdP, one request per page, starting without a cursor."""
    if not saml_idp_id:
        raise ValueError("saml_idp_id is required to query saml group mappings")

    variables = {"id": saml_idp_id, "first": PAGE_SIZE}
    while True:
        data = client.process_request(variables, ReadSAMLGroupMappings, READ_SAML_GROUP_MAPPINGS_QUERY, "saml_idp", "read")
        page = data.saml_group_mappings
        logger.debug(f"Fetched page of {len(page.nodes or [])} mappings for saml idp {saml_idp_id}")
        yield page

        if not page.page_info.has_next_page:
            return

        variables = {**variables, "after": page.page_info.end_cursor}


def list_saml_group_mappings(client, saml_idp_id: str) -> Iterator[SAMLGroupMappingNode]:
    """Yield every mapping of an IdP across all pages."""
    for page in iter_saml_group_mapping_pages(client, saml_idp_id):
        yield from page.nodes or []


def query_saml_group_mappings(
    client,
    saml_idp_id: str,
    provider_group_id: str,
    role_id: str,
    project_ids: List[str],
) -> Optional[SAMLGroupMappingNode]:
    """
    Find the mapping matching group, role and projects.
    We can't filter by providerGroupId server side, so pages are fetched until
    the mapping is found or the last page has been scanned.
    """
    strategy = getattr(client, "project_match", "ordered")

    for page in iter_saml_group_mapping_pages(client, saml_idp_id):
        for node in page.nodes or []:
            if (
                node.provider_group_id == provider_group_id
                and node.role.id == role_id
                and projects_match(project_ids, node.project_ids, strategy)
            ):
                return node

    return None


def _upsert_variables(resource: MappingResource) -> dict:
    return {
        "input": {
            "id": resource.saml_idp_id,
            "patch": {
                "upsert": {
                    "providerGroupId": resource.provider_group_id,
                    "role": resource.role,
                    "projects": list(resource.projects),
                },
            },
        },
    }


def _delete_variables(resource: MappingResource) -> dict:
    return {
        "input": {
            "id": resource.saml_idp_id,
            "patch": {
                "delete": [resource.provider_group_id],
            },
        },
    }


def _check_required(resource: MappingResource):
    missing = resource.missing_required_fields()
    if missing:
        raise ResourceFieldError(missing[0], "value is required")


def create(client, resource: MappingResource) -> MappingResource:
    logger.info("create saml group mapping called...")
    _check_required(resource)

    # verify the mapping doesn't already exist
    existing = query_saml_group_mappings(
        client, resource.saml_idp_id, resource.provider_group_id, resource.role, resource.projects
    )
    if existing is not None:
        raise MappingAlreadyExistsError(
            f"saml group mapping for group: {resource.provider_group_id} and role: {resource.role} "
            f"to project(s): {', '.join(resource.projects)} already exists for saml idp provider: "
            f"{resource.saml_idp_id} and should be imported instead"
        )

    client.process_request(_upsert_variables(resource), None, MODIFY_SAML_GROUP_MAPPINGS_MUTATION, RESOURCE_KIND, "create")

    resource.set("id", str(uuid.uuid4()))
    logger.info(f"Created saml group mapping {resource.provider_group_id} -> {resource.role}")

    return read(client, resource)


def read(client, resource: MappingResource) -> MappingResource:
    logger.info("read saml group mapping called...")

    if not resource.id:
        return resource

    node = query_saml_group_mappings(
        client, resource.saml_idp_id, resource.provider_group_id, resource.role, resource.projects
    )
    if node is None:
        raise MappingNotFoundError(
            f"saml group mapping for group: {resource.provider_group_id} not found "
            f"for saml idp provider: {resource.saml_idp_id}"
        )

    # a failing assignment leaves the remaining fields untouched
    resource.set("saml_idp_id", resource.saml_idp_id)
    resource.set("provider_group_id", node.provider_group_id)
    resource.set("role", node.role.id)
    resource.set("projects", node.project_ids)

    return resource


def update(client, resource: MappingResource) -> MappingResource:
    logger.info("update saml group mapping called...")

    if not resource.id:
        return resource

    _check_required(resource)
    client.process_request(_upsert_variables(resource), None, MODIFY_SAML_GROUP_MAPPINGS_MUTATION, RESOURCE_KIND, "update")
    logger.info(f"Updated saml group mapping {resource.provider_group_id} -> {resource.role}")

    return read(client, resource)


def delete(client, resource: MappingResource) -> None:
    logger.info("delete saml group mapping called...")

    if not resource.id:
        return

    client.process_request(_delete_variables(resource), None, MODIFY_SAML_GROUP_MAPPINGS_MUTATION, RESOURCE_KIND, "delete")
    logger.info(f"Deleted saml group mapping {resource.provider_group_id} from saml idp {resource.saml_idp_id}")


def parse_import_id(import_id: str) -> MappingResource:
    """
    Decode mapping|<saml_idp_id>|<provider_group_id>|<project_ids>|<role>.
    project_ids is a comma separated list, or "global" for no projects.
    """
    parts = import_id.split("|")
    if len(parts) != 5:
        raise InvalidImportIDError(
            f"invalid ID format '{import_id}', expected "
            f"{IMPORT_ID_PREFIX}|<saml_idp_id>|<provider_group_id>|<project_ids or {GLOBAL_SCOPE}>|<role>"
        )

    # if the mapping is global we return an empty list
    project_ids = []
    if parts[3] != GLOBAL_SCOPE:
        project_ids = [project_id.strip() for project_id in parts[3].split(",")]

    return MappingResource(
        saml_idp_id=parts[1],
        provider_group_id=parts[2],
        projects=project_ids,
        role=parts[4],
    )


def format_import_id(resource: MappingResource) -> str:
    projects = ",".join(resource.projects) if resource.projects else GLOBAL_SCOPE
    return "|".join([IMPORT_ID_PREFIX, resource.saml_idp_id, resource.provider_group_id, projects, resource.role])


def import_state(import_id: str) -> MappingResource:
    """Build a local resource from an import identifier. Issues no requests."""
    resource = parse_import_id(import_id)
    resource.set("id", str(uuid.uuid4()))
    return resource
