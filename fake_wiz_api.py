"""
In-memory stand-in for the Wiz GraphQL API, used by the tests
"""

from typing import Dict, List, Optional

from exceptions import WizRequestError


class FakeWizAPI:
    """
    Serves samlIdentityProviderGroupMappings pages and applies
    modifySAMLIdentityProviderGroupMappings patches against an in-memory store.
    Every request is recorded as (resource, operation, variables).
    """

    def __init__(self, page_size: Optional[int] = None, project_match: str = "ordered"):
        self.page_size = page_size
        self.project_match = project_match
        self.mappings: Dict[str, List[dict]] = {}
        self.requests: List[tuple] = []
        self.fail_operations: set = set()
        self.closed = False

    def add_mapping(self, saml_idp_id: str, provider_group_id: str, role: str, projects: Optional[List[str]] = None):
        self.mappings.setdefault(saml_idp_id, []).append({
            "providerGroupId": provider_group_id,
            "role": role,
            "projects": list(projects or []),
        })

    def get_mappings(self, saml_idp_id: str) -> set:
        return {
            (m["providerGroupId"], m["role"], tuple(m["projects"]))
            for m in self.mappings.get(saml_idp_id, [])
        }

    def requests_for(self, operation: str) -> List[dict]:
        return [variables for _, op, variables in self.requests if op == operation]

    @property
    def mutations(self) -> List[dict]:
        return [variables for resource, op, variables in self.requests if op != "read"]

    def process_request(self, variables, response_model, query, resource, operation):
        self.requests.append((resource, operation, variables))

        if operation in self.fail_operations:
            raise WizRequestError(["simulated failure"], resource, operation)

        if operation == "read":
            data = self._read_page(variables)
        else:
            data = self._modify(variables["input"])

        if response_model is None:
            return data
        return response_model.model_validate(data)

    def _read_page(self, variables) -> dict:
        records = self.mappings.get(variables["id"], [])
        size = self.page_size or variables["first"]
        start = int(variables.get("after") or 0)
        end = start + size

        nodes = [
            {
                "providerGroupId": m["providerGroupId"],
                "role": {
                    "id": m["role"],
                    "name": m["role"],
                    "description": "",
                    "isProjectScoped": bool(m["projects"]),
                    "scopes": [],
                },
                "projects": [{"id": project_id} for project_id in m["projects"]],
            }
            for m in records[start:end]
        ]
        return {
            "samlIdentityProviderGroupMappings": {
                "pageInfo": {"hasNextPage": end < len(records), "endCursor": str(end)},
                "nodes": nodes,
            }
        }

    def _modify(self, mutation_input) -> dict:
        records = self.mappings.setdefault(mutation_input["id"], [])
        patch = mutation_input["patch"]

        if "upsert" in patch:
            upsert = patch["upsert"]
            record = {
                "providerGroupId": upsert["providerGroupId"],
                "role": upsert["role"],
                "projects": list(upsert["projects"]),
            }
            for i, existing in enumerate(records):
                if existing["providerGroupId"] == record["providerGroupId"]:
                    records[i] = record
                    break
            else:
                records.append(record)

        if "delete" in patch:
            records[:] = [m for m in records if m["providerGroupId"] not in patch["delete"]]

        return {"modifySAMLIdentityProviderGroupMappings": {"_stub": None}}

    def close(self):
        self.closed = True
