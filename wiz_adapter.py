"""
Wiz adapter for diffsync
"""

import uuid
import logging
from typing import List, Optional, Set

from diffsync import Adapter
from diffsync.exceptions import ObjectAlreadyExists

import saml_group_mapping
from models import MappingResource, SAMLGroupMapping
from wiz_client import WizClient


logger = logging.getLogger(__name__)


class WizAdapter(Adapter):
    """
    DiffSync adapter for Wiz.
    Reads saml group mappings from Wiz and applies changes through the
    saml group mapping reconciler.
    """

    mapping = SAMLGroupMapping
    top_level = ["mapping"]

    def __init__(self, *args, client: Optional[WizClient] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self.owns_client: bool = False
        self.dry_run: bool = False
        self.pending_operations: list = []
        self.saml_idp_ids: Set[str] = set()
        self.sync_groups: Optional[Set[str]] = None

    def connect_wiz(self):
        """Establish connection to Wiz."""
        if not self.client:
            self.client = WizClient()
            self.owns_client = True
        self.client.connect()

    def load(self):
        """Load existing saml group mappings from Wiz for every managed IdP."""
        logger.info("Loading data from Wiz")

        if not self.client:
            self.connect_wiz()

        try:
            mapping_count = 0

            for saml_idp_id in sorted(self.saml_idp_ids):
                for node in saml_group_mapping.list_saml_group_mappings(self.client, saml_idp_id):
                    # Only load mappings for groups in the sync list
                    if self.sync_groups is not None and node.provider_group_id not in self.sync_groups:
                        logger.debug(f"Skipping mapping for group {node.provider_group_id} - group not in sync list")
                        continue

                    mapping = SAMLGroupMapping(
                        saml_idp_id=saml_idp_id,
                        provider_group_id=node.provider_group_id,
                        role=node.role.id,
                        projects=node.project_ids,
                    )
                    try:
                        self.add(mapping)
                    except ObjectAlreadyExists:
                        logger.warning(
                            f"Duplicate mapping for group {node.provider_group_id} in saml idp {saml_idp_id}, "
                            f"keeping the first one"
                        )
                        continue

                    mapping_count += 1
                    logger.debug(f"Loaded mapping: {node.provider_group_id} -> {node.role.id}")

            logger.info(f"Loaded {mapping_count} mappings from Wiz")

        except Exception as e:
            logger.error(f"Failed to load data from Wiz: {e}")
            raise

    @staticmethod
    def _resource(saml_idp_id: str, provider_group_id: str, role: str, projects: List[str],
                  resource_id: Optional[str] = None) -> MappingResource:
        return MappingResource(
            id=resource_id,
            saml_idp_id=saml_idp_id,
            provider_group_id=provider_group_id,
            role=role,
            projects=projects,
        )

    def create_mapping(self, saml_idp_id: str, provider_group_id: str, role: str, projects: List[str]):
        """Create a mapping in Wiz."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would create: {provider_group_id} -> {role} {projects or 'global'} in saml idp {saml_idp_id}")
            return

        try:
            resource = self._resource(saml_idp_id, provider_group_id, role, projects)
            saml_group_mapping.create(self.client, resource)
        except Exception as e:
            logger.error(f"Failed to create mapping {provider_group_id} -> {role}: {e}")
            raise

    def update_mapping(self, saml_idp_id: str, provider_group_id: str, role: str, projects: List[str]):
        """Upsert a mapping in Wiz with new role or projects."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would update: {provider_group_id} -> {role} {projects or 'global'} in saml idp {saml_idp_id}")
            return

        try:
            resource = self._resource(saml_idp_id, provider_group_id, role, projects, str(uuid.uuid4()))
            saml_group_mapping.update(self.client, resource)
        except Exception as e:
            logger.error(f"Failed to update mapping {provider_group_id} -> {role}: {e}")
            raise

    def delete_mapping(self, saml_idp_id: str, provider_group_id: str, role: str, projects: List[str]):
        """Remove a mapping from Wiz."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would delete: {provider_group_id} from saml idp {saml_idp_id}")
            return

        try:
            resource = self._resource(saml_idp_id, provider_group_id, role, projects, str(uuid.uuid4()))
            saml_group_mapping.delete(self.client, resource)
        except Exception as e:
            logger.error(f"Failed to delete mapping {provider_group_id}: {e}")
            raise

    def execute_pending_operations(self):
        """Execute all pending operations that were queued during sync."""
        if not self.pending_operations:
            logger.info("No pending operations to execute")
            return

        logger.info(f"Executing {len(self.pending_operations)} pending operations")

        handlers = {
            'create': self.create_mapping,
            'update': self.update_mapping,
            'delete': self.delete_mapping,
        }
        for operation, *fields in self.pending_operations:
            handlers[operation](*fields)

        # Clear the pending operations
        self.pending_operations = []

    def close(self):
        """Close the Wiz client if this adapter created it."""
        if self.client and self.owns_client:
            try:
                self.client.close()
            except Exception as e:
                logger.warning(f"Error closing Wiz client: {e}")
