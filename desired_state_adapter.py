"""
Desired state adapter for diffsync
"""

import os
import logging
from typing import Optional, Set

from diffsync import Adapter
from diffsync.exceptions import ObjectAlreadyExists

from models import SAMLGroupMapping
from saml_group_mapping import parse_import_id


logger = logging.getLogger(__name__)


class DesiredStateAdapter(Adapter):
    """
    DiffSync adapter for the desired mappings.
    Reads one import identifier per line from the mappings file:
    mapping|<saml_idp_id>|<provider_group_id>|<project_ids or global>|<role>
    """

    mapping = SAMLGroupMapping
    top_level = ["mapping"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.mappings_file: Optional[str] = None
        self.sync_groups: Optional[Set[str]] = None
        # every IdP named in the file, including those whose lines are filtered out
        self.saml_idp_ids: Set[str] = set()

    def load(self):
        """Load desired mappings from the mappings file."""
        path = self.mappings_file or os.getenv("SAML_GROUP_MAPPINGS_FILE")
        if not path:
            raise ValueError("SAML_GROUP_MAPPINGS_FILE is not set")

        logger.info(f"Loading desired mappings from {path}")

        mapping_count = 0
        skipped = 0

        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue

                    resource = parse_import_id(line)
                    self.saml_idp_ids.add(resource.saml_idp_id)

                    if self.sync_groups is not None and resource.provider_group_id not in self.sync_groups:
                        logger.debug(f"Skipping group '{resource.provider_group_id}' - not in SYNC_PROVIDER_GROUPS config")
                        skipped += 1
                        continue

                    if self._add_mapping(resource, line_number):
                        mapping_count += 1

        except OSError as e:
            logger.error(f"Failed to read mappings file {path}: {e}")
            raise

        logger.info(f"Loaded {mapping_count} desired mappings")
        if skipped > 0:
            logger.info(f"Skipped {skipped} mappings not in SYNC_PROVIDER_GROUPS config")

    def _add_mapping(self, resource, line_number: int) -> bool:
        """Helper to create and add a mapping object."""
        mapping = SAMLGroupMapping(
            saml_idp_id=resource.saml_idp_id,
            provider_group_id=resource.provider_group_id,
            role=resource.role,
            projects=resource.projects,
        )
        try:
            self.add(mapping)
        except ObjectAlreadyExists:
            logger.warning(
                f"Line {line_number}: group {resource.provider_group_id} is already mapped "
                f"for saml idp {resource.saml_idp_id}, skipping"
            )
            return False
        logger.debug(f"Added mapping: {resource.provider_group_id} -> {resource.role}")
        return True
