#!/usr/bin/env python3
"""
Wiz SAML Group Mapping Sync

This script syncs SAML group role mappings from a mappings file to Wiz using
the diffsync library. Only the IdPs referenced in the mappings file are touched.
"""

import os
import sys
import logging
from dotenv import load_dotenv

from desired_state_adapter import DesiredStateAdapter
from wiz_adapter import WizAdapter


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Load environment variables
load_dotenv()


def load_sync_groups_from_config():
    """Load the list of provider groups to sync from configuration."""
    groups_config = os.getenv("SYNC_PROVIDER_GROUPS", "")

    if groups_config:
        # Parse comma-separated list and strip whitespace
        sync_groups = {g.strip() for g in groups_config.split(',') if g.strip()}
        logger.info(f"Loaded {len(sync_groups)} provider groups from config: {', '.join(sorted(sync_groups))}")
        return sync_groups
    else:
        logger.info("No SYNC_PROVIDER_GROUPS configured - will manage every group of the configured IdPs")
        return None  # None means manage all groups


def sync_saml_group_mappings(client=None, mappings_file=None):
    """
    Main sync function.
    Makes the Wiz SAML group mappings match the mappings file.
    """
    logger.info("Starting SAML group mapping sync")

    dry_run = os.getenv("SYNC_DRY_RUN", "false").lower() == "true"
    if dry_run:
        logger.info("Running in DRY RUN mode - no changes will be made")

    sync_groups = load_sync_groups_from_config()

    # Initialize adapters
    desired_adapter = DesiredStateAdapter()
    desired_adapter.mappings_file = mappings_file
    wiz_adapter = WizAdapter(client=client)
    wiz_adapter.dry_run = dry_run

    desired_adapter.sync_groups = sync_groups
    wiz_adapter.sync_groups = sync_groups

    try:
        if client is None:
            wiz_adapter.connect_wiz()

        # Load desired state first, it decides which IdPs are read from Wiz
        desired_adapter.load()
        wiz_adapter.saml_idp_ids = desired_adapter.saml_idp_ids
        wiz_adapter.load()

        logger.info("Syncing Wiz to match the mappings file")
        logger.debug(f"Desired state has {len(desired_adapter.get_all('mapping'))} mappings")
        logger.debug(f"Wiz has {len(wiz_adapter.get_all('mapping'))} mappings")

        # Use sync_from to queue changes via the model's create/update/delete methods
        wiz_adapter.sync_from(desired_adapter)

        # Execute the pending operations that were queued during sync
        wiz_adapter.execute_pending_operations()

        logger.info("Sync completed successfully")

    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        sys.exit(1)

    finally:
        # Cleanup
        wiz_adapter.close()


if __name__ == "__main__":
    sync_saml_group_mappings()
