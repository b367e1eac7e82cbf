#!/usr/bin/env python3
"""
Script to verify the Wiz connection and the configured SAML IdPs
"""

import sys
import logging
from dotenv import load_dotenv

from desired_state_adapter import DesiredStateAdapter
from exceptions import SAMLGroupMappingError
from saml_group_mapping import iter_saml_group_mapping_pages
from wiz_client import WizClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

load_dotenv()


def check_wiz_connection(client):
    """Authenticate against Wiz"""
    print("\n🔍 Testing Wiz Connection...")

    try:
        client.connect()
        print(f"✅ Connected to Wiz: {client.api_url}")
        return True
    except SAMLGroupMappingError as e:
        print(f"❌ Wiz connection failed: {e}")
        return False


def check_mappings_file(desired):
    """Load the mappings file"""
    print("\n🔍 Loading mappings file...")

    try:
        desired.load()
    except (OSError, ValueError, SAMLGroupMappingError) as e:
        print(f"❌ Could not load mappings file: {e}")
        return False

    print(f"✅ Loaded {len(desired.get_all('mapping'))} mappings for {len(desired.saml_idp_ids)} SAML IdPs")
    return True


def check_saml_idp(client, saml_idp_id):
    """Read the first page of mappings of a SAML IdP"""
    print(f"\n🔍 Reading mappings of SAML IdP {saml_idp_id}...")

    try:
        page = next(iter_saml_group_mapping_pages(client, saml_idp_id))
    except SAMLGroupMappingError as e:
        print(f"❌ Could not read mappings: {e}")
        return False

    nodes = page.nodes or []
    more = " (more pages available)" if page.page_info.has_next_page else ""
    print(f"✅ Found {len(nodes)} mappings on the first page{more}")

    if nodes:
        print("\n   Sample mappings:")
        for node in nodes[:5]:
            print(f"   - {node.provider_group_id} -> {node.role.id} {node.project_ids or 'global'}")

    return True


def main():
    """Run all checks"""
    print("🧪 Connection Check Script")
    print("=" * 60)

    client = WizClient()
    wiz_ok = check_wiz_connection(client)

    idp_results = {}
    mappings_ok = False
    try:
        if wiz_ok:
            desired = DesiredStateAdapter()
            mappings_ok = check_mappings_file(desired)
            for saml_idp_id in sorted(desired.saml_idp_ids if mappings_ok else []):
                idp_results[saml_idp_id] = check_saml_idp(client, saml_idp_id)
    finally:
        client.close()

    print("\n" + "=" * 60)
    print("📊 Check Summary:")
    print(f"   Wiz: {'✅ PASS' if wiz_ok else '❌ FAIL'}")
    print(f"   Mappings file: {'✅ PASS' if mappings_ok else '❌ FAIL'}")
    for saml_idp_id, ok in idp_results.items():
        print(f"   SAML IdP {saml_idp_id}: {'✅ PASS' if ok else '❌ FAIL'}")

    if wiz_ok and mappings_ok and all(idp_results.values()):
        print("\n✅ All checks passed! Ready to run sync.py")
        return 0
    else:
        print("\n❌ Some checks failed. Please check your configuration.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
