#!/usr/bin/env python3
"""
Checks that the configuration needed by the SAML group mapping sync is set
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def missing_config():
    """Return the required configuration variables that are not set"""
    required_vars = [
        'WIZ_API_URL',
        'SAML_GROUP_MAPPINGS_FILE',
    ]
    if not os.getenv('WIZ_API_TOKEN'):
        required_vars += ['WIZ_CLIENT_ID', 'WIZ_CLIENT_SECRET']

    return [var for var in required_vars if not os.getenv(var)]


def validate_config():
    """Validate that all required configuration is set"""
    missing = missing_config()

    if missing:
        print("❌ Missing required configuration variables:")
        for var in missing:
            print(f"   - {var}")
        return False

    mappings_file = os.getenv('SAML_GROUP_MAPPINGS_FILE')
    if not os.path.exists(mappings_file):
        print(f"❌ Mappings file not found: {mappings_file}")
        return False

    print("✅ All required configuration variables are set")
    return True


def mask(value):
    """Show only the first characters of a secret"""
    if not value:
        return '(not set)'
    return value[:4] + '****'


def display_config():
    """Display current configuration (masking sensitive values)"""
    print("\n📋 Current Configuration:")
    print(f"   Wiz API URL: {os.getenv('WIZ_API_URL')}")
    print(f"   Wiz Auth URL: {os.getenv('WIZ_AUTH_URL', 'https://auth.app.wiz.io/oauth/token')}")
    print(f"   Wiz Client ID: {os.getenv('WIZ_CLIENT_ID', '(not set)')}")
    print(f"   Wiz Client Secret: {mask(os.getenv('WIZ_CLIENT_SECRET'))}")
    print(f"   Wiz API Token: {mask(os.getenv('WIZ_API_TOKEN'))}")
    print(f"   Project Match: {os.getenv('WIZ_PROJECT_MATCH', 'ordered')}")
    print(f"   Mappings File: {os.getenv('SAML_GROUP_MAPPINGS_FILE')}")
    print(f"   Provider Groups: {os.getenv('SYNC_PROVIDER_GROUPS') or '(all)'}")
    print(f"   Dry Run Mode: {os.getenv('SYNC_DRY_RUN', 'false')}")
    print()


if __name__ == "__main__":
    print("🔍 Wiz SAML Group Mapping Sync - Configuration Validator\n")

    if validate_config():
        display_config()
        print("✅ Configuration is valid. You can now run:")
        print("   python sync.py")
    else:
        print("\n❌ Please update your .env file with the missing configuration")
        print("   See .env.example for reference")
