#!/usr/bin/env python3
"""
Script to register an email/password user interactively.

Usage:
    python scripts/create_user.py

    # Or with email and username as arguments:
    python scripts/create_user.py reader@example.com --username reader
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bookworm.config import load_config
from bookworm.errors import AuthError
from bookworm.services import AccountProvisioner, create_user_store


def main():
    parser = argparse.ArgumentParser(description="Register a new user")
    parser.add_argument("email", nargs="?", help="Email address")
    parser.add_argument("--username", "-u", help="Username (min 3 chars)")
    args = parser.parse_args()

    config = load_config()
    provisioner = AccountProvisioner(
        create_user_store(config),
        avatar_base_url=config.accounts.avatar_base_url
    )

    email = args.email or input("Email: ").strip()
    username = args.username or input("Username: ").strip()

    password = getpass.getpass("Enter password: ")
    confirm = getpass.getpass("Confirm password: ")

    if password != confirm:
        print("❌ Passwords do not match!")
        sys.exit(1)

    try:
        user = provisioner.register_user(email, username, password)
    except AuthError as e:
        print(f"❌ {e.message}")
        sys.exit(1)

    print()
    print("✅ User created successfully!")
    print(f"   Username: {user.username}")
    print(f"   Email: {user.email}")
    print(f"   User ID: {user.user_id}")


if __name__ == "__main__":
    main()
