#!/usr/bin/env python3
"""
Promote To Admin Script

Grants the admin role to an existing user, found by uid or email.
Usage: python scripts/promote_to_admin.py <uid-or-email>
"""
import logging
import sys

from placement.core.auth import create_access_token
from placement.core.errors import PlacementError
from placement.db.store import get_store
from placement.services.user_service import promote_to_admin


def main():
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) != 2:
        print("Usage: python scripts/promote_to_admin.py <uid-or-email>")
        print("   Example: python scripts/promote_to_admin.py tpo@example.edu")
        sys.exit(1)

    identifier = sys.argv[1]
    print(f"Looking for user: {identifier}")
    try:
        user = promote_to_admin(get_store(), identifier)
    except PlacementError as e:
        print(f"FAILED: {e.message}")
        sys.exit(1)

    print("=" * 50)
    print("USER PROMOTED TO ADMIN")
    print("=" * 50)
    print(f"UID: {user['id']}")
    print(f"Email: {user.get('email') or '-'}")
    print("\nAdmin token:")
    print(create_access_token({"sub": user["id"], "email": user.get("email")}))


if __name__ == "__main__":
    main()
