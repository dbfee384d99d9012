"""
User Service - role documents in the users collection.

Accounts live with the identity provider; this collection only maps a uid
to its role, so granting admin is a write here.
"""

import logging
from typing import Optional

from placement.core.errors import NotFoundError, ValidationError
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore
from placement.schemas.schemas import UserRole
from placement.utils.dates import now_iso

logger = logging.getLogger(__name__)

ADMIN_PERMISSIONS = [
    "manage_users", "manage_drives", "manage_students", "view_analytics", "system_settings",
]


def find_user(store: DocumentStore, identifier: str) -> Optional[dict]:
    """Look a user up by uid, then by email."""
    user = store.get(COLLECTIONS["users"], identifier)
    if user is None and "@" in identifier:
        matches = store.find(COLLECTIONS["users"], {"email": identifier})
        user = matches[0] if matches else None
    return user


def promote_to_admin(store: DocumentStore, identifier: str) -> dict:
    """Give an existing user the admin role. Returns the updated user."""
    identifier = (identifier or "").strip()
    if not identifier:
        raise ValidationError("A user id or email is required")

    user = find_user(store, identifier)
    if user is None:
        raise NotFoundError(f"User '{identifier}' not found. Sign in once so a user document exists.")

    store.update(COLLECTIONS["users"], user["id"], {"$set": {
        "role": UserRole.admin.value,
        "permissions": ADMIN_PERMISSIONS,
        "updatedAt": now_iso(),
    }})
    logger.info("User %s promoted to admin (was %s)", user["id"], user.get("role"))
    return store.get(COLLECTIONS["users"], user["id"])
