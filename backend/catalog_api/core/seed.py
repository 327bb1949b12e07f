# backend/catalog_api/core/seed.py

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catalog_api.core.security import hash_password
from catalog_api.models.user import ROLE_MANAGER, ROLE_VIEWER, User

logger = logging.getLogger(__name__)

# Change these creds anytime (demo defaults)
DEFAULT_USERS = [
    ("manager", "Manager", ROLE_MANAGER, "manager123"),
    ("viewer", "Viewer", ROLE_VIEWER, "viewer123"),
]


def seed_users_if_empty(db: Session) -> int:
    existing = db.scalar(select(func.count()).select_from(User)) or 0
    if existing > 0:
        return 0

    db.add_all(
        [
            User(username=username, name=name, role=role, password_hash=hash_password(password))
            for username, name, role, password in DEFAULT_USERS
        ]
    )
    db.commit()

    logger.info("users_seeded", extra={"count": len(DEFAULT_USERS)})
    return len(DEFAULT_USERS)
