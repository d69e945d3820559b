"""
Database Seeder
===============

First-run provisioning: the permission catalog, the default roles and the
super administrator account.

Seeding writes straight to the registries; no authorization check
applies, and the role registry is opened in bootstrap mode so system
roles can be (re)synced. Every step is idempotent.
"""

from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.core.config import get_settings
from portal.core.logging import get_logger
from portal.core.permissions import PERMISSION_CATALOG
from portal.db.seeds.catalog import ROLE_CATALOG
from portal.db.session import transaction
from portal.models.permission import Permission
from portal.models.role import Role
from portal.models.user import User
from portal.services.auth_service import AuthService
from portal.services.role_registry import RoleRegistry

logger = get_logger(__name__)


def seed_permissions(db: Session) -> List[Permission]:
    """Create missing catalog permissions; existing rows are left as they are."""
    existing = {p.name: p for p in db.scalars(select(Permission))}
    created = []
    with transaction(db):
        for entry in PERMISSION_CATALOG:
            if entry.name in existing:
                continue
            permission = Permission(
                name=entry.name,
                display_name=entry.display_name,
                description=entry.description,
                group=entry.group,
            )
            db.add(permission)
            created.append(permission)

    logger.info("permissions_seeded", created=len(created), total=len(PERMISSION_CATALOG))
    return list(db.scalars(select(Permission).where(Permission.deleted_at.is_(None))))


def seed_roles(db: Session) -> Dict[str, Role]:
    """
    Create the default roles and sync their permissions.

    Existing roles keep their attributes; their permission sets are
    brought back to the catalog.
    """
    registry = RoleRegistry(db, bootstrap=True)
    permissions = {p.name: p for p in seed_permissions(db)}
    roles: Dict[str, Role] = {}

    for entry in ROLE_CATALOG:
        role = db.scalars(select(Role).where(Role.name == entry.name)).first()
        if role is None:
            role = registry.create(
                name=entry.name,
                display_name=entry.display_name,
                description=entry.description,
                color=entry.color,
                is_system=entry.is_system,
            )

        names = permissions.keys() if entry.permissions is None else entry.permissions
        registry.sync_permissions(role, [permissions[name].id for name in names])
        roles[entry.name] = role

    logger.info("roles_seeded", roles=sorted(roles))
    return roles


def seed_super_admin(
    db: Session,
    email: Optional[str] = None,
    password: Optional[str] = None,
    name: Optional[str] = None,
) -> User:
    """
    Create the super administrator, or make sure the existing account
    holds the top-tier role.
    """
    settings = get_settings()
    email = (email or settings.SUPER_ADMIN_EMAIL).lower()

    top_role = db.scalars(select(Role).where(Role.name == settings.TOP_TIER_ROLE)).first()
    if top_role is None:
        top_role = seed_roles(db)[settings.TOP_TIER_ROLE]

    user = db.scalars(select(User).where(User.email == email)).first()
    with transaction(db):
        if user is None:
            user = User(
                name=name or settings.SUPER_ADMIN_NAME,
                email=email,
                hashed_password=AuthService.hash_password(password or settings.SUPER_ADMIN_PASSWORD),
            )
            db.add(user)
            logger.info("super_admin_created", email=email)
        if top_role not in user.roles:
            user.roles.append(top_role)
    return user


def seed_all(db: Session) -> User:
    seed_roles(db)
    return seed_super_admin(db)
