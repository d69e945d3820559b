"""
Seeder Tests
============

First-run provisioning is idempotent and leaves the catalog in the
documented shape.
"""

import pytest
from sqlalchemy import func, select

from portal.core.permissions import PERMISSION_NAMES
from portal.db.seeds.catalog import ROLE_CATALOG
from portal.db.seeds.seeder import seed_all, seed_permissions, seed_roles, seed_super_admin
from portal.models.permission import Permission
from portal.models.role import Role
from portal.models.tier import Tier
from portal.services.auth_service import AuthService


pytestmark = pytest.mark.integration


class TestSeedPermissions:

    def test_catalog_seeded(self, db_session):
        # Act
        permissions = seed_permissions(db_session)

        # Assert
        assert {p.name for p in permissions} == set(PERMISSION_NAMES)

    def test_idempotent(self, db_session):
        # Act
        seed_permissions(db_session)
        seed_permissions(db_session)

        # Assert
        count = db_session.scalar(select(func.count()).select_from(Permission))
        assert count == len(PERMISSION_NAMES)


class TestSeedRoles:

    def test_default_roles(self, db_session):
        # Act
        roles = seed_roles(db_session)

        # Assert
        assert set(roles) == {spec.name for spec in ROLE_CATALOG}
        assert roles["super_admin"].is_system is True
        assert roles["super_admin"].tier is Tier.TOP
        assert roles["admin"].tier is Tier.ELEVATED
        assert roles["viewer"].tier is Tier.STANDARD

    def test_super_admin_gets_everything(self, db_session):
        roles = seed_roles(db_session)
        assert roles["super_admin"].permission_names == set(PERMISSION_NAMES)

    @pytest.mark.parametrize("spec", [s for s in ROLE_CATALOG if s.permissions is not None], ids=lambda s: s.name)
    def test_role_permissions_match_catalog(self, db_session, spec):
        roles = seed_roles(db_session)
        assert roles[spec.name].permission_names == set(spec.permissions)

    def test_reseed_restores_drifted_permissions(self, db_session):
        # Arrange
        roles = seed_roles(db_session)
        roles["viewer"].permissions = []
        db_session.commit()

        # Act
        roles = seed_roles(db_session)

        # Assert
        assert roles["viewer"].permission_names == {"analytics.view", "data.view", "terms.view"}
        assert db_session.scalar(select(func.count()).select_from(Role)) == len(ROLE_CATALOG)


class TestSeedSuperAdmin:

    def test_creates_account(self, db_session):
        # Act
        user = seed_super_admin(db_session, email="Root@Example.com", password="RootPassword123!", name="Root")

        # Assert
        assert user.email == "root@example.com"
        assert [r.name for r in user.roles] == ["super_admin"]
        assert AuthService.verify_password("RootPassword123!", user.hashed_password)

    def test_existing_account_gets_role_once(self, db_session):
        # Act
        first = seed_super_admin(db_session, email="root@example.com", password="RootPassword123!")
        second = seed_super_admin(db_session, email="root@example.com", password="Ignored123456!")

        # Assert
        assert first.id == second.id
        assert [r.name for r in second.roles] == ["super_admin"]
        assert AuthService.verify_password("RootPassword123!", second.hashed_password)

    def test_seed_all(self, db_session):
        user = seed_all(db_session)
        assert user.roles[0].name == "super_admin"
