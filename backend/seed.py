"""
Database Seed Entry Point
=========================

Provision the permission catalog, the default roles and the super
administrator. Safe to run repeatedly.

Usage:
    python seed.py                       # everything
    python seed.py --only permissions    # just the catalog
    python seed.py --email root@example.com --password 'S3cure!pass'
"""

import argparse


def main():
    from portal.core.logging import configure_logging
    from portal.db.seeds.seeder import seed_permissions, seed_roles, seed_super_admin
    from portal.db.session import SessionLocal

    parser = argparse.ArgumentParser(description="Seed access-control data")
    parser.add_argument(
        "--only",
        choices=["permissions", "roles", "super-admin"],
        help="Run a single step (default: all)",
    )
    parser.add_argument("--email", help="Super admin email (default: SUPER_ADMIN_EMAIL)")
    parser.add_argument("--password", help="Super admin password (default: SUPER_ADMIN_PASSWORD)")
    parser.add_argument("--name", help="Super admin display name")
    args = parser.parse_args()

    configure_logging()

    db = SessionLocal()
    try:
        if args.only == "permissions":
            permissions = seed_permissions(db)
            print(f"Permissions: {len(permissions)}")
        elif args.only == "roles":
            roles = seed_roles(db)
            print(f"Roles: {', '.join(sorted(roles))}")
        else:
            if args.only is None:
                roles = seed_roles(db)
                print(f"Roles: {', '.join(sorted(roles))}")
            user = seed_super_admin(db, email=args.email, password=args.password, name=args.name)
            print(f"Super admin: {user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
