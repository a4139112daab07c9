"""
Seed an empty database with the default roles, an admin account and sample facilities.

Usage:
  python scripts/seed_data.py [--with-cleaners]

This script is idempotent: roles and users are matched by name/username,
and sample facilities are only created when the facilities table is empty.
"""

import argparse
import os
from datetime import datetime, timezone

from facilityops.db import SessionLocal, Base, engine
from facilityops.models.models import Facility, Role, User
from facilityops.auth.security import get_password_hash
from facilityops.services.permissions import ROLE_ADMIN, ROLE_CLEANER, ROLE_MANAGER


SAMPLE_FACILITIES = [
    ("M. Rose Bush", "Location 1", "Facility 1"),
    ("G. Araakuri", "Location 2", "Facility 2"),
    ("M. Kashmeeru Wadhee", "Location 3", "Facility 3"),
    ("M. Dhumbuge", "Location 4", "Facility 4"),
    ("G. Gaakoshi", "Location 5", "Facility 5"),
]


def ensure_role(session, name: str, description: str = "") -> Role:
    role = session.query(Role).filter(Role.name == name).first()
    if role:
        if description and role.description != description:
            role.description = description
        return role
    role = Role(name=name, description=description or name)
    session.add(role)
    session.flush()
    return role


def ensure_user(session, username: str, email: str, password: str, roles: list[str]) -> User:
    user = session.query(User).filter((User.username == username) | (User.email == email)).first()
    if user is None:
        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            is_active=True,
            created_at=datetime.now(timezone.utc),
        )
        session.add(user)
        session.flush()
    user.roles = session.query(Role).filter(Role.name.in_(roles)).all()
    session.flush()
    return user


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--with-cleaners", action="store_true", help="Also create two cleaners linked to every facility")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        ensure_role(session, ROLE_ADMIN, "Full access")
        ensure_role(session, ROLE_MANAGER, "Schedules cleaning and manages facilities")
        ensure_role(session, ROLE_CLEANER, "Cleaning staff, eligible for rotation")

        admin_password = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
        ensure_user(session, "admin", "admin@facilities.com", admin_password, [ROLE_ADMIN])

        if session.query(Facility).count() == 0:
            for name, location, description in SAMPLE_FACILITIES:
                session.add(Facility(name=name, location=location, description=description))
            session.flush()
            print(f"Created {len(SAMPLE_FACILITIES)} sample facilities")

        if args.with_cleaners:
            cleaners = [
                ensure_user(session, f"cleaner{n}", f"cleaner{n}@facilities.com", "cleaner123", [ROLE_CLEANER])
                for n in (1, 2)
            ]
            for facility in session.query(Facility).all():
                for cleaner in cleaners:
                    if cleaner not in facility.staff:
                        facility.staff.append(cleaner)

        session.commit()
        print("Seed completed: roles, admin and facilities upserted.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
