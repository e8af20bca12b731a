"""One-time promotion of the organiser account to role=admin.

Admin capability is read from profiles.role only. This script is the single
place where the configured ADMIN_EMAIL turns into that role.

Usage:
    python -m scripts.seed_admin [email]
"""
from __future__ import annotations

import sys

from app import app
from extensions import db
from models.profile import Profile, ROLE_ADMIN


def seed_admin(email: str) -> bool:
    email = (email or "").strip().lower()
    if not email:
        print("No admin email given (argument or ADMIN_EMAIL).")
        return False

    profile = Profile.query.filter_by(email=email).first()
    if profile is None:
        print(f"No profile for {email}. Register the account first.")
        return False

    if profile.role == ROLE_ADMIN:
        print(f"{email} is already admin")
        return True

    profile.role = ROLE_ADMIN
    db.session.commit()
    print(f"{email} promoted to admin")
    return True


if __name__ == "__main__":
    with app.app_context():
        target = sys.argv[1] if len(sys.argv) > 1 else app.config["ADMIN_EMAIL"]
        ok = seed_admin(target)
    sys.exit(0 if ok else 1)
