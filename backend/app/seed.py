#!/usr/bin/env python3
"""
Seed the database with one account per role and a few starter categories.

Safe to run repeatedly: existing users (by email) and categories (by slug)
are left untouched.

Usage: python -m app.seed
"""

import logging
import os
from sqlalchemy.orm import Session

from app.core.database import Base, SessionLocal, engine
from app.core.security import hash_password
from app.models.category import Category
from app.models.user import Role, User
from app.services.slugs import derive_slug

logger = logging.getLogger(__name__)

SEED_PASSWORD_ENV = "SEED_PASSWORD"

SEED_USERS = [
    {"name": "Site Admin", "email": "admin@newsdesk.example.com", "role": Role.ADMIN},
    {"name": "Managing Editor", "email": "editor@newsdesk.example.com", "role": Role.EDITOR},
    {"name": "Staff Reporter", "email": "reporter@newsdesk.example.com", "role": Role.REPORTER},
    {"name": "Reader", "email": "reader@newsdesk.example.com", "role": Role.USER},
]

SEED_CATEGORIES = [
    {"name": "World", "description": "International news"},
    {"name": "Technology", "description": "Tech news and updates"},
    {"name": "Science", "description": "Research and discoveries"},
    {"name": "Opinion", "description": "Columns and editorials"},
]


def seed(db: Session, password: str = None) -> dict:
    """
    Insert missing seed users and categories.

    Returns:
        dict with the number of users and categories created
    """
    password = password or os.getenv(SEED_PASSWORD_ENV, "change-me-now")

    created_users = 0
    for entry in SEED_USERS:
        if db.query(User.id).filter(User.email == entry["email"]).first():
            continue
        db.add(
            User(
                name=entry["name"],
                email=entry["email"],
                role=entry["role"],
                password_hash=hash_password(password),
                is_active=True,
            )
        )
        created_users += 1

    created_categories = 0
    for entry in SEED_CATEGORIES:
        slug = derive_slug(entry["name"])
        if db.query(Category.id).filter(Category.slug == slug).first():
            continue
        db.add(Category(name=entry["name"], slug=slug, description=entry["description"]))
        created_categories += 1

    db.commit()
    logger.info(f"Seeded {created_users} users and {created_categories} categories")
    return {"users": created_users, "categories": created_categories}


def main():
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = seed(db)
    finally:
        db.close()
    print(f"✅ Created {result['users']} users and {result['categories']} categories")


if __name__ == "__main__":
    main()
