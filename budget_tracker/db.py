"""Database setup helpers: table creation, seed data and the household user."""

from __future__ import annotations

from typing import Iterable

from flask import g

from .config import CategorySeed
from .log import get_logger
from .models import Category, User, db

log = get_logger(__name__)

HOUSEHOLD_EMAIL = "household@budget.local"


def seed_categories(seeds: Iterable[CategorySeed]) -> int:
    """Insert seed categories that are not present yet. Returns how many."""
    existing = {name for (name,) in db.session.execute(db.select(Category.name))}
    added = 0
    for seed in seeds:
        if seed.name in existing:
            continue
        db.session.add(
            Category(
                name=seed.name,
                is_income=seed.is_income,
                description=seed.description,
                color=seed.color,
                icon=seed.icon,
            )
        )
        existing.add(seed.name)
        added += 1
    return added


def ensure_household_user() -> User:
    user = db.session.execute(db.select(User).order_by(User.id)).scalars().first()
    if user is None:
        user = User(email=HOUSEHOLD_EMAIL, full_name="Household", role="admin")
        db.session.add(user)
        db.session.flush()
    return user


def init_db(seeds: Iterable[CategorySeed]) -> None:
    db.create_all()
    added = seed_categories(seeds)
    ensure_household_user()
    db.session.commit()
    if added:
        log.info("categories_seeded", count=added)


def load_current_user() -> None:
    """``before_request`` hook; sign-in is not part of this app."""
    g.user = ensure_household_user()
