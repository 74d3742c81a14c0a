#!/usr/bin/env python3
"""Seed the demo blog database and link its relations.

Usage:
    python scripts/seed_demo.py

This script:
1. Initializes the demo database
2. Seeds authors, profiles, categories, tags and posts (unlinked)
3. Links them through the relation engine, one relation kind at a time

Serve the result with the LINKAGE_DB_PATH environment variable pointing at
the printed database path.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from linkage.core.coordinator import RelationCoordinator  # noqa: E402
from linkage.db.repo import SqlAlchemyRepository  # noqa: E402
from linkage.db.schema import Author, Category, Post, Profile, Tag  # noqa: E402
from linkage.db.session import init_db, session_scope  # noqa: E402
from linkage.models.relation import extract_relations  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"

DEMO_AUTHORS = [(1, "Ada Lovelace"), (2, "Alan Turing")]
DEMO_CATEGORIES = [(1, "essays"), (2, "notes")]
DEMO_TAGS = [(1, "python"), (2, "databases"), (3, "history")]
DEMO_POSTS = [(1, "On Engines"), (2, "Computable Numbers"), (3, "Notes on Notes")]

# (author id, post ids, profile id)
DEMO_AUTHORSHIP = [(1, [1, 3], 1), (2, [2], 2)]
# (post id, category id, tag ids)
DEMO_POST_LINKS = [(1, 1, [1, 3]), (2, 1, [3]), (3, 2, [1, 2])]


def seed_database() -> bool:
    """Insert unlinked demo records.

    Returns:
        False if the database was already seeded.
    """
    with session_scope(DEMO_DB_PATH) as session:
        if session.get(Author, DEMO_AUTHORS[0][0]) is not None:
            print("Demo data already exists")
            return False

        print("Creating authors and profiles...")
        for author_id, name in DEMO_AUTHORS:
            session.add(Author(id=author_id, name=name))
            session.add(Profile(id=author_id, bio=f"{name} writes here."))

        print("Creating categories and tags...")
        session.add_all(Category(id=cid, name=name) for cid, name in DEMO_CATEGORIES)
        session.add_all(Tag(id=tid, name=name) for tid, name in DEMO_TAGS)

        print("Creating posts...")
        session.add_all(Post(id=pid, title=title, tag_ids=[]) for pid, title in DEMO_POSTS)

        return True


def link_relations() -> None:
    """Link the seeded records through attach actions."""
    with session_scope(DEMO_DB_PATH) as session:
        repositories = {
            "authors": SqlAlchemyRepository(session, Author, "authors"),
            "profiles": SqlAlchemyRepository(session, Profile, "profiles"),
            "posts": SqlAlchemyRepository(session, Post, "posts"),
            "categories": SqlAlchemyRepository(session, Category, "categories"),
            "tags": SqlAlchemyRepository(session, Tag, "tags"),
        }
        authors = RelationCoordinator(
            extract_relations(Author), repositories["authors"], related=repositories.get
        )
        posts = RelationCoordinator(
            extract_relations(Post), repositories["posts"], related=repositories.get
        )

        for author_id, post_ids, profile_id in DEMO_AUTHORSHIP:
            print(f"  {authors.attach(str(author_id), 'profile', [profile_id]).message}")
            print(f"  {authors.attach(str(author_id), 'posts', post_ids).message}")

        for post_id, category_id, tag_ids in DEMO_POST_LINKS:
            print(f"  {posts.attach(str(post_id), 'category', [category_id]).message}")
            print(f"  {posts.attach(str(post_id), 'tags', tag_ids).message}")


def main() -> int:
    """Main entry point."""
    print("=" * 60)
    print("Linkage Demo Seeding Script")
    print("=" * 60)

    print("\n[1/2] Seeding database...")
    init_db(DEMO_DB_PATH)
    if not seed_database():
        return 0
    print("Database seeded successfully!")

    print("\n[2/2] Linking relations...")
    link_relations()

    print("\n" + "=" * 60)
    print("Demo seeding complete!")
    print(f"Database: {DEMO_DB_PATH}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
