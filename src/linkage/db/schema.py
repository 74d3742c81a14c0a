"""Database schema for the demo blog resources.

Every relation kind is represented:
- authors.profile    one-to-one   (scalar relationship)
- authors.posts      one-to-many  (list relationship)
- posts.category     many-to-one  (category_id foreign key)
- posts.tags         many-to-many (raw tag ids in a JSON list)

Relation tags live in the ``info`` of the attribute holding the relation's
content, so resources can be built with Resource.from_model().
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Author(Base):
    """Post author."""

    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    profile: Mapped["Profile | None"] = relationship(
        back_populates="author",
        uselist=False,
        info={"relation": "resource=profiles;type=one-to-one;field=profile;reference=id"},
    )
    posts: Mapped[list["Post"]] = relationship(
        back_populates="author",
        info={"relation": "resource=posts;type=one-to-many;field=posts;reference=id"},
    )


class Profile(Base):
    """Author profile (at most one per author)."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("authors.id"), nullable=True, unique=True
    )

    author: Mapped["Author | None"] = relationship(back_populates="profile")


class Category(Base):
    """Post category."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)


class Tag(Base):
    """Free-form post tag."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)


class Post(Base):
    """Blog post.

    Tag membership is stored as raw tag ids, never as Tag rows.
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("authors.id"), nullable=True
    )
    category_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id"),
        nullable=True,
        info={
            "relation": "name=category;resource=categories;type=many-to-one;foreign_key=category_id"
        },
    )
    tag_ids: Mapped[list] = mapped_column(
        MutableList.as_mutable(JSON),
        nullable=False,
        default=list,
        info={"relation": "name=tags;resource=tags;type=many-to-many;field=tag_ids"},
    )

    author: Mapped["Author | None"] = relationship(back_populates="posts")
