"""SQLAlchemy ORM models for the media catalog."""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, MetaData, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    metadata = MetaData()


class CatalogEntry(Base):
    """A named unit of content (usually a show) owning media items."""

    __tablename__ = "pages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)

    media: Mapped[list["MediaItem"]] = relationship(
        back_populates="entry", cascade="all, delete-orphan"
    )


class MediaItem(Base):
    """One deliverable image or video, tagged with optional episode metadata."""

    __tablename__ = "media"
    __table_args__ = (
        CheckConstraint("type IN ('image', 'video')", name="ck_media_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    catalog_entry_id: Mapped[int] = mapped_column(
        "page_id", Integer, ForeignKey("pages.id", ondelete="CASCADE"), index=True
    )
    url: Mapped[str] = mapped_column(Text)
    kind: Mapped[str] = mapped_column("type", String(16))
    season: Mapped[str | None] = mapped_column(String(64), nullable=True)
    episode: Mapped[str | None] = mapped_column(String(64), nullable=True)
    resolution: Mapped[str | None] = mapped_column(String(32), nullable=True)
    delivered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    entry: Mapped[CatalogEntry] = relationship(back_populates="media")
