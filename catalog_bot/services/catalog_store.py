# catalog_bot/services/catalog_store.py

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Sequence

from sqlalchemy import distinct, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import SEARCH_RESULT_LIMIT, logger
from .db_models import Base, CatalogEntry, MediaItem


class StoreQueryError(Exception):
    """Raised when a catalog query or write fails at the database layer."""


@dataclass(frozen=True)
class NewMediaItem:
    url: str
    kind: str
    season: str | None = None
    episode: str | None = None
    resolution: str | None = None
    delivered: bool = False


class CatalogStore:
    """
    Async access to the `pages` / `media` tables.

    Seasons and episodes are compared with NULL folded to the empty string,
    so an item without a season is still addressable from a callback token.
    """

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_all(self) -> None:
        """Create the catalog tables if they do not yet exist."""
        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session scope that turns database failures into StoreQueryError."""
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"[STORE] {operation} failed: {e}")
            raise StoreQueryError(f"{operation} failed") from e

    # --- Browsing queries ---

    async def find_catalog_entries(
        self, substring: str, limit: int = SEARCH_RESULT_LIMIT
    ) -> list[CatalogEntry]:
        """Entries whose name contains `substring` (case-insensitive), by name."""
        statement = (
            select(CatalogEntry)
            .where(CatalogEntry.name.icontains(substring, autoescape=True))
            .order_by(CatalogEntry.name)
            .limit(limit)
        )
        async with self.session("find_catalog_entries") as session:
            result = await session.scalars(statement)
            return list(result.all())

    async def get_entry(self, entry_id: int) -> CatalogEntry | None:
        async with self.session("get_entry") as session:
            return await session.get(CatalogEntry, entry_id)

    async def distinct_seasons(self, entry_id: int) -> list[str]:
        season = func.coalesce(MediaItem.season, "")
        statement = (
            select(distinct(season))
            .where(MediaItem.catalog_entry_id == entry_id)
            .order_by(season)
        )
        async with self.session("distinct_seasons") as session:
            result = await session.scalars(statement)
            return list(result.all())

    async def distinct_episodes(self, entry_id: int, season: str) -> list[str]:
        episode = func.coalesce(MediaItem.episode, "")
        statement = (
            select(distinct(episode))
            .where(
                MediaItem.catalog_entry_id == entry_id,
                func.coalesce(MediaItem.season, "") == season,
            )
            .order_by(episode)
        )
        async with self.session("distinct_episodes") as session:
            result = await session.scalars(statement)
            return list(result.all())

    async def media_for(
        self, entry_id: int, season: str, episode: str
    ) -> list[MediaItem]:
        statement = (
            select(MediaItem)
            .where(
                MediaItem.catalog_entry_id == entry_id,
                func.coalesce(MediaItem.season, "") == season,
                func.coalesce(MediaItem.episode, "") == episode,
            )
            .order_by(MediaItem.id)
        )
        async with self.session("media_for") as session:
            result = await session.scalars(statement)
            return list(result.all())

    async def mark_delivered(self, item_ids: Sequence[int]) -> int:
        """Flags rows as delivered. Purely informational; nothing reads it back."""
        if not item_ids:
            return 0
        statement = (
            update(MediaItem)
            .where(MediaItem.id.in_(list(item_ids)))
            .values(delivered=True)
        )
        async with self.session("mark_delivered") as session:
            result = await session.execute(statement)
            await session.commit()
            return result.rowcount or 0

    # --- Ingestion writes ---

    async def get_or_create_entry(self, name: str) -> CatalogEntry:
        async with self.session("get_or_create_entry") as session:
            existing = await session.scalar(
                select(CatalogEntry).where(CatalogEntry.name == name)
            )
            if existing is not None:
                return existing

            entry = CatalogEntry(name=name)
            session.add(entry)
            try:
                await session.commit()
            except IntegrityError:
                # Another ingestion pass created it first
                await session.rollback()
                return await session.scalar(
                    select(CatalogEntry).where(CatalogEntry.name == name)
                )
            logger.info(f"[STORE] Created catalog entry '{name}' (id={entry.id}).")
            return entry

    async def add_media_items(
        self, entry_id: int, items: Iterable[NewMediaItem]
    ) -> list[int]:
        rows = [
            MediaItem(
                catalog_entry_id=entry_id,
                url=item.url,
                kind=item.kind,
                season=item.season,
                episode=item.episode,
                resolution=item.resolution,
                delivered=item.delivered,
            )
            for item in items
        ]
        if not rows:
            return []
        async with self.session("add_media_items") as session:
            session.add_all(rows)
            await session.commit()
            return [row.id for row in rows]
