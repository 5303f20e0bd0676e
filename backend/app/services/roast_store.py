"""Append-only record store for committed roasts (SQLAlchemy)."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from app.core.errors import PersistenceFailure
from app.models.roast import Roast
from app.schemas.roast import RoastRecord

logger = logging.getLogger(__name__)

RECENT_ROASTS_LIMIT = 3


class RoastStore:
    """Insert and read roasts. Sync sessions run in the threadpool."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _insert_sync(self, record: RoastRecord) -> None:
        db: Session = self._session_factory()
        try:
            db.add(
                Roast(
                    id=record.id,
                    url=record.url,
                    critique=record.critique.model_dump(mode="json"),
                    image_url=record.imageUrl,
                    visitor_id=record.visitorId,
                    created_at=record.createdAt,
                )
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    async def insert(self, record: RoastRecord) -> None:
        try:
            await run_in_threadpool(self._insert_sync, record)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"insert of roast {record.id} failed: {exc!r}") from exc

    def _query_sync(self, stmt) -> list[RoastRecord]:
        db: Session = self._session_factory()
        try:
            return [RoastRecord.from_row(row) for row in db.execute(stmt).scalars().all()]
        finally:
            db.close()

    async def _query(self, stmt) -> list[RoastRecord]:
        try:
            return await run_in_threadpool(self._query_sync, stmt)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"roast query failed: {exc!r}") from exc

    async def get(self, roast_id: uuid.UUID) -> RoastRecord | None:
        rows = await self._query(select(Roast).where(Roast.id == roast_id))
        return rows[0] if rows else None

    async def recent(self, limit: int = RECENT_ROASTS_LIMIT) -> list[RoastRecord]:
        return await self._query(select(Roast).order_by(desc(Roast.created_at)).limit(limit))

    async def for_visitor(self, visitor_id: uuid.UUID) -> list[RoastRecord]:
        return await self._query(
            select(Roast).where(Roast.visitor_id == visitor_id).order_by(desc(Roast.created_at))
        )

    def _count_sync(self) -> int:
        db: Session = self._session_factory()
        try:
            return db.execute(select(func.count()).select_from(Roast)).scalar_one()
        finally:
            db.close()

    async def count(self) -> int:
        try:
            return await run_in_threadpool(self._count_sync)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"roast count failed: {exc!r}") from exc
