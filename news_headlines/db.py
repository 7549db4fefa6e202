"""Database-backed storage for rewritten headlines."""

from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .cache import DEFAULT_CAPACITY, DEFAULT_TTL_SECONDS, Clock

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class RewriteModel(Base):
    """Cached headline rewrite."""

    __tablename__ = "headline_rewrites"

    original = Column(String, primary_key=True)
    rewritten = Column(Text, nullable=False)
    stored_at = Column(Float, nullable=False, index=True)
    used_at = Column(Float, nullable=False, index=True)


def init_engine(connection_string: Optional[str]) -> Optional[Engine]:
    """Initialize the database engine."""
    if not connection_string:
        return None

    logger.info("Initializing database connection: %s", connection_string)
    engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


class SqlRewriteCache:
    """Rewrite cache persisted through SQLAlchemy.

    Same contract as ``RewriteCache``: entries older than the TTL are
    misses, reads refresh ``used_at`` and the least recently used rows are
    deleted once capacity is exceeded.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        clock: Clock = time.time,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock

    def get(self, original: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.execute(
                select(RewriteModel).where(RewriteModel.original == original)
            ).scalar_one_or_none()
            if row is None:
                return None
            now = self._clock()
            if (now - row.stored_at) >= self.ttl_seconds:
                return None
            rewritten = row.rewritten
            row.used_at = now
            session.commit()
            return rewritten

    def put(self, original: str, rewritten: str) -> None:
        with self._session_factory() as session:
            existing = session.execute(
                select(RewriteModel).where(RewriteModel.original == original)
            ).scalar_one_or_none()
            now = self._clock()
            if existing:
                existing.rewritten = rewritten
                existing.stored_at = now
                existing.used_at = now
            else:
                session.add(
                    RewriteModel(
                        original=original,
                        rewritten=rewritten,
                        stored_at=now,
                        used_at=now,
                    )
                )
            try:
                session.flush()
                self._evict_overflow(session)
                session.commit()
            except IntegrityError:
                # Another writer inserted the same heading first.
                session.rollback()
                logger.debug("Rewrite for %.30s stored concurrently; updating", original)
                self._update(session, original, rewritten, now)
            except Exception:
                session.rollback()
                raise

    def _update(
        self, session: Session, original: str, rewritten: str, now: float
    ) -> None:
        try:
            session.execute(
                update(RewriteModel)
                .where(RewriteModel.original == original)
                .values(rewritten=rewritten, stored_at=now, used_at=now)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise

    def _evict_overflow(self, session: Session) -> None:
        count = session.execute(select(func.count()).select_from(RewriteModel)).scalar_one()
        overflow = count - self.capacity
        if overflow <= 0:
            return
        oldest = (
            session.execute(
                select(RewriteModel.original)
                .order_by(RewriteModel.used_at.asc())
                .limit(overflow)
            )
            .scalars()
            .all()
        )
        session.execute(delete(RewriteModel).where(RewriteModel.original.in_(oldest)))
        logger.debug("Evicted %d cached headline rewrites", len(oldest))

    def purge_expired(self) -> int:
        """Delete stale rows and return how many were removed."""
        cutoff = self._clock() - self.ttl_seconds
        with self._session_factory() as session:
            result = session.execute(
                delete(RewriteModel).where(RewriteModel.stored_at <= cutoff)
            )
            session.commit()
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired headline rewrites", removed)
        return removed

    def clear(self) -> None:
        with self._session_factory() as session:
            session.execute(delete(RewriteModel))
            session.commit()

    def __len__(self) -> int:
        with self._session_factory() as session:
            return session.execute(
                select(func.count()).select_from(RewriteModel)
            ).scalar_one()
