"""
Record Store
============

SQLAlchemy-backed store for the four SSI collections.

Every public method runs in its own session and returns plain dicts
(the API rendering of the row), so callers never hold live ORM objects.
Database failures surface as StoreError; unique constraint violations as
ConflictError.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import create_engine, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .db_models import Base, utcnow
from .errors import ConflictError, SSIError, StoreError
from .logger import get_logger

logger = get_logger("store")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class RecordStore:
    """
    Owns the engine and session factory

    Created once per process; the engine and session factory are safe to
    share between request threads.
    """

    def __init__(self, database_url: str, echo: bool = False):
        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(database_url):
                # One shared connection, otherwise each session sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        self.database_url = database_url
        self.engine = create_engine(database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self):
        """Create all tables."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Store initialization failed: {e}") from e

    def dispose(self):
        self.engine.dispose()

    # ==================== SESSIONS ====================

    @contextmanager
    def session_scope(self):
        """Transactional scope: commit on success, roll back on any error"""
        session: Session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.warning(f"Constraint violated: {e.orig}")
            raise ConflictError("Record already exists") from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store operation failed: {e}")
            raise StoreError(f"Store operation failed: {e}") from e
        except SSIError:
            session.rollback()
            raise
        finally:
            session.close()

    # ==================== WRITES ====================

    def insert(self, record) -> Dict[str, Any]:
        """Insert one ORM record and return its rendering (with the assigned id)"""
        with self.session_scope() as session:
            session.add(record)
            session.flush()
            return record.to_dict()

    def update_by_id(
        self,
        model: Type,
        record_id: str,
        values: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> int:
        """
        Update a single record, optionally only while it has expected_status

        Returns:
            Number of rows changed (0 or 1)
        """
        with self.session_scope() as session:
            return self.update_in_session(session, model, record_id, values, expected_status)

    def transition(self, model: Type, record_id: str, source: str, target: str) -> Optional[str]:
        """
        Move a record from status source to target

        Returns:
            None if the record does not exist, otherwise the status the record
            had before the call (equal to source when the move happened)
        """
        with self.session_scope() as session:
            if self.update_in_session(session, model, record_id, {"status": target}, expected_status=source):
                return source
            current = session.execute(
                select(model.status).where(model.id == record_id)
            ).scalar_one_or_none()
            return current

    @staticmethod
    def update_in_session(session: Session, model: Type, record_id: str, values: Dict[str, Any],
                          expected_status: Optional[str] = None) -> int:
        stmt = update(model).where(model.id == record_id)
        if expected_status is not None:
            stmt = stmt.where(model.status == expected_status)
        if hasattr(model, "updated_at"):
            values = {**values, "updated_at": utcnow()}
        result = session.execute(stmt.values(**values))
        return result.rowcount

    # ==================== READS ====================

    def find_one(self, model: Type, **filters) -> Optional[Dict[str, Any]]:
        with self.session_scope() as session:
            record = session.execute(
                select(model).filter_by(**filters).limit(1)
            ).scalars().first()
            return record.to_dict() if record else None

    def exists(self, model: Type, **filters) -> bool:
        return self.find_one(model, **filters) is not None

    def list_recent(self, model: Type, limit: int = 50) -> List[Dict[str, Any]]:
        """Newest first by creation time"""
        with self.session_scope() as session:
            records = session.execute(
                select(model).order_by(model.created_at.desc(), model.id.desc()).limit(limit)
            ).scalars().all()
            return [r.to_dict() for r in records]

    def count_by_status(self, model: Type) -> Dict[str, int]:
        with self.session_scope() as session:
            rows = session.execute(
                select(model.status, func.count()).group_by(model.status)
            ).all()
            return {status: count for status, count in rows}
