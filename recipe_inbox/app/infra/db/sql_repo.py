from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Engine,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, IntegrityError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from recipe_inbox.app.domain.errors import ConstraintViolation, StoreUnavailable
from recipe_inbox.app.domain.models import NewSubmission, Submission, SubmissionStatus
from recipe_inbox.app.infra.db.base import TABLE_NAME, SubmissionRepository

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class SubmissionRow(Base):
    __tablename__ = TABLE_NAME
    __table_args__ = (
        UniqueConstraint("slug", name=f"uq_{TABLE_NAME}_slug"),
        UniqueConstraint("content_hash", name=f"uq_{TABLE_NAME}_content_hash"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=SubmissionStatus.PENDING.value,
        server_default=SubmissionStatus.PENDING.value,
        index=True,
    )
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    # both stamps come from the database clock at write time
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


def _row_to_submission(row: SubmissionRow) -> Submission:
    return Submission(
        id=row.id,
        slug=row.slug,
        title=row.title,
        payload=dict(row.payload or {}),
        status=SubmissionStatus(row.status),
        content_hash=row.content_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _constraint_violation(error: IntegrityError, submission: NewSubmission) -> ConstraintViolation:
    # SQLite: "UNIQUE constraint failed: recipes_inbox.slug"
    # Postgres: 'duplicate key value violates unique constraint "uq_recipes_inbox_slug"'
    message = str(error.orig)
    if "content_hash" in message:
        return ConstraintViolation("content_hash", submission.content_hash)
    if "slug" in message:
        return ConstraintViolation("slug", submission.slug)
    return ConstraintViolation("unknown", message)


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except OperationalError as error:
        # e.g. "database is locked" on a busy SQLite file
        logger.error("Submission store failed during %s: %s", action, error.orig)
        raise StoreUnavailable("Submission store is unavailable") from error


def create_sql_engine(database_url: str) -> Engine:
    if not database_url:
        raise StoreUnavailable("DATABASE_URL is not configured")

    try:
        url = make_url(database_url)
    except ArgumentError as error:
        raise StoreUnavailable(f"Invalid DATABASE_URL: {error}") from error

    kwargs: dict[str, Any] = {}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # one shared connection, otherwise every session sees its own empty database
            kwargs["poolclass"] = StaticPool

    return create_engine(url, **kwargs)


class SqlSubmissionRepository(SubmissionRepository):
    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("SqlSubmissionRepository initialized: backend=%s", engine.url.get_backend_name())

    @classmethod
    def from_url(cls, database_url: str) -> "SqlSubmissionRepository":
        return cls(create_sql_engine(database_url))

    def ensure_schema(self) -> None:
        with _store_errors("ensure_schema"):
            Base.metadata.create_all(self._engine, checkfirst=True)

    def exists_by_slug(self, slug: str) -> bool:
        stmt = select(SubmissionRow.id).where(SubmissionRow.slug == slug).limit(1)
        with _store_errors("exists_by_slug"), self._session_factory() as session:
            return session.scalar(stmt) is not None

    def find_by_content_hash(self, content_hash: str) -> Optional[Submission]:
        stmt = select(SubmissionRow).where(SubmissionRow.content_hash == content_hash).limit(1)
        with _store_errors("find_by_content_hash"), self._session_factory() as session:
            row = session.scalar(stmt)
            return _row_to_submission(row) if row is not None else None

    def insert(self, submission: NewSubmission) -> Submission:
        row = SubmissionRow(
            slug=submission.slug,
            title=submission.title,
            payload=submission.payload,
            status=submission.status.value,
            content_hash=submission.content_hash,
        )

        try:
            with _store_errors("insert"), self._session_factory.begin() as session:
                session.add(row)
                session.flush()
                # loads the server-assigned timestamps
                session.refresh(row)
                stored = _row_to_submission(row)
        except IntegrityError as error:
            violation = _constraint_violation(error, submission)
            logger.warning("Insert rejected: field=%s, slug=%s", violation.field, submission.slug)
            raise violation from error

        logger.info("Inserted submission: id=%s, slug=%s", stored.id, stored.slug)
        return stored

    def list_by_status(self, status: Optional[SubmissionStatus]) -> list[Submission]:
        stmt = select(SubmissionRow)
        if status is not None:
            stmt = stmt.where(SubmissionRow.status == status.value)
        stmt = stmt.order_by(SubmissionRow.created_at.desc(), SubmissionRow.id.desc())

        with _store_errors("list_by_status"), self._session_factory() as session:
            return [_row_to_submission(row) for row in session.scalars(stmt)]

    def update_status(self, slug: str, new_status: SubmissionStatus) -> bool:
        stmt = (
            update(SubmissionRow)
            .where(SubmissionRow.slug == slug, SubmissionRow.status != new_status.value)
            .values(status=new_status.value, updated_at=func.now())
        )
        with _store_errors("update_status"), self._session_factory.begin() as session:
            result = session.execute(stmt)
            return result.rowcount > 0

    def delete_by_slug(self, slug: str, status: Optional[SubmissionStatus] = None) -> bool:
        stmt = delete(SubmissionRow).where(SubmissionRow.slug == slug)
        if status is not None:
            stmt = stmt.where(SubmissionRow.status == status.value)
        with _store_errors("delete_by_slug"), self._session_factory.begin() as session:
            result = session.execute(stmt)
            return result.rowcount > 0

    def delete_all(self) -> int:
        with _store_errors("delete_all"), self._session_factory.begin() as session:
            result = session.execute(delete(SubmissionRow))
            return result.rowcount or 0

    def count(self) -> int:
        stmt = select(func.count()).select_from(SubmissionRow)
        with _store_errors("count"), self._session_factory() as session:
            return int(session.scalar(stmt) or 0)
