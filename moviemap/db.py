"""
Store abstractions for locations, submissions and moderators.

Each store has a SQLAlchemy-backed implementation (any SQLAlchemy URL; Postgres
in production, SQLite in tests) and an in-memory implementation for local
development and tests.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

from sqlalchemy import Column, Float, Integer, String, create_engine, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from moviemap.errors import NotFound, StoreUnavailable, ValidationError
from moviemap.types import MediaType, SubmissionStatus

logger = logging.getLogger(__name__)

# Descriptive fields shared by locations and submissions, in storage order.
DESCRIPTIVE_FIELDS = (
    "title",
    "type",
    "year",
    "lat",
    "lng",
    "location_name",
    "trailer_url",
    "imdb_link",
)
REQUIRED_FIELDS = ("title", "type", "lat", "lng")


def _check_required(fields: Mapping[str, Any]) -> dict:
    missing = [name for name in REQUIRED_FIELDS if fields.get(name) is None]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details=[{"field": name, "message": "Field required"} for name in missing],
        )
    data = {name: fields.get(name) for name in DESCRIPTIVE_FIELDS}
    try:
        data["type"] = MediaType(data["type"])
    except ValueError as exc:
        raise ValidationError(
            f"Unknown media type: {data['type']!r}",
            details=[{"field": "type", "message": "Must be 'movie' or 'tv'"}],
        ) from exc
    return data


@dataclass
class LocationRecord:
    id: str
    title: str
    type: MediaType
    lat: float
    lng: float
    year: Optional[int] = None
    location_name: Optional[str] = None
    trailer_url: Optional[str] = None
    imdb_link: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())

    def fields(self) -> dict:
        return {name: getattr(self, name) for name in DESCRIPTIVE_FIELDS}

    def as_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class SubmissionRecord:
    id: str
    title: str
    type: MediaType
    lat: float
    lng: float
    year: Optional[int] = None
    location_name: Optional[str] = None
    trailer_url: Optional[str] = None
    imdb_link: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def fields(self) -> dict:
        return {name: getattr(self, name) for name in DESCRIPTIVE_FIELDS}

    def as_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["status"] = self.status.value
        return data


class LocationStore(Protocol):
    """Approved, publicly visible locations."""

    def list_all(self) -> list[LocationRecord]:
        ...

    def create(
        self, fields: Mapping[str, Any], location_id: Optional[str] = None
    ) -> LocationRecord:
        """
        Insert a location. With ``location_id`` the insert is idempotent: an
        existing location with that id is returned unchanged.
        """
        ...

    def get(self, location_id: str) -> LocationRecord:
        ...


class SubmissionStore(Protocol):
    """User-submitted candidate locations and their review status."""

    def create(self, fields: Mapping[str, Any]) -> SubmissionRecord:
        ...

    def list_by_status(self, status: SubmissionStatus) -> list[SubmissionRecord]:
        ...

    def get(self, submission_id: str) -> SubmissionRecord:
        ...

    def set_status(self, submission_id: str, status: SubmissionStatus) -> None:
        ...

    def transition_status(
        self,
        submission_id: str,
        from_status: SubmissionStatus,
        to_status: SubmissionStatus,
    ) -> bool:
        ...


class ModeratorStore(Protocol):
    def is_moderator(self, uid: str) -> bool:
        ...

    def add_moderator(self, uid: str) -> None:
        ...


class InMemoryLocationStore:
    """Simple in-memory location store for development and tests."""

    def __init__(self):
        self.locations: Dict[str, LocationRecord] = {}
        self._lock = threading.Lock()

    def list_all(self) -> list[LocationRecord]:
        with self._lock:
            return [replace(record) for record in self.locations.values()]

    def create(
        self, fields: Mapping[str, Any], location_id: Optional[str] = None
    ) -> LocationRecord:
        record = LocationRecord(
            id=location_id or uuid.uuid4().hex, **_check_required(fields)
        )
        with self._lock:
            record = self.locations.setdefault(record.id, record)
        return replace(record)

    def get(self, location_id: str) -> LocationRecord:
        record = self.locations.get(location_id)
        if record is None:
            raise NotFound(f"Location {location_id} not found")
        return replace(record)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.locations.clear()


class InMemorySubmissionStore:
    """
    In-memory submission store.

    Status writes take a lock scoped to the one record, so the conditional
    transition is a compare-and-set per submission.
    """

    def __init__(self):
        self.submissions: Dict[str, SubmissionRecord] = {}
        self._record_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def create(self, fields: Mapping[str, Any]) -> SubmissionRecord:
        record = SubmissionRecord(
            id=uuid.uuid4().hex,
            status=SubmissionStatus.PENDING,
            **_check_required(fields),
        )
        with self._lock:
            self.submissions[record.id] = record
            self._record_locks[record.id] = threading.Lock()
        return replace(record)

    def list_by_status(self, status: SubmissionStatus) -> list[SubmissionRecord]:
        with self._lock:
            records = list(self.submissions.values())
        # Newest first.
        return [
            replace(record) for record in reversed(records) if record.status == status
        ]

    def _lookup(self, submission_id: str) -> SubmissionRecord:
        record = self.submissions.get(submission_id)
        if record is None:
            raise NotFound(f"Submission {submission_id} not found")
        return record

    def get(self, submission_id: str) -> SubmissionRecord:
        return replace(self._lookup(submission_id))

    def set_status(self, submission_id: str, status: SubmissionStatus) -> None:
        record = self._lookup(submission_id)
        with self._record_locks[submission_id]:
            record.status = status
            record.updated_at = time.time()

    def transition_status(
        self,
        submission_id: str,
        from_status: SubmissionStatus,
        to_status: SubmissionStatus,
    ) -> bool:
        record = self._lookup(submission_id)
        with self._record_locks[submission_id]:
            if record.status != from_status:
                return False
            record.status = to_status
            record.updated_at = time.time()
            return True

    def reset(self) -> None:
        with self._lock:
            self.submissions.clear()
            self._record_locks.clear()


@dataclass
class InMemoryModeratorStore:
    uids: set[str] = field(default_factory=set)

    def is_moderator(self, uid: str) -> bool:
        return uid in self.uids

    def add_moderator(self, uid: str) -> None:
        self.uids.add(uid)


def _engine_options(database_url: str, timeout_seconds: float) -> dict:
    backend = make_url(database_url).get_backend_name()
    options: dict = {"future": True, "pool_pre_ping": True, "pool_recycle": 1800}
    if backend == "sqlite":
        options["connect_args"] = {"timeout": timeout_seconds}
    else:
        options["pool_timeout"] = timeout_seconds
        if backend == "postgresql":
            options["connect_args"] = {
                "connect_timeout": max(1, int(timeout_seconds)),
                "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
            }
    return options


class SqlDatabase:
    """
    SQLAlchemy engine and session factory shared by the SQL stores. Accepts any
    SQLAlchemy URL (e.g., Postgres, or SQLite for tests).
    """

    def __init__(self, database_url: str, timeout_seconds: float = 10.0):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDatabase")
        self.engine = create_engine(
            database_url, **_engine_options(database_url, timeout_seconds)
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Open a session, translating transient driver failures."""
        try:
            with self.Session() as session:
                yield session
        except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
            logger.warning("Store call failed: %s", exc)
            raise StoreUnavailable("The data store is temporarily unavailable") from exc


class SqlLocationStore:
    def __init__(self, database: SqlDatabase):
        self.database = database

    @staticmethod
    def _to_record(row: "LocationRow") -> LocationRecord:
        return LocationRecord(
            id=row.id,
            title=row.title,
            type=MediaType(row.type),
            lat=row.lat,
            lng=row.lng,
            year=row.year,
            location_name=row.location_name,
            trailer_url=row.trailer_url,
            imdb_link=row.imdb_link,
            created_at=row.created_at,
        )

    def list_all(self) -> list[LocationRecord]:
        with self.database.session() as session:
            rows = session.execute(
                select(LocationRow).order_by(LocationRow.created_at.asc())
            ).scalars()
            return [self._to_record(row) for row in rows]

    def create(
        self, fields: Mapping[str, Any], location_id: Optional[str] = None
    ) -> LocationRecord:
        data = _check_required(fields)
        data["type"] = data["type"].value
        with self.database.session() as session:
            if location_id:
                existing = session.get(LocationRow, location_id)
                if existing:
                    return self._to_record(existing)
            row = LocationRow(
                id=location_id or uuid.uuid4().hex, created_at=time.time(), **data
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def get(self, location_id: str) -> LocationRecord:
        with self.database.session() as session:
            row = session.get(LocationRow, location_id)
            if not row:
                raise NotFound(f"Location {location_id} not found")
            return self._to_record(row)


class SqlSubmissionStore:
    def __init__(self, database: SqlDatabase):
        self.database = database

    @staticmethod
    def _to_record(row: "SubmissionRow") -> SubmissionRecord:
        return SubmissionRecord(
            id=row.id,
            title=row.title,
            type=MediaType(row.type),
            lat=row.lat,
            lng=row.lng,
            year=row.year,
            location_name=row.location_name,
            trailer_url=row.trailer_url,
            imdb_link=row.imdb_link,
            status=SubmissionStatus(row.status),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create(self, fields: Mapping[str, Any]) -> SubmissionRecord:
        data = _check_required(fields)
        data["type"] = data["type"].value
        now = time.time()
        with self.database.session() as session:
            row = SubmissionRow(
                id=uuid.uuid4().hex,
                status=SubmissionStatus.PENDING.value,
                created_at=now,
                updated_at=now,
                **data,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def list_by_status(self, status: SubmissionStatus) -> list[SubmissionRecord]:
        with self.database.session() as session:
            rows = session.execute(
                select(SubmissionRow)
                .where(SubmissionRow.status == status.value)
                .order_by(SubmissionRow.created_at.desc())
            ).scalars()
            return [self._to_record(row) for row in rows]

    def get(self, submission_id: str) -> SubmissionRecord:
        with self.database.session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                raise NotFound(f"Submission {submission_id} not found")
            return self._to_record(row)

    def set_status(self, submission_id: str, status: SubmissionStatus) -> None:
        with self.database.session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                raise NotFound(f"Submission {submission_id} not found")
            row.status = status.value
            row.updated_at = time.time()
            session.commit()

    def transition_status(
        self,
        submission_id: str,
        from_status: SubmissionStatus,
        to_status: SubmissionStatus,
    ) -> bool:
        with self.database.session() as session:
            result = session.execute(
                update(SubmissionRow)
                .where(
                    SubmissionRow.id == submission_id,
                    SubmissionRow.status == from_status.value,
                )
                .values(status=to_status.value, updated_at=time.time())
            )
            session.commit()
            if result.rowcount == 1:
                return True
            if session.get(SubmissionRow, submission_id) is None:
                raise NotFound(f"Submission {submission_id} not found")
            return False


class SqlModeratorStore:
    def __init__(self, database: SqlDatabase):
        self.database = database

    def is_moderator(self, uid: str) -> bool:
        with self.database.session() as session:
            return session.get(ModeratorRow, uid) is not None

    def add_moderator(self, uid: str) -> None:
        with self.database.session() as session:
            if session.get(ModeratorRow, uid) is None:
                session.add(
                    ModeratorRow(uid=uid, role="moderator", created_at=time.time())
                )
                session.commit()


Base = declarative_base()


class LocationRow(Base):
    __tablename__ = "locations"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)
    year = Column(Integer, nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    location_name = Column(String, nullable=True)
    trailer_url = Column(String, nullable=True)
    imdb_link = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class SubmissionRow(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)
    year = Column(Integer, nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    location_name = Column(String, nullable=True)
    trailer_url = Column(String, nullable=True)
    imdb_link = Column(String, nullable=True)
    status = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class ModeratorRow(Base):
    __tablename__ = "moderators"

    uid = Column(String, primary_key=True)
    role = Column(String, nullable=False, default="moderator")
    created_at = Column(Float, nullable=False)
