"""
Database models for JobTrack.

Uses SQLAlchemy for ORM. SQLite by default, any SQLAlchemy URL via DB_URL.
"""

from datetime import datetime
from typing import Optional, Iterator
import uuid
from sqlalchemy import (
    Column, String, Boolean, Date, DateTime, Text, ForeignKey, Index,
    create_engine
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import relationship, declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from jobtrack.core.config import get_settings
from jobtrack.core.dates import normalize_date
from jobtrack.core.schemas import JobRecord, UserOut


Base = declarative_base()


def generate_uuid():
    """Generate a new UUID string."""
    return str(uuid.uuid4())


# ============================================================================
# User & Authentication
# ============================================================================

class User(Base):
    """User account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), default="")

    # PBKDF2 hash, "<salt_b64>$<hash_b64>"
    password_hash = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=func.now())

    # Relationships
    job_applications = relationship(
        "JobApplication", back_populates="owner", cascade="all, delete-orphan"
    )

    def to_schema(self) -> UserOut:
        return UserOut(
            id=self.id,
            name=self.name or "",
            email=self.email,
            created_at=self.created_at,
        )


# ============================================================================
# Job Applications
# ============================================================================

class JobApplication(Base):
    """One tracked job application, owned by exactly one user."""

    __tablename__ = "job_applications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    # Core info
    position = Column(String(500), nullable=False)
    company = Column(String(255), nullable=False)
    phase = Column(String(255), default="")
    note = Column(Text, default="")

    # Flags
    cl = Column(Boolean, default=False, nullable=False)  # cover letter sent
    status = Column(Boolean, default=True, nullable=False)  # active

    # Only checked at creation; a later edit may clear it
    applied_date = Column(Date)

    # Timestamps (sub-second, list order)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="job_applications")

    __table_args__ = (
        Index("idx_job_applications_owner", "owner_id", "created_at"),
    )

    def to_record(self) -> JobRecord:
        """Convert to the wire schema."""
        return JobRecord(
            id=self.id,
            owner_id=self.owner_id,
            position=self.position,
            company=self.company,
            phase=self.phase or "",
            cl=bool(self.cl),
            status=bool(self.status),
            note=self.note or "",
            applied_date=normalize_date(self.applied_date),
        )


# ============================================================================
# Engine & Sessions
# ============================================================================

def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for the given URL, defaulting to DB_URL.

    In-memory SQLite gets a single shared connection so every session sees
    the same database.
    """
    db_settings = get_settings().database
    url = url or db_settings.url
    echo = db_settings.echo if echo is None else echo

    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    return create_engine(url, **kwargs)


class Database:
    """Owns the engine and hands out sessions."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.engine = create_db_engine(url, echo)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    def create_all(self):
        """Create tables that do not exist yet."""
        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        return self._session_factory()

    def session_scope(self) -> Iterator[Session]:
        """
        Yield a session for one request.

        Commits if the caller finishes cleanly, rolls back otherwise.
        """
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


_database: Optional[Database] = None


def get_database() -> Database:
    """Get the process-wide database, creating tables on first use."""
    global _database
    if _database is None:
        _database = Database()
        _database.create_all()
    return _database


def set_database(database: Optional[Database]):
    """Replace the process-wide database (tests, alternate URLs)."""
    global _database
    _database = database
