"""SQLAlchemy database schema for ContextFlow."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)

from contextflow.models.insight import InsightType
from contextflow.models.note import NoteType, Priority


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class NoteRecord(Base):
    """Database record for a note."""

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    note_type: Mapped[str] = mapped_column(
        Enum(NoteType), default=NoteType.CUSTOM, nullable=False
    )
    priority: Mapped[str] = mapped_column(
        Enum(Priority), default=Priority.MEDIUM, nullable=False
    )
    connections: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON array
    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON object

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    __table_args__ = (
        Index("idx_notes_owner", "owner_id"),
        Index("idx_notes_owner_updated", "owner_id", "updated_at"),
    )


class InsightRecord(Base):
    """Database record for an insight.

    ``note_id`` is not a foreign key; insights outlive the note that
    produced them.
    """

    __tablename__ = "insights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    note_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    insight_type: Mapped[str] = mapped_column(
        Enum(InsightType), default=InsightType.ANALYSIS, nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    actionable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )

    __table_args__ = (
        Index("idx_insights_owner_created", "owner_id", "created_at"),
    )


def get_engine(database_url: str):
    """Create database engine."""
    return create_engine(database_url, echo=False)


def get_session_factory(engine) -> sessionmaker[Session]:
    """Create session factory."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_database(database_url: str) -> sessionmaker[Session]:
    """Initialize database and return session factory."""
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    return get_session_factory(engine)
