"""
SQLAlchemy database models for the Student Tracker.

PostgreSQL (Neon) holds:
- Students and their contact details
- Monthly fee payments
- Test scores with a store-computed percentage
- Logged assistant conversations
- User-scoped application settings

Unstructured student notes live in Qdrant, not here.
"""
from contextlib import contextmanager
from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterator, Optional
from sqlalchemy import (
    create_engine,
    event,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Numeric,
    ForeignKey,
    Index,
    Computed,
    JSON,
    func,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import (
    DeclarativeBase,
    relationship,
    sessionmaker,
    Mapped,
    mapped_column,
)
from sqlalchemy.pool import NullPool
from sqlalchemy.dialects.postgresql import JSONB


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class TestType(str, Enum):
    QUIZ = "quiz"
    MIDTERM = "midterm"
    FINAL = "final"
    ASSIGNMENT = "assignment"
    PROJECT = "project"

    __test__ = False  # not a pytest class


class QueryType(str, Enum):
    TEXT = "text"
    AUDIO = "audio"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Student(Base):
    """
    A tracked student.

    Payments and tests reference the student and are removed with it.
    """
    __tablename__ = "students"

    student_id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_name: Mapped[Optional[str]] = mapped_column("class", String(100))
    # phone, email, parent_name, address, ...
    contact_info: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )
    tests: Mapped[list["Test"]] = relationship(
        "Test", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_students_name", "name"),
        Index("idx_students_class", "class"),
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.student_id}, name='{self.name}')>"


class Payment(Base):
    """A monthly fee payment for one student."""
    __tablename__ = "payments"

    payment_id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="CASCADE")
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    month: Mapped[Optional[int]] = mapped_column(Integer)  # 1-12
    year: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(
        String(50), default=PaymentStatus.PENDING.value, server_default=PaymentStatus.PENDING.value
    )
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    payment_method: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    student: Mapped["Student"] = relationship("Student", back_populates="payments")

    __table_args__ = (
        Index("idx_payments_student_id", "student_id"),
        Index("idx_payments_status", "status"),
        Index("idx_payments_month_year", "month", "year"),
    )


class Test(Base):
    """
    A test score.

    `percentage` is a stored generated column: the database derives it from
    score and total_marks on every write, so it cannot be set directly.
    """
    __tablename__ = "tests"
    __test__ = False  # not a pytest class

    test_id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="CASCADE")
    )
    subject: Mapped[Optional[str]] = mapped_column(String(100))
    score: Mapped[Optional[int]] = mapped_column(Integer)
    total_marks: Mapped[Optional[int]] = mapped_column(Integer)
    percentage: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        Computed(
            "CASE WHEN total_marks > 0 THEN score * 100.0 / total_marks ELSE 0 END",
            persisted=True,
        ),
    )
    date: Mapped[Optional[date_type]] = mapped_column(Date)
    test_type: Mapped[str] = mapped_column(
        String(50), default=TestType.QUIZ.value, server_default=TestType.QUIZ.value
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    student: Mapped["Student"] = relationship("Student", back_populates="tests")

    __table_args__ = (
        Index("idx_tests_student_id", "student_id"),
        Index("idx_tests_subject", "subject"),
        Index("idx_tests_date", "date"),
    )


class Conversation(Base):
    """A logged assistant query and its response."""
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(255))
    query: Mapped[Optional[str]] = mapped_column(Text)
    response: Mapped[Optional[str]] = mapped_column(Text)
    audio_file_path: Mapped[Optional[str]] = mapped_column(String(500))
    query_type: Mapped[str] = mapped_column(
        String(20), default=QueryType.TEXT.value, server_default=QueryType.TEXT.value
    )
    processing_time: Mapped[Optional[int]] = mapped_column(Integer)  # milliseconds
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_conversations_user_id", "user_id"),
        Index("idx_conversations_created_at", "created_at"),
    )


class AppConfigEntry(Base):
    """User-scoped persisted setting (key/value)."""
    __tablename__ = "app_config"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(255))
    config_key: Mapped[Optional[str]] = mapped_column(String(100))
    config_value: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_app_config_user_key", "user_id", "config_key"),
    )

    def __repr__(self) -> str:
        return f"<AppConfigEntry(user='{self.user_id}', key='{self.config_key}')>"


# =============================================================================
# Engine helpers
# =============================================================================

def normalize_database_url(url: str) -> str:
    """Convert a libpq-style Postgres URL to the psycopg 3 SQLAlchemy URL."""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store_engine(connection_string: str) -> Engine:
    """
    Create an unpooled engine for a single request.

    Every setup call connects with credentials supplied at call time, so
    nothing is cached between calls.

    Raises:
        InvalidConfigurationError: if the connection string cannot be parsed
    """
    from src.services.errors import InvalidConfigurationError

    try:
        engine = create_engine(make_url(normalize_database_url(connection_string)), poolclass=NullPool)
    except (ArgumentError, ValueError) as e:
        raise InvalidConfigurationError("Invalid database connection string", str(e)) from e

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@contextmanager
def open_engine(connection_string: str) -> Iterator[Engine]:
    """Yield an engine for `connection_string` and always dispose it."""
    engine = create_store_engine(connection_string)
    try:
        yield engine
    finally:
        engine.dispose()


def get_session_factory(engine: Engine):
    """Create a session factory bound to `engine`."""
    return sessionmaker(bind=engine, expire_on_commit=False)
