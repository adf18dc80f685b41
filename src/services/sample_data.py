"""
Sample data seeding for demos and testing.

Generators are pure functions of the existing student ids, the current time
and a random source, so they can be exercised without a database. The
loader runs one generator against the store: every row is inserted with its
own statement, and the whole batch shares one transaction, so a failure
leaves nothing behind.
"""
import logging
import math
import random
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Table, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from src.models.database import (
    Student, Payment, Test, Conversation,
    PaymentStatus, TestType, QueryType,
    open_engine,
)
from src.services.errors import PrerequisiteMissingError, StoreError, driver_message

logger = logging.getLogger(__name__)

NO_STUDENTS_MESSAGE = "No students found. Please load sample students first."

# =============================================================================
# Catalogs
# =============================================================================

SAMPLE_STUDENTS = [
    ("Alice Johnson", "Grade 10A", "+1-555-0101", "alice.johnson@email.com", "Robert Johnson", "123 Oak Street, Springfield"),
    ("Bob Smith", "Grade 10A", "+1-555-0102", "bob.smith@email.com", "Mary Smith", "456 Pine Avenue, Springfield"),
    ("Carol Davis", "Grade 10B", "+1-555-0103", "carol.davis@email.com", "James Davis", "789 Maple Drive, Springfield"),
    ("David Wilson", "Grade 10B", "+1-555-0104", "david.wilson@email.com", "Linda Wilson", "321 Elm Street, Springfield"),
    ("Emma Brown", "Grade 11A", "+1-555-0105", "emma.brown@email.com", "Michael Brown", "654 Cedar Lane, Springfield"),
    ("Frank Miller", "Grade 11A", "+1-555-0106", "frank.miller@email.com", "Susan Miller", "987 Birch Road, Springfield"),
    ("Grace Taylor", "Grade 11B", "+1-555-0107", "grace.taylor@email.com", "David Taylor", "147 Spruce Street, Springfield"),
    ("Henry Anderson", "Grade 11B", "+1-555-0108", "henry.anderson@email.com", "Jennifer Anderson", "258 Willow Avenue, Springfield"),
    ("Ivy Thomas", "Grade 12A", "+1-555-0109", "ivy.thomas@email.com", "Christopher Thomas", "369 Poplar Drive, Springfield"),
    ("Jack Garcia", "Grade 12A", "+1-555-0110", "jack.garcia@email.com", "Maria Garcia", "741 Ash Street, Springfield"),
]

PAYMENT_METHODS = ["cash", "bank_transfer", "credit_card", "check"]
PAYMENT_STATUSES = [PaymentStatus.PAID, PaymentStatus.PENDING, PaymentStatus.OVERDUE]
PAYMENT_MONTHS = 6
PAYMENT_PROBABILITY = 0.8

SUBJECTS = ["Mathematics", "English", "Science", "History", "Geography", "Physics", "Chemistry", "Biology"]
TEST_TYPES = list(TestType)
TEST_WINDOW_DAYS = 90

NOTE_USER_ID = "teacher_demo"
NOTE_WINDOW_DAYS = 30

SAMPLE_CONVERSATIONS = [
    (
        "How is Alice performing in Mathematics?",
        "Based on recent test scores, the student is performing well in Mathematics with an average of 85%. "
        "Recommend continued practice with advanced problems.",
    ),
    (
        "What are Bob's strengths and weaknesses?",
        "The student shows strong analytical skills but needs improvement in written communication. "
        "Consider additional writing exercises.",
    ),
    (
        "Can you provide a summary of Carol's recent test scores?",
        "Recent test performance shows consistent improvement across all subjects. "
        "The student is well-prepared for upcoming assessments.",
    ),
    (
        "What subjects does David need help with?",
        "The student would benefit from additional support in Science and Mathematics. Recommend tutoring sessions.",
    ),
    (
        "How has Emma's attendance been this month?",
        "Attendance has been excellent this month with perfect punctuality. The student is engaged and participative.",
    ),
    (
        "What are Frank's payment status updates?",
        "All payments are up to date. The family has been consistent with monthly fee submissions.",
    ),
    (
        "Can you track Grace's progress in Science?",
        "The student has shown remarkable progress in Science, improving from 70% to 88% over the past quarter.",
    ),
    (
        "What behavioral notes do we have for Henry?",
        "The student is well-behaved and cooperative. Shows leadership qualities in group activities.",
    ),
    (
        "How is Ivy preparing for final exams?",
        "The student is well-prepared for finals with strong performance across all subjects. "
        "Recommend maintaining current study schedule.",
    ),
    (
        "What extracurricular activities is Jack involved in?",
        "The student is actively involved in debate club and science fair preparations. "
        "Balancing academics and activities well.",
    ),
]


# =============================================================================
# Generators
# =============================================================================

def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """
    Go back `offset` months from (year, month).

    >>> shift_month(2024, 1, 1)
    (2023, 12)
    """
    month -= offset
    while month <= 0:
        month += 12
        year -= 1
    return year, month


def payment_note(status: str) -> str:
    if status == PaymentStatus.OVERDUE.value:
        return "Payment overdue - follow up required"
    if status == PaymentStatus.PENDING.value:
        return "Payment pending confirmation"
    return "Payment received successfully"


def marks_range(test_type: str) -> tuple[int, int]:
    """Inclusive (low, high) bounds for total_marks of a test type."""
    if test_type == TestType.QUIZ.value:
        return 10, 24
    if test_type in (TestType.ASSIGNMENT.value, TestType.PROJECT.value):
        return 20, 49
    return 50, 99


def score_note(score: int, total_marks: int) -> str:
    ratio = score / total_marks
    if ratio >= 0.8:
        return "Excellent performance"
    if ratio >= 0.7:
        return "Good work"
    if ratio >= 0.6:
        return "Satisfactory"
    return "Needs improvement"


def generate_students() -> list[dict]:
    """Rows for the fixed ten-student catalog."""
    return [
        {
            "name": name,
            "class": class_name,
            "contact_info": {
                "phone": phone,
                "email": email,
                "parent_name": parent_name,
                "address": address,
            },
        }
        for name, class_name, phone, email, parent_name, address in SAMPLE_STUDENTS
    ]


def generate_payments(
    student_ids: list[int],
    now: datetime,
    rng: random.Random,
) -> list[dict]:
    """Payment rows for the six months up to and including `now`'s month."""
    rows = []
    for student_id in student_ids:
        for offset in range(PAYMENT_MONTHS):
            year, month = shift_month(now.year, now.month, offset)

            if rng.random() >= PAYMENT_PROBABILITY:
                continue

            status = rng.choice(PAYMENT_STATUSES).value
            rows.append({
                "student_id": student_id,
                "amount": 150 + rng.randrange(100),
                "month": month,
                "year": year,
                "status": status,
                "payment_date": datetime(year, month, rng.randint(1, 28)),
                "payment_method": rng.choice(PAYMENT_METHODS),
                "notes": payment_note(status),
            })
    return rows


def generate_tests(
    student_ids: list[int],
    now: datetime,
    rng: random.Random,
) -> list[dict]:
    """Eight to twelve test rows per student from the last 90 days."""
    rows = []
    today = now.date()
    for student_id in student_ids:
        for _ in range(8 + rng.randrange(5)):
            subject = rng.choice(SUBJECTS)
            test_type = rng.choice(TEST_TYPES).value

            low, high = marks_range(test_type)
            total_marks = rng.randint(low, high)
            # Most students land between 60% and 90%
            base_percentage = 60 + rng.random() * 30
            score = math.floor(base_percentage / 100 * total_marks)

            rows.append({
                "student_id": student_id,
                "subject": subject,
                "score": score,
                "total_marks": total_marks,
                "date": today - timedelta(days=rng.randrange(TEST_WINDOW_DAYS)),
                "test_type": test_type,
                "notes": score_note(score, total_marks),
            })
    return rows


def generate_notes(
    student_ids: list[int],
    now: datetime,
    rng: random.Random,
) -> list[dict]:
    """Two to four logged conversations per student from the last 30 days."""
    rows = []
    for i, _ in enumerate(student_ids):
        for j in range(2 + rng.randrange(3)):
            query, response = SAMPLE_CONVERSATIONS[(i + j) % len(SAMPLE_CONVERSATIONS)]
            rows.append({
                "user_id": NOTE_USER_ID,
                "query": query,
                "response": response,
                "audio_file_path": None,
                "query_type": QueryType.TEXT.value,
                "processing_time": 500 + rng.randrange(2500),
                "created_at": now - timedelta(days=rng.randrange(NOTE_WINDOW_DAYS)),
            })
    return rows


# =============================================================================
# Loader
# =============================================================================

class SampleDataLoader:
    """
    Seeds sample rows into the relational store.

    Usage:
        loader = SampleDataLoader(connection_string)
        loader.load_students()
        loader.load_payments()
    """

    def __init__(
        self,
        connection_string: str,
        rng: Optional[random.Random] = None,
        now: Optional[datetime] = None,
    ):
        self.connection_string = connection_string
        self.rng = rng or random.Random()
        self.now = now

    def _now(self) -> datetime:
        return self.now or datetime.now()

    def load_students(self) -> int:
        """Insert the ten sample students. Returns the number inserted."""
        return self._load("students", Student.__table__, lambda ids: generate_students(), needs_students=False)

    def load_payments(self) -> int:
        """Insert payments for existing students. Returns the number inserted."""
        return self._load(
            "payments", Payment.__table__,
            lambda ids: generate_payments(ids, self._now(), self.rng),
        )

    def load_tests(self) -> int:
        """Insert test scores for existing students. Returns the number inserted."""
        return self._load(
            "test scores", Test.__table__,
            lambda ids: generate_tests(ids, self._now(), self.rng),
        )

    def load_notes(self) -> int:
        """Insert conversation notes for existing students. Returns the number inserted."""
        return self._load(
            "notes", Conversation.__table__,
            lambda ids: generate_notes(ids, self._now(), self.rng),
        )

    def _load(self, label: str, table: Table, generate, needs_students: bool = True) -> int:
        try:
            with open_engine(self.connection_string) as engine:
                with engine.begin() as conn:
                    student_ids = self._student_ids(conn) if needs_students else []
                    if needs_students and not student_ids:
                        raise PrerequisiteMissingError(NO_STUDENTS_MESSAGE)

                    rows = generate(student_ids)
                    count = self._insert_rows(conn, table, rows)
        except SQLAlchemyError as e:
            logger.error(f"Loading sample {label} failed: {e}")
            raise StoreError(f"Failed to load sample {label}", driver_message(e)) from e

        logger.info(f"Loaded {count} sample {label}")
        return count

    @staticmethod
    def _student_ids(conn: Connection) -> list[int]:
        result = conn.execute(select(Student.student_id).order_by(Student.student_id))
        return list(result.scalars())

    @staticmethod
    def _insert_rows(conn: Connection, table: Table, rows: list[dict]) -> int:
        count = 0
        for row in rows:
            result = conn.execute(insert(table).values(row))
            if result.rowcount and result.rowcount > 0:
                count += 1
        return count
