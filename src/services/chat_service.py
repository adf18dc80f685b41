"""
Assistant chat over the student database.

Answers a teacher's question with the configured LLM, grounded in:
- Counts of students, payments, test scores and logged conversations
- Records of any student whose full name appears in the question

Every exchange is logged to the conversations table when the database is
reachable. A database outage does not fail the chat; the model is told
that no records are available instead.
"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

import anthropic
import httpx
from openai import OpenAI
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.models.database import (
    Conversation,
    Payment,
    QueryType,
    Student,
    Test,
    get_session_factory,
    open_engine,
)
from src.models.setup_config import AnthropicLLM, CustomLLM, GoogleLLM, LLMConfig, OpenAILLM
from src.services.connection_tester import GEMINI_URL
from src.services.errors import SetupError

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Application not configured. Please complete setup first."
UNSUPPORTED_PROVIDER_REPLY = (
    "I apologize, but the configured LLM provider is not yet supported. "
    "Please configure Google Gemini, OpenAI or Anthropic in the settings."
)

# Two capitalised words, e.g. "Alice Johnson"
STUDENT_NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b")

RECENT_TEST_LIMIT = 5
MAX_OUTPUT_TOKENS = 1024

SYSTEM_PROMPT = """You are an AI assistant for a Student Tracking Application used by educators and administrators.

CORE RULES:
1. Only report information that exists in the database context below. Never invent student names, scores or any other data.
2. Use exact values from the records (names, scores, dates, amounts).
3. When data is incomplete, say what you can see and what is missing.
4. When no records match, say that the database has no records for the query.

YOU CAN HELP WITH:
- Student information: academic performance, payment status, contact details
- Trends in test scores and payments based on the records
- Administrative tasks related to student management
- How to use the application

YOU MUST NOT:
- Fabricate student data or make predictions without data
- Give medical, psychological or legal advice
- Share contact information that is not relevant to the question

Keep student information confidential and use professional, educational language."""


class ChatError(Exception):
    """The chat could not be attempted or the provider failed."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class StudentContext:
    """Database context gathered for one question."""
    text: str = ""
    database_available: bool = False


def build_prompt(message: str, context: StudentContext) -> str:
    """Combine the system rules, database context and the question."""
    status = (
        "Connected - Use the data below to answer questions"
        if context.database_available
        else "Not Available - Explain limitations and suggest setup"
    )
    parts = [SYSTEM_PROMPT, f"DATABASE STATUS: {status}"]

    if context.text:
        parts.append(
            f"CURRENT DATABASE CONTEXT:\n{context.text}\n"
            "Use ONLY this data to answer questions. If the user asks about students or data "
            "not shown above, respond that you don't have that information in the database."
        )
        parts.append(
            f"User Question: {message}\n\n"
            "Based on the database context above, provide a helpful response using ONLY the actual data shown."
        )
    else:
        parts.append("No specific student data available for this query.")
        parts.append(
            f"User Question: {message}\n\n"
            "Since no specific database context is available, explain what you could help with "
            "if student data was available and suggest next steps."
        )

    return "\n\n".join(parts)


class ChatService:
    """Answers questions with the configured LLM and logs each exchange."""

    def __init__(
        self,
        llm: LLMConfig,
        connection_string: Optional[str] = None,
        user_id: str = "default",
        http_client: Optional[httpx.Client] = None,
        openai_client: Optional[OpenAI] = None,
        anthropic_client: Optional[anthropic.Anthropic] = None,
    ):
        self.llm = llm
        self.connection_string = connection_string
        self.user_id = user_id
        self._http = http_client
        self._openai = openai_client
        self._anthropic = anthropic_client

    def chat(self, message: str, is_audio: bool = False) -> str:
        """
        Answer one question.

        Args:
            message: The teacher's question (typed or transcribed)
            is_audio: Whether the question came from a recording

        Returns:
            The assistant's reply

        Raises:
            ChatError: 400 when the LLM is not configured, 500 when the provider fails
        """
        if not isinstance(self.llm, CustomLLM) and not self.llm.api_key:
            raise ChatError(NOT_CONFIGURED_MESSAGE, status_code=400)

        started = time.monotonic()
        context = self.get_student_context(message)
        response = self.complete(build_prompt(message, context))
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if context.database_available:
            self._save_conversation(message, response, is_audio, elapsed_ms)

        logger.info(f"Chat answered in {elapsed_ms}ms via {self.llm.provider}")
        return response

    # =========================================================================
    # Database context
    # =========================================================================

    def get_student_context(self, message: str) -> StudentContext:
        """Statistics plus the records of students named in `message`."""
        if not self.connection_string:
            return StudentContext()

        try:
            with open_engine(self.connection_string) as engine:
                with get_session_factory(engine)() as session:
                    sections = [self._stats_section(session)]
                    for name in dict.fromkeys(STUDENT_NAME_PATTERN.findall(message)):
                        section = self._student_section(session, name)
                        if section:
                            sections.append(section)
        except (SQLAlchemyError, SetupError) as e:
            logger.warning(f"Student context unavailable: {e}")
            return StudentContext()

        return StudentContext(text="\n".join(sections), database_available=True)

    @staticmethod
    def _stats_section(session) -> str:
        def count(model) -> int:
            return session.execute(select(func.count()).select_from(model)).scalar_one()

        return (
            "Database Statistics:\n"
            f"- Total Students: {count(Student)}\n"
            f"- Total Payments: {count(Payment)}\n"
            f"- Total Test Scores: {count(Test)}\n"
            f"- Recent Conversations: {count(Conversation)}\n"
        )

    @staticmethod
    def _student_section(session, name: str) -> Optional[str]:
        student = session.execute(
            select(Student).where(func.lower(Student.name) == name.lower()).order_by(Student.student_id)
        ).scalars().first()
        if student is None:
            return None

        tests = session.execute(
            select(Test)
            .where(Test.student_id == student.student_id)
            .order_by(Test.date.desc(), Test.test_id.desc())
            .limit(RECENT_TEST_LIMIT)
        ).scalars().all()
        payment = session.execute(
            select(Payment)
            .where(Payment.student_id == student.student_id)
            .order_by(Payment.year.desc(), Payment.month.desc())
        ).scalars().first()

        lines = [
            f"Student Data for {student.name}:",
            f"- Class: {student.class_name or 'unknown'}",
            f"- Contact: {student.contact_info or {}}",
        ]
        if tests:
            scores = ", ".join(
                f"{t.subject} {t.test_type} {t.score}/{t.total_marks} on {t.date}" for t in tests
            )
            lines.append(f"- Recent Test Scores: {scores}")
        else:
            lines.append("- Recent Test Scores: none recorded")
        if payment is not None:
            lines.append(
                f"- Payment Status: {payment.status} for {payment.month}/{payment.year} "
                f"(amount {payment.amount})"
            )
        else:
            lines.append("- Payment Status: no payments recorded")
        return "\n".join(lines) + "\n"

    def _save_conversation(self, message: str, response: str, is_audio: bool, elapsed_ms: int) -> None:
        try:
            with open_engine(self.connection_string) as engine:
                with get_session_factory(engine)() as session:
                    session.add(Conversation(
                        user_id=self.user_id,
                        query=message,
                        response=response,
                        query_type=(QueryType.AUDIO if is_audio else QueryType.TEXT).value,
                        processing_time=elapsed_ms,
                    ))
                    session.commit()
        except (SQLAlchemyError, SetupError) as e:
            logger.warning(f"Failed to save conversation: {e}")

    # =========================================================================
    # LLM providers
    # =========================================================================

    def complete(self, prompt: str) -> str:
        """Send `prompt` to the configured provider and return its text."""
        if isinstance(self.llm, GoogleLLM):
            return self._complete_gemini(prompt)
        if isinstance(self.llm, OpenAILLM):
            return self._complete_openai(prompt)
        if isinstance(self.llm, AnthropicLLM):
            return self._complete_anthropic(prompt)
        return UNSUPPORTED_PROVIDER_REPLY

    def _complete_gemini(self, prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
        }
        url = GEMINI_URL.format(model=self.llm.model)
        params = {"key": self.llm.api_key}

        try:
            if self._http is not None:
                response = self._http.post(url, params=params, json=body)
            else:
                with httpx.Client(timeout=60.0) as client:
                    response = client.post(url, params=params, json=body)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise ChatError(f"Failed to process with Gemini: {e}") from e

        if not response.is_success:
            reason = (data.get("error") or {}).get("message", "Unknown error")
            raise ChatError(f"Failed to process with Gemini: Gemini API error: {reason}")

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ChatError("Failed to process with Gemini: No response generated from Gemini")

    def _complete_openai(self, prompt: str) -> str:
        client = self._openai or OpenAI(api_key=self.llm.api_key)
        try:
            response = client.chat.completions.create(
                model=self.llm.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=0.7,
            )
        except Exception as e:
            logger.error(f"OpenAI chat failed: {e}")
            raise ChatError(f"Failed to process with OpenAI: {e}") from e
        return response.choices[0].message.content or ""

    def _complete_anthropic(self, prompt: str) -> str:
        client = self._anthropic or anthropic.Anthropic(api_key=self.llm.api_key)
        try:
            response = client.messages.create(
                model=self.llm.model,
                max_tokens=MAX_OUTPUT_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.error(f"Anthropic chat failed: {e}")
            raise ChatError(f"Failed to process with Anthropic: {e}") from e
        return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
