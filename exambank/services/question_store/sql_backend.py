"""SQLAlchemy question store backend implementation."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from sqlalchemy import delete, func, or_, select, text
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from exambank.models import ExamPaper, Question
from exambank.schemas.exam import ExamPaperRecord
from exambank.schemas.question import QuestionRecord
from exambank.services.question_store.base import (
    ExamPaperSource,
    QuestionFilter,
    QuestionStore,
    QuestionStoreError,
    StoreUnavailableError,
    check_delete_filter,
    check_distinct_field,
    parse_store_id,
)

logger = logging.getLogger(__name__)

UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
    asyncio.TimeoutError,
)

WRITABLE_FIELDS = (
    "paper_id",
    "subject_id",
    "subject_name",
    "question_text",
    "option_a",
    "option_b",
    "option_c",
    "option_d",
    "correct_option",
)


class SqlQuestionStore(QuestionStore, ExamPaperSource):
    """Question store backed by the relational database through an AsyncSession."""

    supports_transactions = True

    def __init__(self, session: AsyncSession):
        self._session = session

    @contextlib.asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except UNAVAILABLE_ERRORS as e:
            raise StoreUnavailableError(f"Question store unavailable during {operation}: {e}") from e
        except SQLAlchemyError as e:
            raise QuestionStoreError(f"Question store {operation} failed: {e}") from e

    def _conditions(self, query: QuestionFilter) -> list[Any]:
        conditions: list[Any] = []
        if query.paper_id is not None:
            conditions.append(Question.paper_id == query.paper_id)
        if query.paper_aliases is not None:
            # Suffix forms are narrowed with LIKE here and checked exactly in Python
            paper_conditions = [Question.paper_id.in_(query.paper_aliases.exact_values)]
            paper_conditions.extend(
                Question.paper_id.endswith(suffix, autoescape=True) for suffix in query.paper_aliases.suffixes
            )
            conditions.append(or_(*paper_conditions))
        if query.subject_id is not None:
            conditions.append(Question.subject_id == query.subject_id)
        if query.subject_name is not None:
            conditions.append(Question.subject_name == query.subject_name)
        if query.question_ids is not None:
            conditions.append(Question.id.in_(query.question_ids))
        return conditions

    @staticmethod
    def _needs_post_filter(query: QuestionFilter) -> bool:
        return query.paper_aliases is not None and bool(query.paper_aliases.suffixes)

    async def find(self, query: QuestionFilter, limit: int | None = None) -> list[QuestionRecord]:
        post_filter = self._needs_post_filter(query)
        stmt = select(Question).where(*self._conditions(query)).order_by(Question.id)
        if limit is not None and not post_filter:
            stmt = stmt.limit(limit)

        async with self._translate_errors("find"):
            result = await self._session.execute(stmt)
            rows = result.scalars().all()

        records = [QuestionRecord.model_validate(row) for row in rows]
        if post_filter:
            records = [record for record in records if query.matches(record)]
            if limit is not None:
                records = records[:limit]
        return records

    async def count(self, query: QuestionFilter) -> int:
        if self._needs_post_filter(query):
            return len(await self.find(query))

        stmt = select(func.count(Question.id)).where(*self._conditions(query))
        async with self._translate_errors("count"):
            result = await self._session.execute(stmt)
            return result.scalar() or 0

    async def delete_many(self, query: QuestionFilter) -> int:
        check_delete_filter(query)
        if self._needs_post_filter(query):
            ids = [record.id for record in await self.find(query)]
            if not ids:
                return 0
            stmt = delete(Question).where(Question.id.in_(ids))
        else:
            stmt = delete(Question).where(*self._conditions(query))

        async with self._translate_errors("delete"):
            result = await self._session.execute(stmt)
            await self._session.flush()
        return result.rowcount or 0

    async def insert_many(self, records: Sequence[QuestionRecord]) -> list[QuestionRecord]:
        db_questions = [Question(**{name: getattr(record, name) for name in WRITABLE_FIELDS}) for record in records]
        async with self._translate_errors("insert"):
            self._session.add_all(db_questions)
            await self._session.flush()
        return [QuestionRecord.model_validate(question) for question in db_questions]

    async def distinct(self, field: str, query: QuestionFilter) -> set[str]:
        check_distinct_field(field)
        column = getattr(Question, field)
        stmt = select(Question.paper_id, column).where(*self._conditions(query)).distinct()

        async with self._translate_errors("distinct"):
            result = await self._session.execute(stmt)
            rows = result.all()

        values = set()
        for paper_id, value in rows:
            if query.paper_aliases is None or query.paper_aliases.matches(paper_id):
                values.add(value)
        return values

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
        except BaseException:
            try:
                await self._session.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback of question store transaction failed")
            raise
        async with self._translate_errors("commit"):
            await self._session.commit()

    async def lock_bank(self, paper_id: str, subject_id: str) -> None:
        if self._session.get_bind().dialect.name != "postgresql":
            return
        async with self._translate_errors("lock"):
            await self._session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:bank_key))"),
                {"bank_key": f"questions:{paper_id}:{subject_id}"},
            )

    async def find_paper(self, identifier: str) -> ExamPaperRecord | None:
        base_stmt = select(ExamPaper).options(selectinload(ExamPaper.subjects))

        async with self._translate_errors("exam paper lookup"):
            result = await self._session.execute(base_stmt.where(ExamPaper.paper_id == identifier))
            paper = result.scalar_one_or_none()
            store_id = parse_store_id(identifier)
            if paper is None and store_id is not None:
                result = await self._session.execute(base_stmt.where(ExamPaper.id == store_id))
                paper = result.scalar_one_or_none()

        if paper is None:
            return None
        return ExamPaperRecord.model_validate(paper)
