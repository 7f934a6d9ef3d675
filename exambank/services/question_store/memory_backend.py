"""In-process question store backend implementation."""

from collections.abc import Iterable, Sequence
from datetime import datetime

from exambank.schemas.exam import ExamPaperRecord
from exambank.schemas.question import QuestionRecord
from exambank.services.question_store.base import (
    ExamPaperSource,
    QuestionFilter,
    QuestionStore,
    check_delete_filter,
    check_distinct_field,
    parse_store_id,
)


class InMemoryQuestionStore(QuestionStore, ExamPaperSource):
    """
    Question store kept in process memory.

    Offers no transactions, so replace-all ingestion serializes writers with an
    in-process lock instead. Suitable for development and tests.
    """

    supports_transactions = False

    def __init__(
        self,
        questions: Iterable[QuestionRecord] | None = None,
        exam_papers: Iterable[ExamPaperRecord] | None = None,
    ):
        self._questions: list[QuestionRecord] = []
        self._exam_papers: list[ExamPaperRecord] = []
        self._next_question_id = 1
        self._next_paper_id = 1
        for paper in exam_papers or []:
            self.add_exam_paper(paper)
        if questions:
            self._append(questions)

    def _append(self, records: Iterable[QuestionRecord]) -> list[QuestionRecord]:
        now = datetime.utcnow()
        inserted = []
        for record in records:
            stored = record.model_copy(
                update={
                    "id": self._next_question_id,
                    "created_at": record.created_at or now,
                    "updated_at": now,
                }
            )
            self._next_question_id += 1
            self._questions.append(stored)
            inserted.append(stored.model_copy())
        return inserted

    def add_exam_paper(self, paper: ExamPaperRecord) -> ExamPaperRecord:
        if paper.id is None:
            paper = paper.model_copy(update={"id": self._next_paper_id})
        self._next_paper_id = max(self._next_paper_id, paper.id) + 1
        self._exam_papers.append(paper)
        return paper

    async def find(self, query: QuestionFilter, limit: int | None = None) -> list[QuestionRecord]:
        records = [record.model_copy() for record in self._questions if query.matches(record)]
        return records[:limit] if limit is not None else records

    async def count(self, query: QuestionFilter) -> int:
        return sum(1 for record in self._questions if query.matches(record))

    async def delete_many(self, query: QuestionFilter) -> int:
        check_delete_filter(query)
        kept = [record for record in self._questions if not query.matches(record)]
        deleted = len(self._questions) - len(kept)
        self._questions = kept
        return deleted

    async def insert_many(self, records: Sequence[QuestionRecord]) -> list[QuestionRecord]:
        return self._append(records)

    async def distinct(self, field: str, query: QuestionFilter) -> set[str]:
        check_distinct_field(field)
        return {getattr(record, field) for record in self._questions if query.matches(record)}

    async def find_paper(self, identifier: str) -> ExamPaperRecord | None:
        for paper in self._exam_papers:
            if paper.paper_id == identifier:
                return paper.model_copy(deep=True)
        store_id = parse_store_id(identifier)
        for paper in self._exam_papers:
            if store_id is not None and paper.id == store_id:
                return paper.model_copy(deep=True)
        return None
