import os

import pytest

from exambank.core.paper_ids import PaperAliasSet
from exambank.dependencies.database import build_sessionmanager, initialize_db
from exambank.models import ExamPaper, ExamPaperSubject
from exambank.services.errors import PartialIngestFailure
from exambank.services.question_bank_ingest import replace_question_bank
from exambank.services.question_resolution import Found, resolve_questions
from exambank.services.question_store import QuestionFilter, QuestionStoreError, SqlQuestionStore

from tests.conftest import make_input, make_question

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL is not set")


class FailingInsertSqlStore(SqlQuestionStore):
    async def insert_many(self, records):
        raise QuestionStoreError("insert rejected")


@pytest.fixture
async def session():
    manager = build_sessionmanager(TEST_DATABASE_URL, testing=True)
    async with initialize_db(manager):
        async with manager.session() as session:
            session.add(
                ExamPaper(
                    paper_id="EXM2024",
                    paper_name="Computer Proficiency 2024",
                    status="active",
                    subjects=[
                        ExamPaperSubject(subject_id="s1", subject_name="Computer Fundamental", number_of_questions=10)
                    ],
                )
            )
            await session.commit()
            yield session


async def test_find_by_paper_alias(session):
    store = SqlQuestionStore(session)
    await store.insert_many(
        [
            make_question(paper_id="P2024", subject_id="a"),
            make_question(paper_id="PAPER-2024", subject_id="a"),
            make_question(paper_id="X2024X", subject_id="a"),
        ]
    )
    await session.commit()

    records = await store.find(QuestionFilter(paper_aliases=PaperAliasSet.from_identifiers("EXM2024")))

    assert [r.paper_id for r in records] == ["P2024", "PAPER-2024"]
    assert await store.count(QuestionFilter(paper_aliases=PaperAliasSet.from_identifiers("EXM2024"))) == 2


async def test_replace_then_resolve(session):
    store = SqlQuestionStore(session)

    result = await replace_question_bank(
        store, "EXM2024", "s1", "Computer Fundamental", [make_input(f"Q{n}") for n in range(4)]
    )
    resolved = await resolve_questions(store, "EXM2024", "s1", exam_papers=store)

    assert result.inserted_count == 4
    assert isinstance(resolved, Found)
    assert len(resolved.questions) == 4


async def test_failed_insert_restores_previous_bank(session):
    store = SqlQuestionStore(session)
    await store.insert_many([make_question(subject_id="s1")] * 3)
    await session.commit()

    with pytest.raises(PartialIngestFailure) as exc_info:
        await replace_question_bank(
            FailingInsertSqlStore(session), "EXM2024", "s1", "Computer Fundamental", [make_input()]
        )

    assert exc_info.value.bank_restored
    assert await store.count(QuestionFilter(paper_id="EXM2024", subject_id="s1")) == 3


async def test_find_paper_loads_subjects(session):
    store = SqlQuestionStore(session)

    paper = await store.find_paper("EXM2024")

    assert paper is not None
    assert [s.subject_id for s in paper.subjects] == ["s1"]
    assert (await store.find_paper(str(paper.id))).paper_id == "EXM2024"
    assert await store.find_paper("NOPE1") is None


async def test_find_paper_with_oversized_numeric_code_is_not_found(session):
    store = SqlQuestionStore(session)

    assert await store.find_paper("99999999999999") is None


async def test_replace_then_resolve_ignores_stale_aliased_bank(session):
    store = SqlQuestionStore(session)
    await store.insert_many([make_question(paper_id="P2024", subject_id="s1", question_text="stale")] * 3)
    await session.commit()

    await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()] * 4)
    resolved = await resolve_questions(store, "EXM2024", "s1", exam_papers=store)

    assert isinstance(resolved, Found)
    assert len(resolved.questions) == 4
    assert {q.paper_id for q in resolved.questions} == {"EXM2024"}
