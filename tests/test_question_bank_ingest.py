import asyncio
import contextlib

import pytest

from exambank.services.errors import InvalidInputError, PartialIngestFailure
from exambank.services.question_bank_ingest import (
    get_bank_lock,
    prepare_question_bank,
    repair_question_bank,
    replace_question_bank,
)
from exambank.services.question_resolution import Found, resolve_questions
from exambank.services.question_store import (
    InMemoryQuestionStore,
    QuestionFilter,
    QuestionStoreError,
    StoreUnavailableError,
)

from tests.conftest import make_input, make_question

BANK = QuestionFilter(paper_id="EXM2024", subject_id="s1")


class FailingInsertStore(InMemoryQuestionStore):
    async def insert_many(self, records):
        raise QuestionStoreError("disk full")


class FailingDeleteStore(InMemoryQuestionStore):
    async def delete_many(self, query):
        raise StoreUnavailableError("connection reset")


class FailingCommitStore(InMemoryQuestionStore):
    supports_transactions = True

    @contextlib.asynccontextmanager
    async def transaction(self):
        yield
        raise QuestionStoreError("commit failed")


class RecordingStore(InMemoryQuestionStore):
    """Yields to the event loop inside every write so concurrent writers could interleave."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.events: list[str] = []

    async def delete_many(self, query):
        self.events.append(f"delete:{query.subject_id}")
        await asyncio.sleep(0.01)
        return await super().delete_many(query)

    async def insert_many(self, records):
        await asyncio.sleep(0.01)
        self.events.append(f"insert:{records[0].subject_id}")
        return await super().insert_many(records)


async def test_replace_then_exact_lookup_returns_filtered_set(store):
    questions = [make_input(f"Question number {n}") for n in range(4)] + [make_input("   ")]

    result = await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", questions)

    assert (result.inserted_count, result.skipped_count, result.deleted_count) == (4, 1, 0)
    resolved = await resolve_questions(store, "EXM2024", "s1", exam_papers=store)
    assert isinstance(resolved, Found)
    assert resolved.strategy == "exact_subject_id"
    assert len(resolved.questions) == result.inserted_count


async def test_replace_then_lookup_ignores_stale_bank_under_aliased_code(store):
    store._append([make_question(paper_id="P2024", subject_id="s1", question_text="stale")] * 3)

    result = await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()] * 4)

    resolved = await resolve_questions(store, "EXM2024", "s1", exam_papers=store)
    assert isinstance(resolved, Found)
    assert len(resolved.questions) == result.inserted_count == 4
    assert {q.paper_id for q in resolved.questions} == {"EXM2024"}


async def test_replace_overwrites_only_its_own_bank(store):
    store._append([make_question(subject_id="s1")] * 3)
    store._append([make_question(subject_id="s2", subject_name="MS Excel")] * 2)

    result = await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()])

    assert result.deleted_count == 3
    assert await store.count(BANK) == 1
    assert await store.count(QuestionFilter(subject_id="s2")) == 2


async def test_blank_only_upload_leaves_bank_untouched(store):
    store._append([make_question(subject_id="s1")] * 3)

    with pytest.raises(InvalidInputError):
        await replace_question_bank(
            store, "EXM2024", "s1", "Computer Fundamental", [make_input(""), make_input("Question text not available")]
        )

    assert await store.count(BANK) == 3


async def test_empty_upload_is_rejected(store):
    with pytest.raises(InvalidInputError):
        await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [])


@pytest.mark.parametrize("paper_id, subject_id", [("", "s1"), ("EXM2024", " ")])
async def test_missing_identifiers_are_rejected(store, paper_id, subject_id):
    with pytest.raises(InvalidInputError):
        await replace_question_bank(store, paper_id, subject_id, "Computer Fundamental", [make_input()])


async def test_write_time_defaults_are_persisted(store):
    questions = [
        make_input("What is ROM?", option_c="", correct_option=" c "),
        make_input("What is a%20bit%3F", option_d="  ", correct_option="E"),
    ]

    await replace_question_bank(store, "EXM2024", "s1", None, questions)

    stored = await store.find(BANK)
    assert [q.correct_option for q in stored] == ["C", "A"]
    assert stored[0].option_c == "Option C"
    assert stored[1].option_d == "Option D"
    assert stored[1].question_text == "What is a bit?"
    assert {q.subject_name for q in stored} == {"Unknown Subject"}


async def test_insert_failure_after_delete_is_reported():
    store = FailingInsertStore()
    store._append([make_question(subject_id="s1")] * 3)

    with pytest.raises(PartialIngestFailure) as exc_info:
        await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()])

    failure = exc_info.value
    assert failure.deleted_count == 3
    assert not failure.bank_restored
    assert "EMPTY" in str(failure)
    assert await store.count(BANK) == 0


async def test_commit_failure_reports_unknown_outcome():
    store = FailingCommitStore()
    store._append([make_question(subject_id="s1")] * 3)

    with pytest.raises(PartialIngestFailure) as exc_info:
        await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()])

    failure = exc_info.value
    assert failure.deleted_count == 3
    assert failure.bank_restored is None
    assert "unknown" in str(failure)


async def test_failure_before_delete_propagates_unchanged():
    store = FailingDeleteStore()

    with pytest.raises(StoreUnavailableError):
        await replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()])


async def test_replaces_of_same_bank_do_not_interleave():
    store = RecordingStore()

    await asyncio.gather(
        replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input("first")]),
        replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input("second")] * 2),
    )

    assert store.events == ["delete:s1", "insert:s1", "delete:s1", "insert:s1"]
    assert await store.count(BANK) == 2


async def test_replaces_of_different_banks_run_concurrently():
    store = RecordingStore()

    await asyncio.gather(
        replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()]),
        replace_question_bank(store, "EXM2024", "s2", "MS Excel", [make_input()]),
    )

    assert store.events[:2] == ["delete:s1", "delete:s2"]


async def test_cancelled_caller_does_not_leave_bank_empty():
    store = RecordingStore()
    store._append([make_question(subject_id="s1")] * 3)

    task = asyncio.create_task(
        replace_question_bank(store, "EXM2024", "s1", "Computer Fundamental", [make_input()] * 5)
    )
    while not store.events:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    async with get_bank_lock("EXM2024", "s1"):
        assert await store.count(BANK) == 5


def test_prepare_question_bank_counts_skipped():
    records, skipped = prepare_question_bank(
        "EXM2024", "s1", "Computer Fundamental", [make_input(), make_input(""), make_input("Another")]
    )
    assert skipped == 1
    assert [r.question_text for r in records] == ["What is RAM?", "Another"]


async def test_repair_persists_defaults(store):
    store._append([make_question(subject_id="s1", question_text="", option_b="", correct_option="")] * 2)

    result = await repair_question_bank(store, "EXM2024", "s1")

    assert result.inserted_count == 2
    assert result.deleted_count == 2
    stored = await store.find(BANK)
    assert [q.question_text for q in stored] == ["Question 1", "Question 2"]
    assert {q.option_b for q in stored} == {"Option B"}
    assert {q.correct_option for q in stored} == {"A"}


async def test_repair_of_empty_bank_is_a_no_op(store):
    result = await repair_question_bank(store, "EXM2024", "s1")

    assert (result.inserted_count, result.deleted_count) == (0, 0)
    assert result.subject_name == "Unknown Subject"
