"""Replace-all ingestion of a paper subject's question bank."""

import asyncio
import logging
import weakref
from collections.abc import Awaitable, Callable, Sequence

from exambank.config import settings
from exambank.core.text import decode_text
from exambank.schemas.question import QuestionBankReplaceResponse, QuestionBase, QuestionRecord
from exambank.services.errors import InvalidInputError, PartialIngestFailure
from exambank.services.question_store import QuestionFilter, QuestionStore
from exambank.services.record_normalizer import (
    DEFAULT_CORRECT_OPTION,
    OPTION_FIELDS,
    VALID_OPTIONS,
    is_missing_question_text,
    normalize_record,
)

logger = logging.getLogger(__name__)

# Held only while a replace runs; entries disappear once no writer references them
_bank_locks: "weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()


def get_bank_lock(paper_id: str, subject_id: str) -> asyncio.Lock:
    """Get the in-process lock serializing writers of one (paper_id, subject_id) bank."""
    key = (paper_id, subject_id)
    lock = _bank_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _bank_locks[key] = lock
    return lock


def _require_identifiers(paper_id: str | None, subject_id: str | None) -> tuple[str, str]:
    paper_id = (paper_id or "").strip()
    subject_id = (subject_id or "").strip()
    if not paper_id:
        raise InvalidInputError("Paper ID is required")
    if not subject_id:
        raise InvalidInputError("Subject ID is required")
    return paper_id, subject_id


def build_stored_record(
    question: QuestionBase, position: int, paper_id: str, subject_id: str, subject_name: str
) -> QuestionRecord:
    """
    Build the record persisted for one question, with display defaults applied.

    Args:
        question: Uploaded or stored question
        position: 1-based position within the bank
        paper_id: Paper code
        subject_id: Subject identifier
        subject_name: Subject name stored on the record

    Returns:
        QuestionRecord ready for insertion
    """
    normalized = normalize_record(question, position)

    correct_option = normalized.correct_option.strip().upper()
    if correct_option not in VALID_OPTIONS:
        logger.warning(
            f"Question {position} of {paper_id}/{subject_id} has invalid correct option "
            f"'{normalized.correct_option}', using {DEFAULT_CORRECT_OPTION}"
        )
        correct_option = DEFAULT_CORRECT_OPTION

    options = {field: getattr(normalized, field).strip() for field in OPTION_FIELDS}
    return QuestionRecord(
        paper_id=paper_id,
        subject_id=subject_id,
        subject_name=subject_name,
        question_text=normalized.question_text.strip(),
        correct_option=correct_option,
        **options,
    )


def prepare_question_bank(
    paper_id: str, subject_id: str, subject_name: str, questions: Sequence[QuestionBase]
) -> tuple[list[QuestionRecord], int]:
    """
    Drop questions without text and build the records to persist.

    Returns:
        Tuple of (records to insert, number of skipped questions)
    """
    kept = [question for question in questions if not is_missing_question_text(decode_text(question.question_text))]
    records = [
        build_stored_record(question, position, paper_id, subject_id, subject_name)
        for position, question in enumerate(kept, start=1)
    ]
    return records, len(questions) - len(kept)


async def _swap_bank(
    store: QuestionStore,
    paper_id: str,
    subject_id: str,
    load_records: Callable[[], Awaitable[list[QuestionRecord]]],
) -> tuple[int, list[QuestionRecord]]:
    bank_filter = QuestionFilter(paper_id=paper_id, subject_id=subject_id)
    deleted_count: int | None = None
    inserted: list[QuestionRecord] | None = None
    try:
        async with store.transaction():
            await store.lock_bank(paper_id, subject_id)
            records = await load_records()
            if not records:
                return 0, []
            deleted_count = await store.delete_many(bank_filter)
            logger.info(f"Deleted {deleted_count} questions for paper {paper_id}, subject {subject_id}")
            inserted = await store.insert_many(records)
    except Exception as e:
        if deleted_count is None:
            raise
        # Once every write succeeded only the commit can fail, leaving the outcome unknown
        bank_restored = None if inserted is not None else store.supports_transactions
        failure = PartialIngestFailure(
            paper_id=paper_id,
            subject_id=subject_id,
            deleted_count=deleted_count,
            bank_restored=bank_restored,
            reason=str(e),
        )
        logger.error(str(failure), exc_info=True)
        raise failure from e
    return deleted_count, inserted


async def _run_replace(
    store: QuestionStore,
    paper_id: str,
    subject_id: str,
    load_records: Callable[[], Awaitable[list[QuestionRecord]]],
) -> tuple[int, list[QuestionRecord]]:
    if store.supports_transactions:
        return await _swap_bank(store, paper_id, subject_id, load_records)
    async with get_bank_lock(paper_id, subject_id):
        return await _swap_bank(store, paper_id, subject_id, load_records)


async def replace_question_bank(
    store: QuestionStore,
    paper_id: str,
    subject_id: str,
    subject_name: str | None,
    questions: Sequence[QuestionBase],
) -> QuestionBankReplaceResponse:
    """
    Replace every question of one paper subject with a new set.

    Questions without text are skipped. Validation happens before anything is
    deleted, so an unusable upload leaves the existing bank untouched. Writers of
    the same (paper_id, subject_id) are serialized, and the swap keeps running if
    the caller is cancelled once it has started.

    Args:
        store: Question store to write to
        paper_id: Paper code
        subject_id: Subject identifier within the paper
        subject_name: Subject name stored on every question
        questions: New questions

    Returns:
        QuestionBankReplaceResponse with inserted, skipped and deleted counts

    Raises:
        InvalidInputError: If identifiers are missing or no question has text
        PartialIngestFailure: If writing failed after the old bank was deleted
        StoreUnavailableError: If the store cannot be reached before deletion
    """
    paper_id, subject_id = _require_identifiers(paper_id, subject_id)
    subject_name = decode_text(subject_name).strip() or settings.default_subject_name

    records, skipped_count = prepare_question_bank(paper_id, subject_id, subject_name, questions or [])
    if not records:
        raise InvalidInputError(
            f"No valid questions to upload for paper {paper_id}, subject {subject_id}: "
            f"all {skipped_count} questions are missing question text"
        )
    if skipped_count:
        logger.warning(f"Skipping {skipped_count} questions without text for paper {paper_id}, subject {subject_id}")

    async def load_records() -> list[QuestionRecord]:
        return records

    deleted_count, inserted = await asyncio.shield(_run_replace(store, paper_id, subject_id, load_records))
    logger.info(
        "Question bank replaced",
        extra={
            "paper_id": paper_id,
            "subject_id": subject_id,
            "inserted": len(inserted),
            "skipped": skipped_count,
            "deleted": deleted_count,
        },
    )
    return QuestionBankReplaceResponse(
        paper_id=paper_id,
        subject_id=subject_id,
        subject_name=subject_name,
        inserted_count=len(inserted),
        skipped_count=skipped_count,
        deleted_count=deleted_count,
    )


async def repair_question_bank(store: QuestionStore, paper_id: str, subject_id: str) -> QuestionBankReplaceResponse:
    """
    Rewrite a stored question bank with display defaults persisted.

    Runs through the same serialized replace path as an upload. An empty bank is
    left as is.

    Raises:
        InvalidInputError: If identifiers are missing
        PartialIngestFailure: If writing failed after the old bank was deleted
    """
    paper_id, subject_id = _require_identifiers(paper_id, subject_id)
    subject_names: list[str] = []

    async def load_records() -> list[QuestionRecord]:
        stored = await store.find(QuestionFilter(paper_id=paper_id, subject_id=subject_id))
        subject_names.extend(dict.fromkeys(record.subject_name for record in stored))
        return [
            build_stored_record(
                record,
                position,
                paper_id,
                subject_id,
                decode_text(record.subject_name).strip() or settings.default_subject_name,
            )
            for position, record in enumerate(stored, start=1)
        ]

    deleted_count, inserted = await asyncio.shield(_run_replace(store, paper_id, subject_id, load_records))
    if not inserted:
        logger.info(f"No stored questions to repair for paper {paper_id}, subject {subject_id}")
    else:
        logger.info(f"Repaired {len(inserted)} questions for paper {paper_id}, subject {subject_id}")

    return QuestionBankReplaceResponse(
        paper_id=paper_id,
        subject_id=subject_id,
        subject_name=subject_names[0] if subject_names else settings.default_subject_name,
        inserted_count=len(inserted),
        skipped_count=0,
        deleted_count=deleted_count,
    )
