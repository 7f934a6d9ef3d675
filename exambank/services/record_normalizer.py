"""Fill incomplete question records with renderable defaults."""

from collections.abc import Sequence
from typing import TypeVar

from exambank.config import settings
from exambank.core.text import decode_text, is_blank
from exambank.schemas.question import QuestionBase

OPTION_FIELDS = {
    "option_a": "A",
    "option_b": "B",
    "option_c": "C",
    "option_d": "D",
}

VALID_OPTIONS = frozenset(OPTION_FIELDS.values())

DEFAULT_CORRECT_OPTION = "A"

RecordT = TypeVar("RecordT", bound=QuestionBase)


def is_missing_question_text(text: str | None) -> bool:
    """Check whether question text is blank or the "not available" sentinel."""
    return is_blank(text) or text.strip() == settings.missing_question_text


def placeholder_question_text(position: int) -> str:
    return f"Question {position}"


def normalize_record(record: RecordT, position: int) -> RecordT:
    """
    Return a copy of a question with blank fields replaced by placeholders.

    Never modifies the record passed in. Applying it twice gives the same result
    as applying it once.

    Args:
        record: Question record or upload row
        position: 1-based position of the record in the returned sequence

    Returns:
        Normalized copy of the record
    """
    question_text = decode_text(record.question_text)
    if is_missing_question_text(question_text):
        question_text = placeholder_question_text(position)

    updates: dict[str, str] = {"question_text": question_text}
    for field, label in OPTION_FIELDS.items():
        option = decode_text(getattr(record, field))
        updates[field] = option if not is_blank(option) else f"Option {label}"

    correct_option = (record.correct_option or "").strip()
    updates["correct_option"] = correct_option or DEFAULT_CORRECT_OPTION

    return record.model_copy(update=updates)


def normalize_records(records: Sequence[RecordT]) -> list[RecordT]:
    """Normalize a result sequence, numbering placeholders by position."""
    return [normalize_record(record, position) for position, record in enumerate(records, start=1)]
