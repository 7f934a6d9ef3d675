"""Base interface for question store backends."""

import contextlib
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from exambank.core.paper_ids import PaperAliasSet
from exambank.schemas.exam import ExamPaperRecord
from exambank.schemas.question import QuestionRecord

# Fields that may be passed to QuestionStore.distinct
DISTINCT_FIELDS = frozenset({"paper_id", "subject_id", "subject_name"})

# Store ids are 32-bit integer primary keys
MAX_STORE_ID = 2**31 - 1


class QuestionStoreError(Exception):
    """Raised when a question store operation fails."""

    pass


class StoreUnavailableError(QuestionStoreError):
    """Raised when the question store cannot be reached (connection, timeout)."""

    pass


@dataclass(frozen=True)
class QuestionFilter:
    """
    Conjunction of conditions over stored questions.

    Unset fields do not constrain the result. `paper_id` is an exact code while
    `paper_aliases` accepts any stored form of the paper.
    """

    paper_id: str | None = None
    paper_aliases: PaperAliasSet | None = None
    subject_id: str | None = None
    subject_name: str | None = None
    question_ids: tuple[int, ...] | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.paper_id is None
            and self.paper_aliases is None
            and self.subject_id is None
            and self.subject_name is None
            and self.question_ids is None
        )

    def matches(self, record: QuestionRecord) -> bool:
        if self.paper_id is not None and record.paper_id != self.paper_id:
            return False
        if self.paper_aliases is not None and not self.paper_aliases.matches(record.paper_id):
            return False
        if self.subject_id is not None and record.subject_id != self.subject_id:
            return False
        if self.subject_name is not None and record.subject_name != self.subject_name:
            return False
        if self.question_ids is not None and record.id not in self.question_ids:
            return False
        return True


class QuestionStore(ABC):
    """Abstract base class for question store backends (SQL, in-memory)."""

    # Backends without transactions get delete+insert serialized by the caller
    supports_transactions: bool = False

    @abstractmethod
    async def find(self, query: QuestionFilter, limit: int | None = None) -> list[QuestionRecord]:
        """
        Find questions matching the filter, in insertion order.

        Args:
            query: Filter to apply
            limit: Optional maximum number of records

        Returns:
            List of QuestionRecord

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def count(self, query: QuestionFilter) -> int:
        """Count questions matching the filter."""
        pass

    @abstractmethod
    async def delete_many(self, query: QuestionFilter) -> int:
        """
        Delete questions matching the filter.

        Args:
            query: Non-empty filter

        Returns:
            Number of deleted records

        Raises:
            ValueError: If the filter is empty
        """
        pass

    @abstractmethod
    async def insert_many(self, records: Sequence[QuestionRecord]) -> list[QuestionRecord]:
        """
        Insert questions.

        Args:
            records: Records to insert (ids and timestamps are assigned by the store)

        Returns:
            Inserted records with ids assigned
        """
        pass

    @abstractmethod
    async def distinct(self, field: str, query: QuestionFilter) -> set[str]:
        """Return distinct values of `field` among questions matching the filter."""
        pass

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Scope in which writes commit together (no-op for non-transactional backends)."""
        yield

    async def lock_bank(self, paper_id: str, subject_id: str) -> None:
        """Serialize writers of one (paper_id, subject_id) bank inside a transaction."""
        return None


class ExamPaperSource(ABC):
    """Read-only lookup of exam papers and their subjects."""

    @abstractmethod
    async def find_paper(self, identifier: str) -> ExamPaperRecord | None:
        """
        Find an exam paper by its paper code or store id.

        Args:
            identifier: Paper code (e.g. "EXM2024") or store id

        Returns:
            ExamPaperRecord if found, None otherwise
        """
        pass


def check_distinct_field(field: str) -> None:
    if field not in DISTINCT_FIELDS:
        raise ValueError(f"Unsupported distinct field: {field}. Supported fields: {', '.join(sorted(DISTINCT_FIELDS))}")


def check_delete_filter(query: QuestionFilter) -> None:
    if query.is_empty:
        raise ValueError("Refusing to delete questions with an empty filter")


def parse_store_id(value: str | int) -> int | None:
    """
    Parse a store id, returning None for anything that is not one.

    Examples:
        >>> parse_store_id(" 42 ")
        42
        >>> parse_store_id("²") is None
        True
        >>> parse_store_id("99999999999") is None
        True
    """
    candidate = str(value).strip()
    if not candidate.isdecimal():
        return None
    try:
        store_id = int(candidate)
    except ValueError:
        return None
    return store_id if 0 < store_id <= MAX_STORE_ID else None
