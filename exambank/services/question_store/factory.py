"""Factory for creating question store backends."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from exambank.config import settings
from exambank.services.question_store.base import QuestionStore
from exambank.services.question_store.memory_backend import InMemoryQuestionStore
from exambank.services.question_store.sql_backend import SqlQuestionStore

logger = logging.getLogger(__name__)

_memory_store: InMemoryQuestionStore | None = None


def get_memory_store() -> InMemoryQuestionStore:
    """Get the process-wide in-memory store, creating it on first use."""
    global _memory_store
    if _memory_store is None:
        logger.warning("Using in-memory question store; questions are lost on restart")
        _memory_store = InMemoryQuestionStore()
    return _memory_store


def get_question_store(backend_type: str | None = None, session: AsyncSession | None = None) -> QuestionStore:
    """
    Factory function to create question store instance.

    Args:
        backend_type: Store backend type ("sql", "memory"). Defaults to settings.question_store_backend
        session: Database session (required for "sql" backend)

    Returns:
        QuestionStore instance

    Raises:
        ValueError: If backend_type is unsupported or required arguments are missing
    """
    backend_type = (backend_type or settings.question_store_backend).lower()

    if backend_type == "memory":
        return get_memory_store()

    elif backend_type == "sql":
        if session is None:
            raise ValueError("A database session is required for the SQL question store")
        return SqlQuestionStore(session)

    else:
        raise ValueError(f"Unsupported question store backend: {backend_type}. Supported backends: sql, memory")
