from exambank.services.question_store.base import (
    ExamPaperSource,
    QuestionFilter,
    QuestionStore,
    QuestionStoreError,
    StoreUnavailableError,
    parse_store_id,
)
from exambank.services.question_store.factory import get_memory_store, get_question_store
from exambank.services.question_store.memory_backend import InMemoryQuestionStore
from exambank.services.question_store.sql_backend import SqlQuestionStore

__all__ = [
    "ExamPaperSource",
    "InMemoryQuestionStore",
    "QuestionFilter",
    "QuestionStore",
    "QuestionStoreError",
    "SqlQuestionStore",
    "StoreUnavailableError",
    "get_memory_store",
    "get_question_store",
    "parse_store_id",
]
