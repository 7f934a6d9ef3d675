from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException

from exambank.config import settings
from exambank.dependencies import database
from exambank.services.question_store import ExamPaperSource, QuestionStore, get_question_store


async def get_store() -> AsyncIterator[QuestionStore]:
    """Question store for one request; SQL stores get their own session."""
    backend_type = settings.question_store_backend.lower()
    if backend_type != "sql":
        yield get_question_store(backend_type)
        return

    if database.sessionmanager is None:
        raise HTTPException(status_code=503, detail="Database is not configured")

    async with database.sessionmanager.session() as session:
        yield get_question_store(backend_type, session=session)


QuestionStoreDep = Annotated[QuestionStore, Depends(get_store)]


async def get_exam_paper_source(store: QuestionStoreDep) -> ExamPaperSource | None:
    return store if isinstance(store, ExamPaperSource) else None


ExamPaperSourceDep = Annotated[ExamPaperSource | None, Depends(get_exam_paper_source)]
