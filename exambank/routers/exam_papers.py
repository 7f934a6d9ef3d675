from fastapi import APIRouter, HTTPException, status

from exambank.dependencies.store import ExamPaperSourceDep, QuestionStoreDep
from exambank.routers.questions import to_http_error
from exambank.schemas.question import PaperCoverageResponse
from exambank.services.paper_coverage import summarize_paper_coverage
from exambank.services.question_store import QuestionStoreError

router = APIRouter(prefix="/api/v1/exam-papers", tags=["exam-papers"])


@router.get("/{paper_id}/coverage", response_model=PaperCoverageResponse)
async def get_paper_coverage(
    paper_id: str, store: QuestionStoreDep, exam_papers: ExamPaperSourceDep
) -> PaperCoverageResponse:
    """Report which subjects of an exam paper have enough questions."""
    if exam_papers is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam paper not found")

    try:
        coverage = await summarize_paper_coverage(store, exam_papers, paper_id)
    except QuestionStoreError as e:
        raise to_http_error(e)

    if coverage is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam paper not found")
    return coverage
