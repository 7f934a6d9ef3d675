import logging

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse

from exambank.config import settings
from exambank.dependencies.store import ExamPaperSourceDep, QuestionStoreDep
from exambank.schemas.question import (
    QuestionBankReplaceRequest,
    QuestionBankReplaceResponse,
    QuestionIdsRequest,
    QuestionListResponse,
    QuestionResolutionResponse,
)
from exambank.services.errors import InvalidInputError, PartialIngestFailure
from exambank.services.question_bank_ingest import repair_question_bank, replace_question_bank
from exambank.services.question_resolution import (
    Found,
    ResolutionResult,
    find_questions_by_ids,
    resolve_questions,
)
from exambank.services.question_store import QuestionStoreError, StoreUnavailableError
from exambank.services.question_upload import (
    QuestionUploadParseError,
    QuestionUploadValidationError,
    parse_question_upload,
)
from exambank.services.template_generator import generate_question_template

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/questions", tags=["questions"])


def to_http_error(error: Exception) -> HTTPException:
    """Translate a domain error into the HTTP error returned to the caller."""
    if isinstance(error, InvalidInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, PartialIngestFailure):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": str(error),
                "paper_id": error.paper_id,
                "subject_id": error.subject_id,
                "deleted_count": error.deleted_count,
                "bank_restored": error.bank_restored,
            },
        )
    if isinstance(error, StoreUnavailableError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    logger.error(f"Question store error: {error}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


def resolution_response(
    result: ResolutionResult, paper_id: str, subject_identifier: str
) -> QuestionResolutionResponse | JSONResponse:
    if isinstance(result, Found):
        return QuestionResolutionResponse(
            success=True,
            paper_id=paper_id,
            subject_identifier=subject_identifier,
            strategy=result.strategy,
            total=len(result.questions),
            data=result.questions,
        )

    # Never an empty list without the diagnostic explaining it
    response = QuestionResolutionResponse(
        success=False,
        paper_id=paper_id,
        subject_identifier=subject_identifier,
        total=0,
        data=[],
        diagnostic=result.diagnostic,
    )
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=response.model_dump(mode="json"))


@router.get("", response_model=QuestionResolutionResponse)
async def get_questions(
    store: QuestionStoreDep,
    exam_papers: ExamPaperSourceDep,
    paper_id: str = Query(..., description="Paper code or exam paper id"),
    subject_id: str = Query(..., description="Subject id or subject name"),
    exact_match: bool = Query(False, description="Skip fuzzy subject name matching"),
) -> QuestionResolutionResponse | JSONResponse:
    """Get the questions of a paper subject."""
    try:
        result = await resolve_questions(store, paper_id, subject_id, exact_match, exam_papers=exam_papers)
    except (InvalidInputError, QuestionStoreError) as e:
        raise to_http_error(e)
    return resolution_response(result, paper_id, subject_id)


@router.get("/by-name", response_model=QuestionResolutionResponse)
async def get_questions_by_subject_name(
    store: QuestionStoreDep,
    exam_papers: ExamPaperSourceDep,
    paper_id: str = Query(...),
    subject_name: str = Query(...),
    strict: bool = Query(False, description="Only accept the exact subject name"),
) -> QuestionResolutionResponse | JSONResponse:
    """Get the questions of a paper subject by subject name."""
    try:
        result = await resolve_questions(
            store, paper_id, subject_name, strict, exam_papers=exam_papers, subject_name=subject_name
        )
    except (InvalidInputError, QuestionStoreError) as e:
        raise to_http_error(e)
    return resolution_response(result, paper_id, subject_name)


@router.post("/by-ids", response_model=QuestionListResponse)
async def get_questions_by_ids(request: QuestionIdsRequest, store: QuestionStoreDep) -> QuestionListResponse:
    """Get questions by their ids."""
    try:
        questions = await find_questions_by_ids(store, request.question_ids)
    except (InvalidInputError, QuestionStoreError) as e:
        raise to_http_error(e)
    return QuestionListResponse(total=len(questions), data=questions)


@router.post("/batch", response_model=QuestionBankReplaceResponse, status_code=status.HTTP_200_OK)
async def replace_questions(
    request: QuestionBankReplaceRequest, store: QuestionStoreDep
) -> QuestionBankReplaceResponse:
    """Replace the whole question bank of a paper subject."""
    try:
        return await replace_question_bank(
            store, request.paper_id, request.subject_id, request.subject_name, request.questions
        )
    except (InvalidInputError, PartialIngestFailure, QuestionStoreError) as e:
        raise to_http_error(e)


@router.get("/template")
async def download_question_template() -> StreamingResponse:
    """Download Excel template for question upload."""
    try:
        template_bytes = generate_question_template()
        return StreamingResponse(
            iter([template_bytes]),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": "attachment; filename=question_upload_template.xlsx"},
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate template: {str(e)}",
        )


@router.post("/upload", response_model=QuestionBankReplaceResponse, status_code=status.HTTP_200_OK)
async def upload_questions(
    store: QuestionStoreDep,
    paper_id: str = Form(...),
    subject_id: str = Form(...),
    subject_name: str | None = Form(None),
    file: UploadFile = File(...),
) -> QuestionBankReplaceResponse:
    """Replace the question bank of a paper subject from an Excel or CSV file."""
    file_content = await file.read()
    if len(file_content) > settings.upload_max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum upload size of {settings.upload_max_size} bytes",
        )

    try:
        questions = parse_question_upload(file_content, file.filename or "unknown")
    except (QuestionUploadParseError, QuestionUploadValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Parsed {len(questions)} questions from {file.filename} for paper {paper_id}, subject {subject_id}")
    try:
        return await replace_question_bank(store, paper_id, subject_id, subject_name, questions)
    except (InvalidInputError, PartialIngestFailure, QuestionStoreError) as e:
        raise to_http_error(e)


@router.post("/repair", response_model=QuestionBankReplaceResponse, status_code=status.HTTP_200_OK)
async def repair_questions(
    store: QuestionStoreDep,
    paper_id: str = Query(...),
    subject_id: str = Query(...),
) -> QuestionBankReplaceResponse:
    """Persist display defaults for blank fields of a stored question bank."""
    try:
        return await repair_question_bank(store, paper_id, subject_id)
    except (InvalidInputError, PartialIngestFailure, QuestionStoreError) as e:
        raise to_http_error(e)
