from datetime import datetime

from pydantic import BaseModel, Field


class QuestionBase(BaseModel):
    """Question content shared by upload payloads and stored records."""

    question_text: str = ""
    option_a: str = ""
    option_b: str = ""
    option_c: str = ""
    option_d: str = ""
    correct_option: str = ""


class QuestionInput(QuestionBase):
    """One question of a replace-all upload."""

    pass


class QuestionRecord(QuestionBase):
    """A question as held by the question store."""

    id: int | None = None
    paper_id: str
    subject_id: str
    subject_name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class QuestionBankReplaceRequest(BaseModel):
    """Schema for replacing the whole question bank of one paper subject."""

    paper_id: str = Field(..., description="Paper code the questions belong to")
    subject_id: str = Field(..., description="Subject identifier within the paper")
    subject_name: str | None = Field(None, description="Subject name stored on every question")
    questions: list[QuestionInput] = Field(default_factory=list)


class QuestionBankReplaceResponse(BaseModel):
    """Schema for replace-all upload response."""

    paper_id: str
    subject_id: str
    subject_name: str
    inserted_count: int
    skipped_count: int
    deleted_count: int


class QuestionIdsRequest(BaseModel):
    question_ids: list[str] = Field(..., min_length=1)


class SubjectComparison(BaseModel):
    """Why an available subject did or did not match the requested one."""

    subject_name: str
    matched: bool
    reason: str
    question_count: int


class DiagnosticInfo(BaseModel):
    """Troubleshooting context returned when no questions could be resolved."""

    total_questions: int
    paper_questions: int
    available_subject_names: list[str]
    sample_questions: list[QuestionRecord]
    exam_paper_found: bool = False
    target_subject_name: str | None = None
    paper_aliases: list[str] = Field(default_factory=list)
    attempted_strategies: list[str] = Field(default_factory=list)
    subject_comparisons: list[SubjectComparison] = Field(default_factory=list)


class QuestionResolutionResponse(BaseModel):
    """Schema for question lookup response."""

    success: bool
    paper_id: str
    subject_identifier: str
    strategy: str | None = None
    total: int
    data: list[QuestionRecord]
    diagnostic: DiagnosticInfo | None = None


class QuestionListResponse(BaseModel):
    success: bool = True
    total: int
    data: list[QuestionRecord]


class SubjectCoverage(BaseModel):
    subject_id: str
    subject_name: str
    expected_questions: int
    resolved_questions: int
    strategy: str | None = None
    ready: bool


class PaperCoverageResponse(BaseModel):
    """Per-subject question availability for one exam paper."""

    paper_id: str
    paper_name: str | None = None
    ready: bool
    subjects: list[SubjectCoverage]
